"""Version parsing, resolution and shared data models."""
