"""Shared helpers for HTTP and logging."""
