"""Local artifact cache."""

from .store import CacheStore, default_cache_dir

__all__ = ["CacheStore", "default_cache_dir"]
