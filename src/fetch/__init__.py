"""Plan execution."""

from .executor import FetchExecutor, verify_checksum

__all__ = ["FetchExecutor", "verify_checksum"]
