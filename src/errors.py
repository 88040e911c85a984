"""Exception hierarchy for cargo-prefetch.

Per-entry failures (selection tokens, resolution, fetch) are collected by the
pipeline and reported together; only configuration errors and a failed
ranking listing abort a run.
"""

from __future__ import annotations

from typing import Optional


class PrefetchError(Exception):
    """Base class for all prefetch errors."""


class ConfigurationError(PrefetchError):
    """Invalid or conflicting settings, detected before any network activity."""


class SelectionError(PrefetchError):
    """A selection source could not produce package references."""


class InvalidCountError(SelectionError):
    """A top-N count that is not a positive integer."""

    def __init__(self, count):
        super().__init__(f"count must be a positive integer, got {count!r}")
        self.count = count


class InvalidTokenError(SelectionError):
    """A malformed explicit package token."""

    def __init__(self, token: str, message: str = "malformed package token"):
        super().__init__(f"{message}: {token!r}")
        self.token = token
        self.message = message


class ResolutionError(PrefetchError):
    """A package reference could not be mapped to a concrete version."""

    kind = "ResolutionError"


class PackageNotFoundError(ResolutionError):
    """The registry has no crate with the given name."""

    kind = "NotFound"

    def __init__(self, name: str):
        super().__init__(f"crate {name!r} not found in registry")
        self.name = name


class RegistryNetworkError(ResolutionError):
    """Transport failure while talking to the registry API."""

    kind = "Network"

    def __init__(self, cause: str):
        super().__init__(f"registry request failed: {cause}")
        self.cause = cause


class FetchError(PrefetchError):
    """Failure while downloading or storing one artifact."""

    reason = "FetchError"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransientFetchError(FetchError):
    """Timeouts, connection resets, 429 and 5xx responses. Retried."""

    reason = "Transient"


class ArtifactNotFoundError(FetchError):
    """The registry has no artifact for the requested version."""

    reason = "NotFound"


class ChecksumMismatchError(FetchError):
    """Downloaded bytes do not match the expected sha256."""

    reason = "ChecksumMismatch"


class CacheWriteError(FetchError):
    """The artifact was downloaded but could not be stored."""

    reason = "CacheWriteError"
