"""Token parsing utilities for explicit crate selection."""

import re
from typing import Optional, Tuple

import semantic_version

from errors import InvalidTokenError
from .models import PackageRef, VersionSpec

# crates.io: ASCII alphanumerics, '-' and '_', starting with a letter
_CRATE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
_CRATE_NAME_MAX = 64


def tokenize_at(token: str) -> Tuple[str, Optional[str]]:
    """Return (name, spec or None) split on the single '@'.

    Raises:
        InvalidTokenError: more than one '@', or an empty version after it.
    """
    s = token.strip()
    if s.count("@") > 1:
        raise InvalidTokenError(token, "more than one '@' in package token")
    if "@" not in s:
        return s, None
    name, spec = s.split("@", 1)
    spec = spec.strip()
    if spec.startswith("="):
        spec = spec[1:].strip()
    if not spec:
        raise InvalidTokenError(token, "missing version after '@'")
    return name.strip(), spec


def is_valid_crate_name(name: str) -> bool:
    return len(name) <= _CRATE_NAME_MAX and bool(_CRATE_NAME_RE.match(name))


def validate_crate_name(name: str, token: str) -> str:
    """Return name if it is a valid crate name, else raise InvalidTokenError."""
    if not name:
        raise InvalidTokenError(token, "empty crate name")
    if not is_valid_crate_name(name):
        raise InvalidTokenError(token, "invalid crate name")
    return name


def parse_cli_token(token: str) -> PackageRef:
    """Parse `name`, `name@version`, `name@=version` or `name@latest`."""
    name, spec = tokenize_at(token)
    validate_crate_name(name, token)

    if spec is None:
        return PackageRef(name=name, version_constraint=None, source="cli")
    if spec.lower() == "latest":
        return PackageRef(name=name, version_constraint=VersionSpec.latest(), source="cli")

    try:
        semantic_version.Version(spec)
    except ValueError as exc:
        raise InvalidTokenError(token, f"invalid version {spec!r}") from exc
    return PackageRef(name=name, version_constraint=VersionSpec.exact(spec), source="cli")


def parse_lockfile_entry(name: str, version: str, checksum: Optional[str] = None) -> PackageRef:
    """Construct an exact PackageRef from a lockfile package entry."""
    return PackageRef(
        name=name,
        version_constraint=VersionSpec.exact(version),
        source="lockfile",
        checksum=checksum,
    )
