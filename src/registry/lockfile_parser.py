"""Cargo.lock parser.

Extracts every crates.io-sourced package (direct + transitive) from a
Cargo.lock file. Path, git and alternate-registry packages are skipped since
they cannot be fetched from crates.io.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

try:
    import tomllib as toml  # type: ignore
except ImportError:  # Python < 3.11
    import tomli as toml  # type: ignore

import semantic_version

from constants import Constants
from errors import ConfigurationError
from versioning.parser import is_valid_crate_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockedPackage:
    """One `[[package]]` entry of a Cargo.lock."""
    name: str
    version: str
    checksum: Optional[str] = None


def parse_cargo_lock(lockfile_path: str) -> List[LockedPackage]:
    """Extract all crates.io packages from Cargo.lock, in file order.

    Cargo.lock has [[package]] sections (array of tables in TOML), each with
    "name", "version" and, for registry packages, "source" and "checksum".

    Args:
        lockfile_path: Path to Cargo.lock file

    Returns:
        List of locked packages, duplicates preserved.

    Raises:
        ConfigurationError: unreadable file, invalid TOML, or a registry
            package with a missing or invalid name or version.
    """
    try:
        with open(lockfile_path, "rb") as f:
            data = toml.load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"lockfile not found: {lockfile_path}") from e
    except OSError as e:
        raise ConfigurationError(f"failed to read lockfile {lockfile_path}: {e}") from e
    except toml.TOMLDecodeError as e:
        raise ConfigurationError(f"failed to parse lockfile {lockfile_path}: {e}") from e

    package_list = data.get("package", [])
    if not isinstance(package_list, list):
        raise ConfigurationError(f"unexpected lockfile structure in {lockfile_path}")

    packages: List[LockedPackage] = []
    skipped = 0
    for pkg in package_list:
        if not isinstance(pkg, dict):
            raise ConfigurationError(f"unexpected lockfile structure in {lockfile_path}")
        # only crates.io packages can be prefetched
        if pkg.get("source") != Constants.CRATES_IO_SOURCE:
            skipped += 1
            continue
        name = pkg.get("name")
        version = pkg.get("version")
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"missing package name in {lockfile_path}")
        if not isinstance(version, str) or not version:
            raise ConfigurationError(f"missing version for package {name!r} in {lockfile_path}")
        if not is_valid_crate_name(name):
            raise ConfigurationError(f"invalid package name {name!r} in {lockfile_path}")
        try:
            semantic_version.Version(version)
        except ValueError as e:
            raise ConfigurationError(f"invalid version {version!r} for package {name!r} in {lockfile_path}") from e
        checksum = pkg.get("checksum")
        packages.append(
            LockedPackage(name=name, version=version, checksum=checksum if isinstance(checksum, str) else None)
        )

    logger.debug("Lockfile %s: %d registry packages, %d skipped", lockfile_path, len(packages), skipped)
    return packages
