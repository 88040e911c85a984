"""Local artifact store backed by Cargo's registry cache directory."""

from __future__ import annotations

import logging
import os
import tempfile

from constants import Constants

logger = logging.getLogger(__name__)


def default_cache_dir(cargo_home: str = None) -> str:
    """Return `$CARGO_HOME/registry/cache/<crates.io index dir>`."""
    home = cargo_home or os.environ.get("CARGO_HOME") or Constants.CARGO_HOME
    return os.path.join(home, "registry", "cache", Constants.CRATES_IO_INDEX_DIR)


class CacheStore:
    """Presence check and write of `.crate` files, keyed by (name, version).

    Entries are only ever added. Writes go through a temporary file in the
    same directory followed by os.replace, so readers never observe a
    partially written artifact.
    """

    def __init__(self, root: str):
        self.root = root

    def path_for(self, name: str, version: str) -> str:
        """Path of the artifact for (name, version).

        Raises:
            ValueError: name or version would escape the cache directory.
        """
        for part in (name, version):
            if not part or "/" in part or "\\" in part or part.startswith("."):
                raise ValueError(f"unsafe cache key: {name!r} {version!r}")
        return os.path.join(self.root, f"{name}-{version}{Constants.CRATE_FILE_EXT}")

    def contains(self, name: str, version: str) -> bool:
        return os.path.isfile(self.path_for(name, version))

    def write(self, name: str, version: str, data: bytes) -> str:
        """Store an artifact and return its path.

        Raises:
            OSError: the directory cannot be created or the file written.
        """
        os.makedirs(self.root, exist_ok=True)
        target = self.path_for(name, version)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{name}-{version}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, target)
        except OSError:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Failed to remove temp file: %s", tmp_path)
            raise
        logger.debug("Stored %s (%d bytes)", target, len(data))
        return target
