"""Bundled ranking of crates by number of dependents.

TOP_CRATES is a snapshot of the crates most often listed as a dependency by
the newest version of every crate in the crates.io index. Regenerate it with
`cargo-prefetch-make-top <path-to-crates.io-index>`.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from typing import Dict, Iterator, List, Optional, Tuple

import semantic_version

logger = logging.getLogger(__name__)

TOP_CRATES: Tuple[str, ...] = (
    "serde",
    "serde_json",
    "log",
    "rand",
    "serde_derive",
    "lazy_static",
    "clap",
    "regex",
    "tokio",
    "libc",
    "futures",
    "thiserror",
    "anyhow",
    "chrono",
    "syn",
    "quote",
    "proc-macro2",
    "reqwest",
    "env_logger",
    "bytes",
    "itertools",
    "once_cell",
    "base64",
    "url",
    "hex",
    "toml",
    "tempfile",
    "byteorder",
    "structopt",
    "failure",
    "time",
    "bitflags",
    "sha2",
    "uuid",
    "async-trait",
    "tracing",
    "hyper",
    "num-traits",
    "walkdir",
    "error-chain",
    "parking_lot",
    "criterion",
    "tokio-core",
    "futures-util",
    "winapi",
    "cfg-if",
    "getopts",
    "docopt",
    "rustc-serialize",
    "tracing-subscriber",
    "indexmap",
    "glob",
    "crossbeam",
    "smallvec",
    "memchr",
    "dirs",
    "num",
    "rayon",
    "pretty_assertions",
    "serde_yaml",
    "nom",
    "ansi_term",
    "colored",
    "semver",
    "http",
    "tokio-io",
    "quickcheck",
    "derive_more",
    "sha1",
    "md5",
    "proptest",
    "bincode",
    "flate2",
    "ring",
    "strum",
    "strum_macros",
    "tokio-util",
    "image",
    "termcolor",
    "num_cpus",
    "atty",
    "wasm-bindgen",
    "futures-core",
    "hashbrown",
    "openssl",
    "mio",
    "lru",
    "dotenv",
    "percent-encoding",
    "crossbeam-channel",
    "cc",
    "pkg-config",
    "js-sys",
    "web-sys",
    "async-std",
    "rand_core",
    "generic-array",
    "digest",
    "zeroize",
    "slog",
)


def _iter_index_files(index_dir: str) -> Iterator[str]:
    for root, dirs, files in os.walk(index_dir):
        dirs[:] = [d for d in dirs if not d.startswith(".")]
        for file_name in files:
            if file_name == "config.json" or file_name.startswith("."):
                continue
            yield os.path.join(root, file_name)


def _newest_entry(path: str) -> Optional[Dict]:
    """Return the index entry of the highest version listed in one index file."""
    best = None
    best_version = None
    with open(path, encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
                version = semantic_version.Version(entry["vers"])
            except (ValueError, KeyError, TypeError):
                continue
            if best_version is None or version > best_version:
                best, best_version = entry, version
    return best


def rank_index(index_dir: str, limit: int = 1000) -> List[Tuple[str, int]]:
    """Count how many crates depend on each crate, using newest versions only.

    Args:
        index_dir: Path to a checkout of the crates.io index.
        limit: Maximum number of entries returned.

    Returns:
        (name, dependent_count) pairs, most depended-upon first; ties broken
        by name, descending.
    """
    counts: Counter = Counter()
    for path in _iter_index_files(index_dir):
        try:
            entry = _newest_entry(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable index file %s: %s", path, e)
            continue
        if entry is None:
            continue
        for dep in entry.get("deps") or []:
            # renamed dependencies carry the real crate name in "package"
            dep_name = dep.get("package") or dep.get("name")
            if dep_name:
                counts[dep_name] += 1

    ranked = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    return ranked[:limit]


def top_dependents(n: int) -> List[str]:
    """First n names of the bundled ranking."""
    return list(TOP_CRATES[:n])
