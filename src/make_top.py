"""Regenerate the bundled TOP_CRATES ranking from a crates.io index checkout.

Usage: cargo-prefetch-make-top <path-to-crates.io-index> [--limit N]

Prints a `TOP_CRATES` tuple suitable for pasting into registry/ranking.py.
"""

import argparse
import logging
import os
import sys

from common.logging_utils import configure_logging
from constants import ExitCodes
from registry.ranking import rank_index

logger = logging.getLogger(__name__)


def render(ranked) -> str:
    lines = ["TOP_CRATES: Tuple[str, ...] = ("]
    for name, count in ranked:
        lines.append(f'    "{name}",  # {count}')
    lines.append(")")
    return "\n".join(lines)


def main(argv=None):
    """Main function of the ranking generator."""
    parser = argparse.ArgumentParser(
        prog="cargo-prefetch-make-top",
        description="Rank crates by number of dependents in a crates.io index.",
    )
    parser.add_argument("INDEX", help="Path to a crates.io-index checkout")
    parser.add_argument("--limit", dest="LIMIT", type=int, default=1000,
                        help="Number of crates to emit (default: 1000)")
    args = parser.parse_args(argv)
    configure_logging()

    if not os.path.isdir(args.INDEX):
        logger.error("Must specify path to crates index: %s is not a directory", args.INDEX)
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    ranked = rank_index(args.INDEX, limit=args.LIMIT)
    sys.stdout.write(render(ranked) + "\n")
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
