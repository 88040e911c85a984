"""Argument parsing functionality for cargo-prefetch."""

import argparse

from constants import Constants

HELP = """\
Download crates into Cargo's registry cache. This is useful if you plan to go
offline and want a collection of common crates available.

With no crate arguments and no selection flag, the 100 most downloaded crates
are fetched (--top-downloads=100).
"""


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="cargo-prefetch",
        description="Download popular crates into the local Cargo cache.",
        epilog=HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=True,
    )

    parser.add_argument("CRATES",
                        help="Individual crates to download. "
                             "Use `name@version` (or `name@=version`) for a specific version.",
                        nargs="*",
                        metavar="crate")
    parser.add_argument("--top-downloads",
                        dest="TOP_DOWNLOADS",
                        help="Download the most downloaded crates. "
                             f"Specify a value for the number to download, default is {Constants.DEFAULT_TOP_N}.",
                        nargs="?",
                        const=Constants.DEFAULT_TOP_N,
                        type=int,
                        metavar="N")
    parser.add_argument("--top-deps",
                        dest="TOP_DEPS",
                        help="Download the most frequent dependencies. "
                             f"Specify a value for the number to download, default is {Constants.DEFAULT_TOP_N}.",
                        nargs="?",
                        const=Constants.DEFAULT_TOP_N,
                        type=int,
                        metavar="N")
    parser.add_argument("--lockfile",
                        dest="LOCKFILE",
                        help="Download all crates listed in the specified Cargo.lock.",
                        action="store",
                        type=str)
    parser.add_argument("--list",
                        dest="LIST",
                        help="List what would be downloaded instead of downloading.",
                        action="store_true")

    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help=f"Number of concurrent downloads (default: {Constants.DEFAULT_JOBS})",
                        action="store",
                        type=int)
    parser.add_argument("--retries",
                        dest="RETRIES",
                        help=f"Attempts per crate on transient failures (default: {Constants.FETCH_RETRY_MAX})",
                        action="store",
                        type=int)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"HTTP timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory receiving .crate files "
                             "(default: $CARGO_HOME/registry/cache/<crates.io index>)",
                        action="store",
                        type=str)
    parser.add_argument("--registry-url",
                        dest="REGISTRY_URL",
                        help="Base URL of the crates.io API",
                        action="store",
                        type=str)
    parser.add_argument("--download-url",
                        dest="DOWNLOAD_URL",
                        help="Base URL of the crate download store",
                        action="store",
                        type=str)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=Constants.OUTPUT_FORMATS)

    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Print some extra info to stderr.",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output the report to the console.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
