"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURES = 1
    CONFIG_ERROR = 2
    CONNECTION_ERROR = 3
    INTERRUPTED = 130


class SelectionModes(Enum):
    """Sources a prefetch run can select crates from.

    Args:
        Enum (string): Selection modes supported by the program.
    """

    TOP_DOWNLOADS = "top-downloads"
    TOP_DEPS = "top-deps"
    EXPLICIT = "explicit"
    LOCKFILE = "lockfile"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration defaults; not intended to provide behavior.
    """

    REGISTRY_URL_CRATES_IO = "https://crates.io/api/v1/"
    DOWNLOAD_URL_CRATES_IO = "https://static.crates.io/crates/"
    CRATES_IO_SOURCE = "registry+https://github.com/rust-lang/crates.io-index"
    CRATES_IO_MAX_PER_PAGE = 100
    # crates.io rejects requests without a meaningful user agent
    USER_AGENT = "cargo-prefetch (https://github.com/ehuss/cargo-prefetch)"

    DEFAULT_TOP_N = 100
    DEFAULT_JOBS = 8
    FETCH_RETRY_MAX = 3
    FETCH_BACKOFF_BASE_SEC = 0.5
    FETCH_BACKOFF_MAX_SEC = 10.0

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    CARGO_HOME = os.path.join(os.path.expanduser("~"), ".cargo")
    # Cargo >= 1.85 names the crates.io sparse index directory with this hash
    CRATES_IO_INDEX_DIR = "index.crates.io-1949cf8c6b5b557f"
    CRATE_FILE_EXT = ".crate"

    CONFIG_SECTION = "prefetch"
    OUTPUT_FORMATS = ["json", "csv"]
