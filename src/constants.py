"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    LOCK_TIMEOUT = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_SOURCE = "https://api.nuget.org/v3/index.json"
    PACKAGES_DIR = os.path.join(os.path.expanduser("~"), ".restorekit", "packages")
    # Lock directory override; None keeps locks under the packages root
    LOCK_DIR = None
    LOCKS_FOLDER = ".locks"

    MANIFEST_EXTENSION = ".nuspec"
    PACKAGE_EXTENSION = ".nupkg"
    HASH_EXTENSION = ".sha512"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    COPY_BUFFER_SIZE = 8192
    FEED_CACHE_TTL_SEC = 600

    # Cross-process install lock
    LOCK_TIMEOUT_SEC = 120.0
    LOCK_POLL_INITIAL_SEC = 0.05
    LOCK_POLL_MAX_SEC = 1.0

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "RESTOREKIT_LOG_LEVEL"
    ENV_SOURCE = "RESTOREKIT_SOURCE"
    ENV_PACKAGES = "RESTOREKIT_PACKAGES"
    ENV_LOCK_TIMEOUT = "RESTOREKIT_LOCK_TIMEOUT"
    ENV_LOCK_DIR = "RESTOREKIT_LOCK_DIR"
