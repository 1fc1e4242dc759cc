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
    SYNC_FAILED = 2
    EXIT_WARNINGS = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    ARCHIVE_EXT = ".nupkg"
    DESCRIPTOR_EXT = ".nuspec"
    BINARY_EXT = ".dll"

    # Destination defaults to <source>/Nuget
    DESTINATION_DIR_NAME = "Nuget"
    PROJECT_FILE_PATTERN = "*.csproj"
    DIRECTORY_BUILD_PROPS_FILE = "Directory.Build.props"
    PACKAGES_CONFIG_FILE = "packages.config"
    MANIFEST_PATTERNS = (
        PROJECT_FILE_PATTERN,
        DIRECTORY_BUILD_PROPS_FILE,
        PACKAGES_CONFIG_FILE,
    )

    EXTRACTOR_EXECUTABLE = "7za"
    MAX_CONCURRENCY = 8

    ENV_NUGET_PACKAGES = "NUGET_PACKAGES"
    ENV_LOG_LEVEL = "NUPKGSYNC_LOG_LEVEL"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    CONFIG_SECTION = "sync"


def default_user_cache_root() -> str:
    """Return the NuGet global packages folder for the current user.

    Honors the NUGET_PACKAGES environment variable the same way the NuGet
    client does; otherwise falls back to ~/.nuget/packages.
    """
    env_root = os.environ.get(Constants.ENV_NUGET_PACKAGES)
    if env_root and env_root.strip():
        return os.path.abspath(os.path.expanduser(env_root.strip()))
    return os.path.join(os.path.expanduser("~"), ".nuget", "packages")
