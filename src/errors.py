"""Error types raised by the sync pipeline.

Cache misses and missing cache roots are not errors; they are reported as
events and logged as warnings. Everything below fails the branch (or run)
that raised it.
"""

from __future__ import annotations

from typing import Optional, Sequence


class SyncError(RuntimeError):
    """Base class for sync-related errors."""


class ConfigError(SyncError):
    """Raised when CLI/config file settings are unusable."""


class ManifestParseError(SyncError):
    """Raised when a project file or package descriptor is not well-formed XML."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Couldn't parse {path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedArchiveNameError(SyncError):
    """Raised when an archive file name does not look like <name>.<version>.nupkg."""

    def __init__(self, path: str):
        super().__init__(f"Archive name does not match <name>.<version> pattern: {path}")
        self.path = path


class ExtractionError(SyncError):
    """Raised when the external extraction tool fails or cannot be launched."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int],
        output: str = "",
    ):
        if returncode is None:
            message = f"Couldn't launch extraction tool: {' '.join(command)}"
        else:
            message = f"Extraction tool exited with code {returncode}: {' '.join(command)}"
        if output:
            message = f"{message}\n{output.strip()}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.output = output
