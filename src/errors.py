"""Exception hierarchy shared by the resolver, feeds and installer."""

from __future__ import annotations

from typing import Optional


class RestoreError(Exception):
    """Base exception for all restore errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class SourceUnavailableError(RestoreError):
    """Raised when a package source cannot be reached or read."""

    def __init__(self, message: str = "", source: Optional[str] = None) -> None:
        self.source = source
        super().__init__(message)


class PackageNotFoundError(RestoreError):
    """Raised when the source answered but has no such package or version."""


class ManifestFormatError(RestoreError):
    """Raised when an archive lacks its manifest entry or the manifest is malformed."""


class LockTimeoutError(RestoreError):
    """Raised when a contended install lock is not acquired in time."""

    def __init__(self, path: str, timeout: float) -> None:
        self.path = path
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout} seconds waiting for lock on {path}")


class VersionNotFoundError(RestoreError):
    """Raised when no available version satisfies a requested range."""


class NoCompatibleGroupError(RestoreError):
    """Raised when no framework-scoped group is compatible with the target."""


class VersionRangeParseError(ValueError):
    """Raised for malformed version range strings."""


class FrameworkParseError(ValueError):
    """Raised for malformed target framework strings."""


class LockFileFormatError(RestoreError):
    """Raised when a persisted lock file cannot be read back."""
