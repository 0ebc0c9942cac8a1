"""Package sources and the find-by-id resource contract.

A ``SourceRepository`` wraps one configured source and hands out the
resource that knows how to talk to it: an HTTP feed or a local folder.
"""
from __future__ import annotations

import abc
import logging
import os
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from semantic_version import Version

from .manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageSource:
    """A configured package source (URL or directory)."""

    source: str
    name: Optional[str] = None

    @property
    def is_http(self) -> bool:
        return self.source.lower().startswith(("http://", "https://"))

    @property
    def is_local(self) -> bool:
        return not self.is_http

    def __str__(self) -> str:
        return self.name or self.source


class FindPackageByIdResource(abc.ABC):
    """Per-source access to versions, manifests and archives of a package id.

    Implementations raise ``SourceUnavailableError`` on transport failure
    and ``PackageNotFoundError`` when the source has no such version.
    """

    def __init__(self) -> None:
        self.logger: logging.Logger = logger
        self.no_cache = False

    @abc.abstractmethod
    async def get_all_versions(self, package_id: str) -> List[Version]:
        """All versions of ``package_id``; empty if the id is unknown."""

    @abc.abstractmethod
    async def get_manifest(self, package_id: str, version: Version) -> Manifest:
        """The parsed manifest of one package version."""

    @abc.abstractmethod
    def iter_package(self, package_id: str, version: Version) -> AsyncIterator[bytes]:
        """Stream the raw archive bytes of one package version."""

    async def close(self) -> None:
        """Release any transport resources."""


class SourceRepository:
    """One package source plus the resource that serves it."""

    def __init__(self, package_source: PackageSource, timeout: Optional[int] = None):
        self.package_source = package_source
        self._timeout = timeout

    async def get_resource(self) -> FindPackageByIdResource:
        """Build the find-by-id resource for this source's kind."""
        # Imported here so local-only use never needs the HTTP stack loaded
        if self.package_source.is_http:
            from .http_feed import HttpFindPackageByIdResource  # pylint: disable=import-outside-toplevel
            return HttpFindPackageByIdResource(self.package_source.source, timeout=self._timeout)

        from .local_feed import LocalFolderFindPackageByIdResource  # pylint: disable=import-outside-toplevel
        return LocalFolderFindPackageByIdResource(os.path.abspath(self.package_source.source))
