"""Local folder feed: a directory of package archives."""
from __future__ import annotations

import asyncio
import logging
import os
import zipfile
from typing import AsyncIterator, Dict, List, Optional, Tuple

import aiofiles
from semantic_version import Version

from constants import Constants
from errors import ManifestFormatError, PackageNotFoundError, SourceUnavailableError
from versioning.models import normalize_version, version_key
from .manifest import Manifest, read_archive_manifest, read_identity_from_archive
from .source import FindPackageByIdResource

logger = logging.getLogger(__name__)

# (lower id, normalized version) -> (archive path, version)
_Index = Dict[Tuple[str, str], Tuple[str, Version]]


class LocalFolderFindPackageByIdResource(FindPackageByIdResource):
    """Find-by-id resource over a flat folder of ``.nupkg`` files.

    Identities are read from each archive's manifest, so file names do
    not matter. The folder is scanned once per resource unless
    ``no_cache`` is set.
    """

    def __init__(self, root: str):
        super().__init__()
        self._root = root
        self._index: Optional[_Index] = None

    def _scan(self) -> _Index:
        if not os.path.isdir(self._root):
            raise SourceUnavailableError(f"Package folder {self._root} does not exist", source=self._root)
        index: _Index = {}
        for entry in sorted(os.listdir(self._root)):
            if not entry.lower().endswith(Constants.PACKAGE_EXTENSION):
                continue
            path = os.path.join(self._root, entry)
            try:
                identity = read_identity_from_archive(path)
            except ManifestFormatError as e:
                self.logger.warning("Ignoring unreadable package %s: %s", path, e)
                continue
            index[(identity.name.lower(), normalize_version(identity.version).lower())] = (
                path, identity.version
            )
        return index

    async def _get_index(self) -> _Index:
        if self._index is None or self.no_cache:
            self._index = await asyncio.to_thread(self._scan)
        return self._index

    async def _find(self, package_id: str, version: Version) -> str:
        index = await self._get_index()
        found = index.get((package_id.lower(), normalize_version(version).lower()))
        if found is None:
            raise PackageNotFoundError(
                f"{package_id} {normalize_version(version)} not found in {self._root}"
            )
        return found[0]

    async def get_all_versions(self, package_id: str) -> List[Version]:
        index = await self._get_index()
        lower_id = package_id.lower()
        versions: List[Version] = []
        for (name, _), (_, version) in index.items():
            if name == lower_id:
                versions.append(version)
        versions.sort(key=version_key)
        return versions

    async def get_manifest(self, package_id: str, version: Version) -> Manifest:
        path = await self._find(package_id, version)

        def _read() -> Manifest:
            with zipfile.ZipFile(path) as archive:
                return read_archive_manifest(archive, path)[1]

        return await asyncio.to_thread(_read)

    async def iter_package(self, package_id: str, version: Version) -> AsyncIterator[bytes]:
        path = await self._find(package_id, version)
        try:
            async with aiofiles.open(path, "rb") as f:
                while True:
                    chunk = await f.read(Constants.COPY_BUFFER_SIZE)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise SourceUnavailableError(f"Unable to read {path}: {e}", source=self._root) from e
