"""Read side of the package cache.

A package counts as installed only when its hash marker exists; the
marker is the last thing the installer writes.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from semantic_version import Version

from library.models import LibraryIdentity
from versioning.models import parse_version, version_key
from .path_resolver import PackagePathResolver

logger = logging.getLogger(__name__)


class LocalPackageRepository:
    """Queries installed packages under a packages root."""

    def __init__(self, root: str):
        self.path_resolver = PackagePathResolver(root)

    @property
    def root(self) -> str:
        return self.path_resolver.root

    def is_installed(self, identity: LibraryIdentity) -> bool:
        return os.path.isfile(self.path_resolver.get_hash_path(identity.name, identity.version))

    def read_hash(self, identity: LibraryIdentity) -> Optional[str]:
        """Return the recorded content hash, or None if not installed."""
        hash_path = self.path_resolver.get_hash_path(identity.name, identity.version)
        try:
            with open(hash_path, "r", encoding="ascii") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def find_installed_versions(self, name: str) -> List[Version]:
        """Versions of ``name`` with a completed install, ascending."""
        package_dir = os.path.join(self.root, name.lower())
        if not os.path.isdir(package_dir):
            return []
        versions: List[Version] = []
        for entry in os.listdir(package_dir):
            try:
                version = parse_version(entry)
            except ValueError:
                continue
            if os.path.isfile(self.path_resolver.get_hash_path(name, version)):
                versions.append(version)
        versions.sort(key=version_key)
        return versions

    def list_files(self, identity: LibraryIdentity) -> List[str]:
        """Relative paths (forward slashes) of every file in the install directory, sorted."""
        install_path = self.path_resolver.get_install_path(identity.name, identity.version)
        files: List[str] = []
        for dirpath, _, filenames in os.walk(install_path):
            for filename in filenames:
                full = os.path.join(dirpath, filename)
                files.append(os.path.relpath(full, install_path).replace(os.sep, "/"))
        files.sort()
        return files
