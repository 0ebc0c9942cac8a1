"""Cache layout: where each library's files live under the packages root."""

from __future__ import annotations

import os

from constants import Constants
from versioning.models import VersionLike, normalize_version


class PackagePathResolver:
    """Maps (name, version) to paths under ``root``.

    Layout per library::

        <root>/<name-lower>/<normalized-version>/
            <name-lower>.<version>.nupkg
            <name-lower>.<version>.nupkg.sha512
            <Name>.nuspec
            ...extracted files
        <root>/.locks/<sha256 of the archive path>.lock
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def get_install_path(self, name: str, version: VersionLike) -> str:
        return os.path.join(self.root, name.lower(), normalize_version(version))

    def get_package_file_name(self, name: str, version: VersionLike) -> str:
        return f"{name.lower()}.{normalize_version(version)}{Constants.PACKAGE_EXTENSION}"

    def get_package_file_path(self, name: str, version: VersionLike) -> str:
        return os.path.join(
            self.get_install_path(name, version),
            self.get_package_file_name(name, version),
        )

    def get_manifest_file_path(self, name: str, version: VersionLike) -> str:
        """Manifest path; the file name keeps ``name``'s exact casing."""
        return os.path.join(
            self.get_install_path(name, version),
            f"{name}{Constants.MANIFEST_EXTENSION}",
        )

    def get_hash_path(self, name: str, version: VersionLike) -> str:
        return self.get_package_file_path(name, version) + Constants.HASH_EXTENSION

    def get_lock_dir(self) -> str:
        """Directory holding the install locks for this packages root."""
        return os.path.join(self.root, Constants.LOCKS_FOLDER)
