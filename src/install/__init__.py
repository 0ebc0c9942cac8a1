"""Package cache installation.

- path_resolver.py: cache layout
- extractor.py: filtered, traversal-safe archive extraction
- concurrency.py: cross-process file locks
- installer.py: the install protocol
- repository.py: installed-package queries
"""

from .path_resolver import PackagePathResolver
from .extractor import extract_files, extract_package, nupkg_filter
from .concurrency import execute_with_file_locked, lock_path_for
from .installer import compute_content_hash, install_from_provider, install_from_stream
from .repository import LocalPackageRepository

__all__ = [
    "PackagePathResolver",
    "extract_files",
    "extract_package",
    "nupkg_filter",
    "execute_with_file_locked",
    "lock_path_for",
    "compute_content_hash",
    "install_from_provider",
    "install_from_stream",
    "LocalPackageRepository",
]
