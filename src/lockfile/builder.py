"""Shape installed packages into lock-file records."""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

from errors import PackageNotFoundError
from frameworks.models import ANY_FRAMEWORK, TargetFramework
from frameworks.nearest import get_nearest
from install.repository import LocalPackageRepository
from library.models import LibraryIdentity
from registry.nuget.manifest import Manifest, read_manifest
from registry.nuget.provider import select_nearest_group
from versioning.models import normalize_version
from .models import LockFileLibrary, LockFileTargetLibrary

logger = logging.getLogger(__name__)

ASSEMBLY_EXTENSIONS = (".dll", ".exe", ".winmd")

# Marks a framework folder as supported while contributing no files.
EMPTY_FOLDER_PLACEHOLDER = "_._"


def _group_by_framework(files: Iterable[str], folder: str) -> List[Tuple[TargetFramework, List[str]]]:
    """Group ``folder/<tfm>/...`` paths by framework.

    Files directly inside ``folder`` belong to the any-platform group.
    Groups keep first-seen order.
    """
    groups: Dict[str, Tuple[TargetFramework, List[str]]] = {}
    prefix = folder + "/"
    for path in files:
        if not path.lower().startswith(prefix):
            continue
        parts = path[len(prefix):].split("/")
        if len(parts) == 1:
            folder_name, framework = "", ANY_FRAMEWORK
        else:
            folder_name = parts[0].lower()
            try:
                framework = TargetFramework.parse(folder_name)
            except ValueError:
                logger.debug("Skipping asset folder %s/%s with unreadable framework", folder, parts[0])
                continue
        groups.setdefault(folder_name, (framework, []))[1].append(path)
    return list(groups.values())


def _select_assets(files: Iterable[str], folder: str, framework: TargetFramework) -> Optional[List[str]]:
    """Assemblies of the nearest ``folder`` group; None when no group applies."""
    nearest = get_nearest(framework, _group_by_framework(files, folder), key=lambda group: group[0])
    if nearest is None:
        return None
    return [
        path for path in nearest[1]
        if path.lower().endswith(ASSEMBLY_EXTENSIONS)
    ]


def _select_native(files: Iterable[str], runtime_identifier: Optional[str]) -> List[str]:
    if not runtime_identifier:
        return []
    prefix = f"runtimes/{runtime_identifier.lower()}/native/"
    return [
        path for path in files
        if path.lower().startswith(prefix) and os.path.basename(path) != EMPTY_FOLDER_PLACEHOLDER
    ]


def create_target_library(
    identity: LibraryIdentity,
    manifest: Manifest,
    target_framework: TargetFramework,
    files: List[str],
    runtime_identifier: Optional[str] = None,
) -> LockFileTargetLibrary:
    """Select the assets ``identity`` contributes to one target.

    Runtime assemblies come from the nearest ``lib/`` group. Compile-time
    assemblies come from the nearest ``ref/`` group, or match the runtime
    set when the package ships no applicable reference assemblies.
    """
    library = LockFileTargetLibrary(name=identity.name, version=identity.version)

    dependency_group = select_nearest_group(manifest.get_dependency_groups(), target_framework)
    if dependency_group is not None:
        library.dependencies = list(dependency_group.packages)

    reference_group = select_nearest_group(
        manifest.get_framework_reference_groups(), target_framework
    )
    if reference_group is not None:
        library.framework_assemblies = list(reference_group.items)

    runtime = _select_assets(files, "lib", target_framework) or []
    compile_time = _select_assets(files, "ref", target_framework)
    library.runtime_assemblies = runtime
    library.compile_time_assemblies = list(runtime) if compile_time is None else compile_time
    library.native_libraries = _select_native(files, runtime_identifier)
    return library


def read_installed_manifest(repository: LocalPackageRepository, identity: LibraryIdentity) -> Manifest:
    manifest_path = repository.path_resolver.get_manifest_file_path(identity.name, identity.version)
    with open(manifest_path, "rb") as f:
        return read_manifest(f)


def create_lock_file_library(
    identity: LibraryIdentity,
    repository: LocalPackageRepository,
    manifest: Optional[Manifest] = None,
) -> LockFileLibrary:
    """Record an installed package: its hash marker and file list.

    Raises:
        PackageNotFoundError: if ``identity`` has no completed install.
    """
    sha512 = repository.read_hash(identity)
    if sha512 is None:
        raise PackageNotFoundError(
            f"{identity.name} {normalize_version(identity.version)} is not installed in {repository.root}"
        )
    if manifest is None:
        manifest = read_installed_manifest(repository, identity)
    return LockFileLibrary(
        name=identity.name,
        version=identity.version,
        is_serviceable=manifest.serviceable,
        sha512=sha512,
        files=repository.list_files(identity),
    )
