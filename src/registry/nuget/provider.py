"""Dependency provider backed by one package source.

Resolves a library range to an identity, expands an identity into its
dependency edges for a target framework, and copies package content.
This is the per-node contract a graph walker consumes.
"""
from __future__ import annotations

import logging
from typing import BinaryIO, Iterable, List, Optional, TypeVar

from semantic_version import Version

from errors import NoCompatibleGroupError, VersionNotFoundError
from common.logging_utils import extra_context, is_debug_enabled
from frameworks.models import TargetFramework
from frameworks.nearest import get_nearest
from library.models import (
    LibraryDependency,
    LibraryIdentity,
    LibraryRange,
    LibraryType,
)
from versioning.models import VersionRange
from versioning.ranges import find_best_match
from .manifest import FrameworkSpecificGroup, Manifest, PackageDependencyGroup
from .source import FindPackageByIdResource, SourceRepository

logger = logging.getLogger(__name__)

G = TypeVar("G", PackageDependencyGroup, FrameworkSpecificGroup)


def select_nearest_group(
    groups: Iterable[G],
    target_framework: TargetFramework,
    required: bool = False,
) -> Optional[G]:
    """Pick the group whose framework is nearest to ``target_framework``.

    Raises:
        NoCompatibleGroupError: only when ``required`` is set and no group
            is compatible.
    """
    group = get_nearest(target_framework, groups, key=lambda g: g.target_framework)
    if group is None and required:
        raise NoCompatibleGroupError(f"No group is compatible with {target_framework}")
    return group


def build_dependency_list(
    target_framework: TargetFramework,
    dependencies: Optional[PackageDependencyGroup],
    framework_assemblies: Optional[FrameworkSpecificGroup],
) -> List[LibraryDependency]:
    """Flatten the selected groups into dependency edges.

    Package dependencies come first, unconstrained. Framework references
    follow, constrained to reference libraries, unless the reference group
    is declared for any platform and the target is not a desktop
    framework: such groups describe desktop reference assemblies only.
    """
    library_dependencies: List[LibraryDependency] = []

    if dependencies is not None:
        for package in dependencies.packages:
            library_dependencies.append(LibraryDependency(
                LibraryRange(name=package.id, version_range=package.version_range)
            ))

    if framework_assemblies is None:
        return library_dependencies

    if framework_assemblies.target_framework.any_platform and not target_framework.is_desktop:
        return library_dependencies

    for name in framework_assemblies.items:
        library_dependencies.append(LibraryDependency(
            LibraryRange(name=name, type_constraint=LibraryType.REFERENCE)
        ))

    return library_dependencies


def get_dependencies(manifest: Manifest, target_framework: TargetFramework) -> List[LibraryDependency]:
    """Dependency edges of ``manifest`` for ``target_framework``."""
    dependencies = select_nearest_group(manifest.get_dependency_groups(), target_framework)
    framework_assemblies = select_nearest_group(
        manifest.get_framework_reference_groups(), target_framework
    )
    return build_dependency_list(target_framework, dependencies, framework_assemblies)


class SourceRepositoryDependencyProvider:
    """Remote dependency provider for a single source repository.

    The feed resource is created on first use and reused afterwards. Two
    concurrent first calls may both build one; the first stored wins and
    the spare is dropped unused.
    """

    def __init__(self, source_repository: SourceRepository, no_cache: bool = False):
        self._source_repository = source_repository
        self._no_cache = no_cache
        self._find_packages_by_id_resource: Optional[FindPackageByIdResource] = None

    @property
    def is_http(self) -> bool:
        return self._source_repository.package_source.is_http

    @property
    def source(self) -> str:
        return self._source_repository.package_source.source

    async def _ensure_resource(self) -> FindPackageByIdResource:
        if self._find_packages_by_id_resource is None:
            resource = await self._source_repository.get_resource()
            resource.logger = logging.getLogger(f"{__name__}.resource")
            resource.no_cache = self._no_cache
            if self._find_packages_by_id_resource is None:
                self._find_packages_by_id_resource = resource
        return self._find_packages_by_id_resource

    async def enumerate_versions(self, name: str) -> List[Version]:
        """Every version the source offers for ``name`` (possibly empty)."""
        resource = await self._ensure_resource()
        return await resource.get_all_versions(name)

    async def find_library(
        self,
        library_range: LibraryRange,
        target_framework: Optional[TargetFramework] = None,
    ) -> Optional[LibraryIdentity]:
        """Resolve ``library_range`` to the best available identity, or None."""
        package_versions = await self.enumerate_versions(library_range.name)
        package_version = find_best_match(package_versions, library_range.version_range)

        if is_debug_enabled(logger):
            logger.debug("Resolved library range", extra=extra_context(
                event="resolve", component="provider", action="find_library",
                target=str(library_range), count=len(package_versions),
                outcome=str(package_version) if package_version is not None else "none",
                framework=str(target_framework) if target_framework else None,
            ))

        if package_version is None:
            return None
        return LibraryIdentity(
            name=library_range.name,
            version=package_version,
            type=LibraryType.PACKAGE,
        )

    async def resolve_identity(
        self, name: str, version_range: Optional[VersionRange]
    ) -> Optional[LibraryIdentity]:
        """Shorthand for ``find_library`` from a bare name and range."""
        return await self.find_library(LibraryRange(name=name, version_range=version_range))

    async def get_dependencies(
        self, match: LibraryIdentity, target_framework: TargetFramework
    ) -> List[LibraryDependency]:
        """Dependency edges of ``match`` for ``target_framework``."""
        resource = await self._ensure_resource()
        manifest = await resource.get_manifest(match.name, match.version)
        return get_dependencies(manifest, target_framework)

    async def get_manifest(self, match: LibraryIdentity) -> Manifest:
        resource = await self._ensure_resource()
        return await resource.get_manifest(match.name, match.version)

    async def copy_to(self, identity: LibraryIdentity, stream: BinaryIO) -> None:
        """Write the package archive of ``identity`` into ``stream``."""
        resource = await self._ensure_resource()
        async for chunk in resource.iter_package(identity.name, identity.version):
            stream.write(chunk)

    async def close(self) -> None:
        if self._find_packages_by_id_resource is not None:
            await self._find_packages_by_id_resource.close()


async def require_library(
    provider: SourceRepositoryDependencyProvider,
    library_range: LibraryRange,
    target_framework: Optional[TargetFramework] = None,
) -> LibraryIdentity:
    """Like ``find_library`` but raises when nothing matches.

    Raises:
        VersionNotFoundError: if no available version satisfies the range.
    """
    identity = await provider.find_library(library_range, target_framework)
    if identity is None:
        raise VersionNotFoundError(
            f"No version of {library_range.name} satisfies {library_range.version_range}"
        )
    return identity
