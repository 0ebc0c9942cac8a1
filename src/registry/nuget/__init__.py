"""NuGet package source support.

This package provides:
- manifest.py: .nuspec parsing and archive identity helpers
- source.py: package sources and the find-by-id resource contract
- http_feed.py: V3 flat-container HTTP resource (aiohttp)
- local_feed.py: folder-of-archives resource
- provider.py: the dependency provider consumed by graph walkers
"""

from .manifest import (  # noqa: F401
    FrameworkSpecificGroup,
    Manifest,
    PackageDependencyGroup,
    read_identity_from_archive,
    read_manifest,
)
from .source import FindPackageByIdResource, PackageSource, SourceRepository  # noqa: F401
from .provider import (  # noqa: F401
    SourceRepositoryDependencyProvider,
    build_dependency_list,
    get_dependencies,
    require_library,
    select_nearest_group,
)

__all__ = [
    "FrameworkSpecificGroup",
    "Manifest",
    "PackageDependencyGroup",
    "read_identity_from_archive",
    "read_manifest",
    "FindPackageByIdResource",
    "PackageSource",
    "SourceRepository",
    "SourceRepositoryDependencyProvider",
    "build_dependency_list",
    "get_dependencies",
    "require_library",
    "select_nearest_group",
]
