"""Lock-file graph model.

Plain records of a resolved dependency graph: the libraries that were
installed, and per (framework, runtime) target the assets each library
contributes. Equality is structural.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from semantic_version import Version

from frameworks.models import TargetFramework
from library.models import PackageDependency
from versioning.models import normalize_version


@dataclass
class LockFileLibrary:
    """An installed library; ``sha512`` is set only for completed installs."""

    name: str
    version: Version
    is_serviceable: bool = False
    sha512: Optional[str] = None
    files: List[str] = field(default_factory=list)


@dataclass
class LockFileTargetLibrary:
    """Assets one library contributes to one target."""

    name: str
    version: Version
    dependencies: List[PackageDependency] = field(default_factory=list)
    framework_assemblies: List[str] = field(default_factory=list)
    runtime_assemblies: List[str] = field(default_factory=list)
    compile_time_assemblies: List[str] = field(default_factory=list)
    native_libraries: List[str] = field(default_factory=list)


@dataclass
class LockFileTarget:
    target_framework: TargetFramework
    runtime_identifier: Optional[str] = None
    libraries: List[LockFileTargetLibrary] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Name used for this target in the persisted file."""
        name = self.target_framework.short_folder_name
        if self.runtime_identifier:
            return f"{name}/{self.runtime_identifier}"
        return name

    def get_library(self, name: str) -> Optional[LockFileTargetLibrary]:
        lowered = name.lower()
        for library in self.libraries:
            if library.name.lower() == lowered:
                return library
        return None


@dataclass
class LockFile:
    version: int = 1
    locked: bool = False
    libraries: List[LockFileLibrary] = field(default_factory=list)
    targets: List[LockFileTarget] = field(default_factory=list)

    def get_library(self, name: str, version: Version) -> Optional[LockFileLibrary]:
        """Find a library by case-insensitive name and exact version."""
        lowered = name.lower()
        for library in self.libraries:
            if library.name.lower() == lowered and normalize_version(library.version) == normalize_version(version):
                return library
        return None

    def get_target(
        self, target_framework: TargetFramework, runtime_identifier: Optional[str] = None
    ) -> Optional[LockFileTarget]:
        for target in self.targets:
            if (target.target_framework == target_framework
                    and (target.runtime_identifier or None) == (runtime_identifier or None)):
                return target
        return None
