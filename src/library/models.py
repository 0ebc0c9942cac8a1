"""Library identities, ranges and dependency edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Optional

from semantic_version import Version

from versioning.models import VersionRange, normalize_version


class LibraryType(str, Enum):
    """Kinds of library a dependency can resolve to."""

    PACKAGE = "package"
    PROJECT = "project"
    REFERENCE = "reference"
    EXTERNAL_PROJECT = "externalProject"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class LibraryIdentity:
    """A resolved library. Equality is by (name, version, type)."""

    name: str
    version: Version
    type: LibraryType = LibraryType.PACKAGE

    def __str__(self) -> str:
        return f"{self.name} {normalize_version(self.version)}"


@dataclass(frozen=True)
class LibraryRange:
    """An unresolved request: name, acceptable versions, optional kind restriction."""

    name: str
    version_range: Optional[VersionRange] = None
    type_constraint: Optional[LibraryType] = None

    def __str__(self) -> str:
        text = self.name
        if self.version_range is not None:
            text += f" {self.version_range}"
        if self.type_constraint is not None:
            text += f" ({self.type_constraint.value})"
        return text


class LibraryDependencyTypeFlag(Flag):
    """Individual behaviors a dependency edge can carry."""

    MAIN_REFERENCE = 1
    MAIN_SOURCE = 2
    MAIN_EXPORT = 4
    PREPROCESS_REFERENCE = 8
    RUNTIME_COMPONENT = 16
    DEV_COMPONENT = 32
    PREPROCESS_COMPONENT = 64
    BECOMES_NUPKG_DEPENDENCY = 128

    DEFAULT = (
        MAIN_REFERENCE
        | MAIN_SOURCE
        | MAIN_EXPORT
        | RUNTIME_COMPONENT
        | BECOMES_NUPKG_DEPENDENCY
    )
    BUILD = MAIN_SOURCE | PREPROCESS_COMPONENT
    PLATFORM = MAIN_REFERENCE | MAIN_SOURCE | BECOMES_NUPKG_DEPENDENCY


@dataclass(frozen=True)
class LibraryDependency:
    """A dependency edge; its name is always the range's name."""

    library_range: LibraryRange
    type: LibraryDependencyTypeFlag = LibraryDependencyTypeFlag.DEFAULT

    @property
    def name(self) -> str:
        return self.library_range.name

    def has_flag(self, flag: LibraryDependencyTypeFlag) -> bool:
        return (self.type & flag) == flag

    def __str__(self) -> str:
        return f"{self.library_range} {self.type.name or self.type}"


@dataclass(frozen=True)
class PackageDependency:
    """A package id plus range as declared in a manifest or lock file."""

    id: str
    version_range: VersionRange = field(default_factory=VersionRange.all_stable)

    def __str__(self) -> str:
        return f"{self.id} {self.version_range}"
