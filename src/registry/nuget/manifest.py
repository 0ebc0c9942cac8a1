"""Manifest (.nuspec) reading: identity, dependency groups and framework references."""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from semantic_version import Version

from constants import Constants
from errors import ManifestFormatError, VersionRangeParseError
from common.logging_utils import extra_context, is_debug_enabled
from frameworks.models import ANY_FRAMEWORK, TargetFramework
from library.models import LibraryIdentity, LibraryType, PackageDependency
from versioning.models import VersionRange, parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageDependencyGroup:
    """Package dependencies declared for one target framework."""

    target_framework: TargetFramework
    packages: Tuple[PackageDependency, ...] = ()


@dataclass(frozen=True)
class FrameworkSpecificGroup:
    """Named items (framework references, asset paths) for one target framework."""

    target_framework: TargetFramework
    items: Tuple[str, ...] = ()


@dataclass
class Manifest:
    """Parsed package manifest."""

    id: str
    version: Version
    serviceable: bool = False
    dependency_groups: List[PackageDependencyGroup] = field(default_factory=list)
    framework_reference_groups: List[FrameworkSpecificGroup] = field(default_factory=list)

    def get_dependency_groups(self) -> List[PackageDependencyGroup]:
        return list(self.dependency_groups)

    def get_framework_reference_groups(self) -> List[FrameworkSpecificGroup]:
        return list(self.framework_reference_groups)


def _local(tag: str) -> str:
    """Strip an XML namespace from a tag."""
    return tag.split('}', 1)[1] if '}' in tag else tag


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for sub in elem:
        if _local(sub.tag) == name:
            return sub
    return None


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [sub for sub in elem if _local(sub.tag) == name]


def _parse_dependency(elem: ET.Element) -> PackageDependency:
    dep_id = (elem.get("id") or "").strip()
    if not dep_id:
        raise ManifestFormatError("Dependency element without id")
    raw_range = (elem.get("version") or "").strip()
    try:
        version_range = VersionRange.parse(raw_range) if raw_range else VersionRange.all_stable()
    except VersionRangeParseError as e:
        raise ManifestFormatError(f"Invalid version range for dependency {dep_id}: {e}") from e
    return PackageDependency(dep_id, version_range)


def _parse_dependency_groups(dependencies: Optional[ET.Element]) -> List[PackageDependencyGroup]:
    if dependencies is None:
        return []
    groups: List[PackageDependencyGroup] = []
    flat = _children(dependencies, "dependency")
    if flat:
        # Legacy ungrouped form applies to every framework
        groups.append(PackageDependencyGroup(
            ANY_FRAMEWORK, tuple(_parse_dependency(d) for d in flat)
        ))
    for group in _children(dependencies, "group"):
        framework = TargetFramework.parse(group.get("targetFramework"))
        packages = tuple(_parse_dependency(d) for d in _children(group, "dependency"))
        groups.append(PackageDependencyGroup(framework, packages))
    return groups


def _parse_framework_references(elem: Optional[ET.Element]) -> List[FrameworkSpecificGroup]:
    if elem is None:
        return []
    grouped: Dict[TargetFramework, List[str]] = {}
    for assembly in _children(elem, "frameworkAssembly"):
        name = (assembly.get("assemblyName") or "").strip()
        if not name:
            continue
        raw = assembly.get("targetFramework") or ""
        frameworks = [TargetFramework.parse(f) for f in raw.split(",") if f.strip()]
        for framework in frameworks or [ANY_FRAMEWORK]:
            items = grouped.setdefault(framework, [])
            if name not in items:
                items.append(name)
    return [FrameworkSpecificGroup(fw, tuple(items)) for fw, items in grouped.items()]


def read_manifest(source: Union[bytes, str, BinaryIO]) -> Manifest:
    """Parse manifest XML from bytes, text or a binary stream.

    Raises:
        ManifestFormatError: if the XML is malformed or lacks id/version.
    """
    try:
        if isinstance(source, (bytes, str)):
            root = ET.fromstring(source)
        else:
            root = ET.parse(source).getroot()
    except ET.ParseError as e:
        raise ManifestFormatError(f"Malformed manifest: {e}") from e

    metadata = _child(root, "metadata")
    if metadata is None:
        raise ManifestFormatError("Manifest has no metadata element")

    id_elem = _child(metadata, "id")
    version_elem = _child(metadata, "version")
    package_id = (id_elem.text or "").strip() if id_elem is not None else ""
    raw_version = (version_elem.text or "").strip() if version_elem is not None else ""
    if not package_id or not raw_version:
        raise ManifestFormatError("Manifest is missing id or version")
    try:
        version = parse_version(raw_version)
    except ValueError as e:
        raise ManifestFormatError(f"Invalid manifest version '{raw_version}'") from e

    serviceable_elem = _child(metadata, "serviceable")
    serviceable = (
        serviceable_elem is not None
        and (serviceable_elem.text or "").strip().lower() == "true"
    )

    manifest = Manifest(
        id=package_id,
        version=version,
        serviceable=serviceable,
        dependency_groups=_parse_dependency_groups(_child(metadata, "dependencies")),
        framework_reference_groups=_parse_framework_references(
            _child(metadata, "frameworkAssemblies")
        ),
    )
    if is_debug_enabled(logger):
        logger.debug("Parsed manifest", extra=extra_context(
            event="parse", component="manifest", action="read_manifest",
            target=package_id, count=len(manifest.dependency_groups),
        ))
    return manifest


def find_manifest_entry(archive: zipfile.ZipFile) -> Optional[str]:
    """Return the archive's root-level manifest entry name, if any."""
    for name in archive.namelist():
        stripped = name.lstrip("/")
        if "/" in stripped:
            continue
        if stripped.lower().endswith(Constants.MANIFEST_EXTENSION):
            return name
    return None


def read_archive_manifest(archive: zipfile.ZipFile, archive_name: str = "archive") -> Tuple[str, Manifest]:
    """Locate and parse the manifest inside an open archive.

    Returns:
        Tuple of (entry_name, manifest)

    Raises:
        ManifestFormatError: if the archive has no manifest entry.
    """
    entry = find_manifest_entry(archive)
    if entry is None:
        raise ManifestFormatError(
            f"{archive_name} doesn't contain {Constants.MANIFEST_EXTENSION} entry"
        )
    with archive.open(entry) as stream:
        return entry, read_manifest(stream.read())


def read_identity_from_archive(archive_path: str) -> LibraryIdentity:
    """Read the library identity from a package archive on disk.

    Raises:
        ManifestFormatError: if the file is not an archive or has no manifest.
    """
    try:
        with zipfile.ZipFile(archive_path) as archive:
            _, manifest = read_archive_manifest(archive, archive_path)
    except zipfile.BadZipFile as e:
        raise ManifestFormatError(f"{archive_path} is not a valid package archive") from e
    return LibraryIdentity(manifest.id, manifest.version, LibraryType.PACKAGE)


def rewrite_manifest_id(manifest_file: str, target_manifest: str, correct_id: str) -> None:
    """Rewrite ``manifest_file`` as ``target_manifest`` with its id set to ``correct_id``.

    The original file is removed first so that a rename differing only in
    letter case also lands on case-insensitive filesystems.
    """
    tree = ET.parse(manifest_file)
    root = tree.getroot()
    if root.tag.startswith("{"):
        ET.register_namespace("", root.tag[1:].split("}", 1)[0])

    metadata = _child(root, "metadata")
    id_elem = _child(metadata, "id") if metadata is not None else None
    if id_elem is None:
        raise ManifestFormatError(f"{manifest_file} has no metadata/id element")
    id_elem.text = correct_id

    os.remove(manifest_file)
    tree.write(target_manifest, encoding="utf-8", xml_declaration=True)
