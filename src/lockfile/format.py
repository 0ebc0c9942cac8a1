"""JSON persistence for the lock-file graph model.

Layout::

    {
      "locked": false,
      "version": 1,
      "targets": {
        "net45": {
          "Foo/1.0.0": {
            "dependencies": {"Bar": "[1.0.0, )"},
            "frameworkAssemblies": ["System.Xml"],
            "compile": {"lib/net45/Foo.dll": {}},
            "runtime": {"lib/net45/Foo.dll": {}},
            "native": {}
          }
        }
      },
      "libraries": {
        "Foo/1.0.0": {"serviceable": false, "sha512": "...", "files": [...]}
      }
    }

Empty per-library sections are omitted on write and default to empty on
read.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from errors import LockFileFormatError, VersionRangeParseError
from frameworks.models import TargetFramework
from library.models import PackageDependency
from versioning.models import VersionRange, normalize_version, parse_version
from .models import LockFile, LockFileLibrary, LockFileTarget, LockFileTargetLibrary

logger = logging.getLogger(__name__)


def _library_key(name: str, version) -> str:
    return f"{name}/{normalize_version(version)}"


def _split_library_key(key: str) -> Tuple[str, Any]:
    name, sep, version = key.rpartition("/")
    if not sep or not name:
        raise LockFileFormatError(f"Invalid library key '{key}'")
    try:
        return name, parse_version(version)
    except ValueError as e:
        raise LockFileFormatError(f"Invalid version in library key '{key}'") from e


def _path_map(paths: List[str]) -> Dict[str, Dict]:
    return {path: {} for path in paths}


def _target_library_to_json(library: LockFileTargetLibrary) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if library.dependencies:
        data["dependencies"] = {d.id: str(d.version_range) for d in library.dependencies}
    if library.framework_assemblies:
        data["frameworkAssemblies"] = list(library.framework_assemblies)
    if library.compile_time_assemblies:
        data["compile"] = _path_map(library.compile_time_assemblies)
    if library.runtime_assemblies:
        data["runtime"] = _path_map(library.runtime_assemblies)
    if library.native_libraries:
        data["native"] = _path_map(library.native_libraries)
    return data


def lock_file_to_json(lock_file: LockFile) -> Dict[str, Any]:
    """Convert a lock file into its JSON-ready mapping."""
    targets: Dict[str, Any] = {}
    for target in lock_file.targets:
        targets[target.key] = {
            _library_key(lib.name, lib.version): _target_library_to_json(lib)
            for lib in target.libraries
        }

    libraries: Dict[str, Any] = {}
    for library in lock_file.libraries:
        entry: Dict[str, Any] = {"serviceable": library.is_serviceable}
        if library.sha512 is not None:
            entry["sha512"] = library.sha512
        entry["files"] = list(library.files)
        libraries[_library_key(library.name, library.version)] = entry

    return {
        "locked": lock_file.locked,
        "version": lock_file.version,
        "targets": targets,
        "libraries": libraries,
    }


def _parse_dependencies(raw: Any, key: str) -> List[PackageDependency]:
    if not isinstance(raw, dict):
        return []
    dependencies: List[PackageDependency] = []
    for dep_id, range_text in raw.items():
        try:
            version_range = VersionRange.parse(range_text) if range_text else VersionRange.all_stable()
        except VersionRangeParseError as e:
            raise LockFileFormatError(f"Invalid range for {dep_id} in {key}: {e}") from e
        dependencies.append(PackageDependency(id=dep_id, version_range=version_range))
    return dependencies


def _paths(raw: Any) -> List[str]:
    if isinstance(raw, dict):
        return list(raw.keys())
    if isinstance(raw, list):
        return [str(p) for p in raw]
    return []


def _parse_target_key(key: str) -> Tuple[TargetFramework, Optional[str]]:
    framework, _, runtime = key.partition("/")
    try:
        return TargetFramework.parse(framework), runtime or None
    except ValueError as e:
        raise LockFileFormatError(f"Invalid target '{key}'") from e


def lock_file_from_json(data: Any) -> LockFile:
    """Build a lock file from its JSON mapping.

    Raises:
        LockFileFormatError: if the mapping does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise LockFileFormatError("Lock file root must be an object")

    lock_file = LockFile(
        version=int(data.get("version", 1)),
        locked=bool(data.get("locked", False)),
    )

    for key, entry in (data.get("libraries") or {}).items():
        name, version = _split_library_key(key)
        entry = entry or {}
        lock_file.libraries.append(LockFileLibrary(
            name=name,
            version=version,
            is_serviceable=bool(entry.get("serviceable", False)),
            sha512=entry.get("sha512"),
            files=[str(f) for f in entry.get("files", [])],
        ))

    for target_key, target_libraries in (data.get("targets") or {}).items():
        framework, runtime = _parse_target_key(target_key)
        target = LockFileTarget(target_framework=framework, runtime_identifier=runtime)
        for key, entry in (target_libraries or {}).items():
            name, version = _split_library_key(key)
            entry = entry or {}
            target.libraries.append(LockFileTargetLibrary(
                name=name,
                version=version,
                dependencies=_parse_dependencies(entry.get("dependencies"), key),
                framework_assemblies=[str(a) for a in entry.get("frameworkAssemblies", [])],
                runtime_assemblies=_paths(entry.get("runtime")),
                compile_time_assemblies=_paths(entry.get("compile")),
                native_libraries=_paths(entry.get("native")),
            ))
        lock_file.targets.append(target)

    return lock_file


def write_lock_file(lock_file: LockFile, path: str) -> None:
    """Write ``lock_file`` to ``path`` as indented JSON.

    The file is written beside its destination and moved into place, so a
    reader never sees a partial document.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    temp_path = f"{path}.tmp"
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(lock_file_to_json(lock_file), f, indent=2)
    os.replace(temp_path, path)
    logger.info("Lock file written to %s", path)


def read_lock_file(path: str) -> LockFile:
    """Read a lock file written by ``write_lock_file``.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        LockFileFormatError: if the content is not a valid lock file.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise LockFileFormatError(f"Invalid JSON in {path}: {e}") from e
    return lock_file_from_json(data)
