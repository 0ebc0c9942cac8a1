"""Archive extraction with path-traversal defense and entry filtering."""

from __future__ import annotations

import logging
import os
import shutil
import urllib.parse
import zipfile
from typing import BinaryIO, Callable, List

from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

# Packaging bookkeeping entries that are not library payload
_EXCLUDED_FILE_NAMES = {".rels", "[Content_Types].xml"}
_EXCLUDED_EXTENSIONS = {".psmdcp"}


def nupkg_filter(entry_name: str) -> bool:
    """Default inclusion predicate: drop container bookkeeping entries."""
    file_name = os.path.basename(entry_name)
    if file_name in _EXCLUDED_FILE_NAMES:
        return False
    _, extension = os.path.splitext(entry_name)
    if extension in _EXCLUDED_EXTENSIONS:
        return False
    return True


def normalize_entry_name(name: str) -> str:
    """Strip one leading separator, convert to host separators, percent-decode."""
    if name.startswith("/"):
        name = name[1:]
    return urllib.parse.unquote(name.replace("/", os.sep))


def _is_within(root: str, path: str) -> bool:
    root = os.path.normcase(root)
    path = os.path.normcase(path)
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def extract_files(
    archive: zipfile.ZipFile,
    target_path: str,
    should_include: Callable[[str], bool] = nupkg_filter,
) -> List[str]:
    """Extract filtered archive entries below ``target_path``.

    Entries resolving outside ``target_path`` are skipped, never fatal.
    Entries ending in a separator create directories; every other entry
    is written as a file, overwriting any existing one.

    Returns:
        Normalized names of the files written.
    """
    root = os.path.realpath(target_path)
    written: List[str] = []

    for info in archive.infolist():
        entry_name = normalize_entry_name(info.filename)
        candidate = os.path.join(root, entry_name)
        resolved = os.path.realpath(candidate)

        if not _is_within(root, resolved):
            logger.warning(
                "Skipping archive entry outside target directory: %s",
                info.filename,
                extra=extra_context(
                    event="path_traversal", component="extractor",
                    action="extract_files", target=info.filename, outcome="skipped",
                ),
            )
            continue

        if not should_include(entry_name):
            if is_debug_enabled(logger):
                logger.debug("Filtered archive entry", extra=extra_context(
                    event="decision", component="extractor", action="extract_files",
                    target=entry_name, outcome="excluded",
                ))
            continue

        is_directory = not entry_name or entry_name.endswith(os.sep) or (
            os.altsep is not None and entry_name.endswith(os.altsep)
        )
        if is_directory:
            os.makedirs(resolved, exist_ok=True)
            continue
        if resolved == root:
            continue

        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with archive.open(info) as source, open(resolved, "wb") as target:
            shutil.copyfileobj(source, target)
        written.append(entry_name)

    return written


def extract_package(target_path: str, stream: BinaryIO) -> List[str]:
    """Extract a package archive read from ``stream`` using the default filter."""
    with zipfile.ZipFile(stream, "r") as archive:
        return extract_files(archive, target_path, should_include=nupkg_filter)
