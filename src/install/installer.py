"""Idempotent, cross-process-safe installation of one package into the shared cache.

Protocol for a (name, version) destination:

1. take the cross-process lock keyed by the destination archive path;
2. if the hash marker exists, another caller already finished: no-op;
3. write the incoming bytes to the archive path, then extract it;
4. fix the manifest file name casing;
5. write the base64 SHA-512 of the incoming stream to a temp file and
   rename it onto the marker.

The marker is written last and is the only completion signal. A
directory without it is treated as not installed and is fully redone by
the next caller; partial output is never cleaned up.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import os
import tempfile
import zipfile
from typing import Any, BinaryIO, Callable, Optional

import aiofiles

from constants import Constants
from errors import ManifestFormatError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from library.models import LibraryIdentity
from registry.nuget.manifest import find_manifest_entry, rewrite_manifest_id
from .concurrency import execute_with_file_locked
from .extractor import extract_files, normalize_entry_name, nupkg_filter
from .path_resolver import PackagePathResolver

logger = logging.getLogger(__name__)

SPOOL_MAX_BYTES = 16 * 1024 * 1024


async def _run_in_thread(func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking ``func`` in a worker thread.

    On cancellation the worker is awaited before ``CancelledError``
    propagates, so the caller keeps its lock until the thread stops
    touching the destination.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        await asyncio.wait({future})
        if not future.cancelled() and future.exception() is not None:
            logger.debug("%s failed after cancellation: %s", func.__name__, future.exception())
        raise


def compute_content_hash(stream: BinaryIO) -> str:
    """Base64 SHA-512 of ``stream`` read from its start."""
    stream.seek(0)
    digest = hashlib.sha512()
    while True:
        chunk = stream.read(Constants.COPY_BUFFER_SIZE)
        if not chunk:
            break
        digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


async def _write_archive(stream: BinaryIO, target_nupkg: str) -> None:
    await asyncio.to_thread(stream.seek, 0)
    async with aiofiles.open(target_nupkg, "wb") as nupkg:
        while True:
            chunk = await asyncio.to_thread(stream.read, Constants.COPY_BUFFER_SIZE)
            if not chunk:
                break
            await nupkg.write(chunk)


async def _write_marker(hash_path: str, package_hash: str) -> None:
    """Publish the marker atomically; a partial write never becomes visible."""
    temp_path = hash_path + ".tmp"
    async with aiofiles.open(temp_path, "wb") as marker:
        await marker.write(package_hash.encode("ascii"))
    os.replace(temp_path, hash_path)


def _extract_archive(target_nupkg: str, target_path: str) -> str:
    """Extract the on-disk archive; return its manifest entry name."""
    try:
        with open(target_nupkg, "rb") as nupkg_stream, zipfile.ZipFile(nupkg_stream) as archive:
            manifest_entry = find_manifest_entry(archive)
            if manifest_entry is None:
                raise ManifestFormatError(
                    f"{target_nupkg} doesn't contain {Constants.MANIFEST_EXTENSION} entry"
                )
            extract_files(archive, target_path, should_include=nupkg_filter)
    except zipfile.BadZipFile as e:
        raise ManifestFormatError(f"{target_nupkg} is not a valid package archive") from e
    return manifest_entry


def _fix_manifest_casing(target_path: str, manifest_entry: str, target_manifest: str, library_name: str) -> None:
    """Make the manifest file name match ``target_manifest`` exactly."""
    actual = os.path.join(target_path, normalize_entry_name(manifest_entry))
    if os.path.basename(actual) == os.path.basename(target_manifest):
        return
    logger.debug("Rewriting manifest %s as %s", actual, target_manifest)
    rewrite_manifest_id(actual, target_manifest, library_name)


async def install_from_stream(
    stream: BinaryIO,
    library: LibraryIdentity,
    packages_directory: str,
    *,
    lock_timeout: Optional[float] = None,
    lock_dir: Optional[str] = None,
) -> bool:
    """Install the package archive in ``stream`` into ``packages_directory``.

    Args:
        stream: Seekable binary stream holding the raw archive bytes.
        library: Identity the archive is installed as.
        packages_directory: Root of the shared cache.
        lock_timeout: Seconds to wait for a contended lock.
        lock_dir: Directory holding lock files; defaults to the
            ``.locks`` folder of ``packages_directory``.

    Returns:
        True if this call performed the install, False if it was already
        installed.

    Raises:
        ManifestFormatError: if the archive has no manifest entry.
        LockTimeoutError: if another installer holds the lock too long.
    """
    resolver = PackagePathResolver(packages_directory)
    target_path = resolver.get_install_path(library.name, library.version)
    target_manifest = resolver.get_manifest_file_path(library.name, library.version)
    target_nupkg = resolver.get_package_file_path(library.name, library.version)
    hash_path = resolver.get_hash_path(library.name, library.version)

    if os.path.exists(hash_path):
        return False

    async def _install() -> bool:
        # Another holder may have finished while we waited for the lock
        if os.path.exists(hash_path):
            if is_debug_enabled(logger):
                logger.debug("Already installed by another caller", extra=extra_context(
                    event="decision", component="installer", action="install",
                    target=str(library), outcome="noop",
                ))
            return False

        with Timer() as t:
            os.makedirs(target_path, exist_ok=True)
            await _write_archive(stream, target_nupkg)
            manifest_entry = await _run_in_thread(_extract_archive, target_nupkg, target_path)
            await _run_in_thread(
                _fix_manifest_casing, target_path, manifest_entry, target_manifest, library.name
            )

            # Hash what was received, not what was re-read from disk
            package_hash = await _run_in_thread(compute_content_hash, stream)
            await _write_marker(hash_path, package_hash)

        logger.info(
            "Installed %s to %s",
            library,
            target_path,
            extra=extra_context(
                event="install", component="installer", action="install",
                target=str(library), outcome="installed", duration_ms=t.duration_ms(),
            ),
        )
        return True

    return await execute_with_file_locked(
        target_nupkg,
        _install,
        timeout=lock_timeout,
        lock_dir=lock_dir or resolver.get_lock_dir(),
    )


async def install_from_provider(
    provider,
    identity: LibraryIdentity,
    packages_directory: str,
    *,
    lock_timeout: Optional[float] = None,
    lock_dir: Optional[str] = None,
) -> bool:
    """Download ``identity`` through ``provider`` and install it unless present.

    The content is spooled to memory (or a temp file when large) so the
    installer can hash the received bytes after extraction.
    """
    resolver = PackagePathResolver(packages_directory)
    if os.path.exists(resolver.get_hash_path(identity.name, identity.version)):
        return False

    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as buffer:
        await provider.copy_to(identity, buffer)
        buffer.seek(0)
        return await install_from_stream(
            buffer,
            identity,
            packages_directory,
            lock_timeout=lock_timeout,
            lock_dir=lock_dir,
        )
