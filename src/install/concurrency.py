"""Cross-process mutual exclusion keyed by a filesystem path.

Locks are advisory OS file locks (``filelock``) named by a hash of the
protected path. Unless a lock directory is given they sit in a
``.locks`` folder beside the protected path, so every process that can
see the path derives the same lock file.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from typing import Awaitable, Callable, Optional, TypeVar

from filelock import FileLock, Timeout

from constants import Constants
from errors import LockTimeoutError
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

T = TypeVar("T")


def lock_path_for(file_path: str, lock_dir: Optional[str] = None) -> str:
    """Return the lock file guarding ``file_path``."""
    normalized = os.path.normcase(os.path.abspath(file_path))
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    if lock_dir is None:
        lock_dir = os.path.join(os.path.dirname(normalized), Constants.LOCKS_FOLDER)
    return os.path.join(lock_dir, f"{digest}.lock")


async def _acquire(lock: FileLock, file_path: str, timeout: float) -> None:
    """Acquire ``lock`` with capped exponential backoff.

    Each attempt is non-blocking; waiting happens in ``asyncio.sleep`` so
    the caller stays cancellable and no thread is parked on the lock.
    A negative ``timeout`` waits indefinitely.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout < 0 else loop.time() + timeout
    delay = Constants.LOCK_POLL_INITIAL_SEC
    attempts = 0

    while True:
        attempts += 1
        try:
            lock.acquire(timeout=0)
            if attempts > 1:
                logger.debug("Acquired contended lock after %d attempts: %s", attempts, file_path)
            return
        except Timeout:
            pass

        if deadline is not None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise LockTimeoutError(file_path, timeout)
            wait = min(delay, remaining)
        else:
            wait = delay

        if is_debug_enabled(logger):
            logger.debug("Lock busy, backing off", extra=extra_context(
                event="lock_wait", component="concurrency", action="acquire",
                target=file_path, attempt=attempts, delay=round(wait, 3),
            ))
        await asyncio.sleep(wait)
        delay = min(delay * 2, Constants.LOCK_POLL_MAX_SEC)


async def execute_with_file_locked(
    file_path: str,
    action: Callable[[], Awaitable[T]],
    *,
    timeout: Optional[float] = None,
    lock_dir: Optional[str] = None,
) -> T:
    """Run ``action`` while holding the cross-process lock for ``file_path``.

    The lock is released on every exit path, including exceptions and
    cancellation of ``action``.

    Raises:
        LockTimeoutError: if the lock is not acquired within ``timeout``
            seconds (``Constants.LOCK_TIMEOUT_SEC`` when None).
    """
    lock_file = lock_path_for(file_path, lock_dir)
    os.makedirs(os.path.dirname(lock_file), exist_ok=True)
    effective_timeout = Constants.LOCK_TIMEOUT_SEC if timeout is None else timeout

    lock = FileLock(lock_file)
    await _acquire(lock, file_path, effective_timeout)
    try:
        return await action()
    finally:
        lock.release()
