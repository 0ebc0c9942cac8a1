"""Best-match selection of versions against a range."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, TypeVar

from common.logging_utils import extra_context, is_debug_enabled
from .models import VersionLike, VersionRange, parse_version, version_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _identity(item):
    return item


def find_best_match(
    items: Iterable[T],
    version_range: Optional[VersionRange],
    selector: Callable[[T], VersionLike] = _identity,
) -> Optional[T]:
    """Return the item with the highest version satisfying ``version_range``.

    Items whose version cannot be parsed are skipped. The result does not
    depend on input order: ties on version precedence are broken by the
    item's original version string.

    Args:
        items: Candidates, e.g. version strings or records holding one.
        version_range: Acceptable interval; None accepts every stable version.
        selector: Maps an item to its version.

    Returns:
        The selected item, or None when nothing qualifies.
    """
    effective = version_range if version_range is not None else VersionRange.all_stable()

    best: Optional[T] = None
    best_key = None
    considered = 0
    for item in items:
        considered += 1
        try:
            raw = selector(item)
            version = parse_version(raw)
        except ValueError:
            continue
        if not effective.satisfies(version):
            continue
        key = (version_key(version), str(raw))
        if best_key is None or key > best_key:
            best, best_key = item, key

    if is_debug_enabled(logger):
        logger.debug(
            "Best match selection",
            extra=extra_context(
                event="decision",
                component="ranges",
                action="find_best_match",
                target=str(effective),
                count=considered,
                outcome="match" if best is not None else "no_match",
            ),
        )
    return best
