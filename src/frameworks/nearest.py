"""Framework compatibility and nearest-framework selection.

``get_nearest`` is a pure function over a candidate collection; callers
pass a ``key`` to project their own group objects onto frameworks.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional, Tuple, TypeVar

from .models import (
    DNX,
    DNX_CORE,
    NET_CORE,
    NET_CORE_APP,
    NET_FRAMEWORK,
    NET_STANDARD,
    UAP,
    FrameworkVersion,
    TargetFramework,
)

T = TypeVar("T")

# Family -> ascending (minimum family version, highest .NETStandard supported).
_NETSTANDARD_SUPPORT: Dict[str, Tuple[Tuple[FrameworkVersion, FrameworkVersion], ...]] = {
    NET_FRAMEWORK: (
        ((4, 5, 0, 0), (1, 1, 0, 0)),
        ((4, 5, 1, 0), (1, 2, 0, 0)),
        ((4, 6, 0, 0), (1, 3, 0, 0)),
        ((4, 6, 1, 0), (2, 0, 0, 0)),
    ),
    NET_CORE_APP: (
        ((1, 0, 0, 0), (1, 6, 0, 0)),
        ((2, 0, 0, 0), (2, 0, 0, 0)),
        ((3, 0, 0, 0), (2, 1, 0, 0)),
    ),
    NET_CORE: (
        ((4, 5, 0, 0), (1, 1, 0, 0)),
        ((4, 5, 1, 0), (1, 2, 0, 0)),
        ((5, 0, 0, 0), (1, 4, 0, 0)),
    ),
    UAP: (
        ((10, 0, 0, 0), (1, 4, 0, 0)),
    ),
    DNX_CORE: (
        ((5, 0, 0, 0), (1, 5, 0, 0)),
    ),
    DNX: (
        ((4, 5, 1, 0), (1, 2, 0, 0)),
    ),
}

# Family -> family it may also consume at the same version.
_FALLBACK: Dict[str, str] = {
    DNX: NET_FRAMEWORK,
}

_TIER_SAME = 3
_TIER_FALLBACK = 2
_TIER_STANDARD = 1
_TIER_ANY = 0


def max_netstandard_version(target: TargetFramework) -> Optional[FrameworkVersion]:
    """Highest .NETStandard version ``target`` can consume, or None."""
    if target.identifier == NET_STANDARD:
        return target.version
    best = None
    for minimum, standard in _NETSTANDARD_SUPPORT.get(target.identifier, ()):
        if target.version >= minimum:
            best = standard
    return best


def _tier(target: TargetFramework, candidate: TargetFramework) -> Optional[int]:
    """Compatibility tier of ``candidate`` for ``target``; None if incompatible."""
    if candidate.any_platform:
        return _TIER_ANY
    if target.is_unsupported or candidate.is_unsupported or target.any_platform:
        return None

    if candidate.identifier == target.identifier:
        if candidate.profile and candidate.profile != target.profile:
            return None
        return _TIER_SAME if candidate.version <= target.version else None

    if _FALLBACK.get(target.identifier) == candidate.identifier:
        return _TIER_FALLBACK if candidate.version <= target.version else None

    if candidate.identifier == NET_STANDARD:
        supported = max_netstandard_version(target)
        if supported is not None and candidate.version <= supported:
            return _TIER_STANDARD
    return None


def is_compatible(target: TargetFramework, candidate: TargetFramework) -> bool:
    """True if a consumer targeting ``target`` can use assets built for ``candidate``."""
    return _tier(target, candidate) is not None


def get_nearest(
    target: TargetFramework,
    candidates: Iterable[T],
    key: Optional[Callable[[T], TargetFramework]] = None,
) -> Optional[T]:
    """Return the most specific candidate compatible with ``target``.

    Preference: the target's own family, then its fallback family, then
    .NETStandard, then any-platform; within a tier the highest version
    wins. Equal frameworks keep the first one seen.
    """
    project = key or (lambda item: item)  # type: ignore[assignment,return-value]
    best: Optional[T] = None
    best_rank = None
    for item in candidates:
        framework = project(item)
        tier = _tier(target, framework)
        if tier is None:
            continue
        rank = (tier, framework.version)
        if best_rank is None or rank > best_rank:
            best, best_rank = item, rank
    return best
