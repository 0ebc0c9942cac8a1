"""Version and version-range models.

Versions are ``semantic_version.Version`` objects. Four-part versions
(``1.2.3.4``) are accepted; a non-zero fourth part is carried as the build
elements ``rev.<n>`` and treated as a revision for ordering and for the
normalized form. Other build metadata (``1.0.0+5``) is ignored.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from semantic_version import Version

from errors import VersionRangeParseError

VersionLike = Union[str, Version]

_FOUR_PART_RE = re.compile(r"^\s*(\d+)\.(\d+)\.(\d+)\.(\d+)(.*)$")
_REVISION_TAG = "rev"


def parse_version(value: VersionLike) -> Version:
    """Parse a version string leniently (``1.0`` -> ``1.0.0``).

    Raises:
        ValueError: if the string is not a version at all.
    """
    if isinstance(value, Version):
        return value
    raw = str(value).strip()
    if not raw:
        raise ValueError("Empty version string")

    m = _FOUR_PART_RE.match(raw)
    if m:
        major, minor, patch, revision, rest = m.groups()
        base = Version.coerce(f"{major}.{minor}.{patch}{rest}")
        build: Tuple[str, ...] = (_REVISION_TAG, str(int(revision))) if int(revision) else ()
        return Version(
            major=base.major,
            minor=base.minor,
            patch=base.patch,
            prerelease=base.prerelease,
            build=build,
        )
    return Version.coerce(raw)


def revision(version: Version) -> int:
    """Return the fourth version part (0 when absent)."""
    build = version.build
    if len(build) == 2 and build[0] == _REVISION_TAG and build[1].isdigit():
        return int(build[1])
    return 0


def version_key(version: Version) -> tuple:
    """Total ordering key: major.minor.patch, revision, then pre-release precedence."""
    release = Version(major=version.major, minor=version.minor, patch=version.patch)
    without_build = Version(
        major=version.major,
        minor=version.minor,
        patch=version.patch,
        prerelease=version.prerelease,
    )
    return (release, revision(version), without_build)


def normalize_version(value: VersionLike) -> str:
    """Render the normalized string used in cache paths (no build metadata)."""
    version = parse_version(value)
    text = f"{version.major}.{version.minor}.{version.patch}"
    rev = revision(version)
    if rev:
        text += f".{rev}"
    if version.prerelease:
        text += "-" + ".".join(version.prerelease)
    return text


@dataclass(frozen=True)
class VersionRange:
    """An interval of acceptable versions.

    Pre-release versions satisfy the range only when ``include_prerelease``
    is set; parsing sets it when either bound is itself a pre-release.
    """

    min_version: Optional[Version] = None
    is_min_inclusive: bool = True
    max_version: Optional[Version] = None
    is_max_inclusive: bool = False
    include_prerelease: bool = False

    @property
    def has_lower_bound(self) -> bool:
        return self.min_version is not None

    @property
    def has_upper_bound(self) -> bool:
        return self.max_version is not None

    def satisfies(self, value: VersionLike) -> bool:
        """Check whether ``value`` lies within this range."""
        version = parse_version(value)
        if version.prerelease and not self.include_prerelease:
            return False

        key = version_key(version)
        if self.min_version is not None:
            low = version_key(self.min_version)
            if key < low or (key == low and not self.is_min_inclusive):
                return False
        if self.max_version is not None:
            high = version_key(self.max_version)
            if key > high or (key == high and not self.is_max_inclusive):
                return False
        return True

    @classmethod
    def all(cls) -> "VersionRange":
        """Every version, pre-releases included."""
        return cls(None, True, None, True, include_prerelease=True)

    @classmethod
    def all_stable(cls) -> "VersionRange":
        """Every stable version."""
        return cls(None, True, None, True, include_prerelease=False)

    @classmethod
    def exact(cls, value: VersionLike) -> "VersionRange":
        version = parse_version(value)
        return cls(version, True, version, True, include_prerelease=bool(version.prerelease))

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """Parse interval notation.

        ``1.0`` means ``>= 1.0``; ``[1.0]`` is exact; ``[1.0,2.0)``,
        ``(,2.0]`` and ``(1.0,)`` are intervals with the usual bracket
        meaning.

        Raises:
            VersionRangeParseError: on malformed input.
        """
        if text is None:
            raise VersionRangeParseError("Version range is None")
        s = text.strip()
        if not s:
            raise VersionRangeParseError("Empty version range")

        if s[0] not in "[(":
            version = _parse_bound(s, text)
            return cls(version, True, None, False, include_prerelease=bool(version.prerelease))

        if len(s) < 3 or s[-1] not in "])":
            raise VersionRangeParseError(f"Invalid version range '{text}'")
        is_min_inclusive = s[0] == "["
        is_max_inclusive = s[-1] == "]"
        parts = s[1:-1].split(",")

        if len(parts) == 1:
            if not (is_min_inclusive and is_max_inclusive):
                raise VersionRangeParseError(f"Exact version must use [] brackets: '{text}'")
            version = _parse_bound(parts[0], text)
            return cls.exact(version)
        if len(parts) != 2:
            raise VersionRangeParseError(f"Invalid version range '{text}'")

        low = _parse_bound(parts[0], text) if parts[0].strip() else None
        high = _parse_bound(parts[1], text) if parts[1].strip() else None
        if low is not None and high is not None:
            if version_key(low) > version_key(high):
                raise VersionRangeParseError(f"Minimum exceeds maximum in '{text}'")
            if version_key(low) == version_key(high) and not (is_min_inclusive and is_max_inclusive):
                raise VersionRangeParseError(f"Empty version range '{text}'")

        include_prerelease = bool(
            (low is not None and low.prerelease) or (high is not None and high.prerelease)
        )
        return cls(low, is_min_inclusive, high, is_max_inclusive, include_prerelease)

    def __str__(self) -> str:
        low = normalize_version(self.min_version) if self.min_version is not None else ""
        high = normalize_version(self.max_version) if self.max_version is not None else ""
        if low and low == high and self.is_min_inclusive and self.is_max_inclusive:
            return f"[{low}]"
        left = "[" if self.is_min_inclusive else "("
        right = "]" if self.is_max_inclusive else ")"
        return f"{left}{low}, {high}{right}"


def _parse_bound(part: str, original: str) -> Version:
    try:
        return parse_version(part.strip())
    except ValueError as e:
        raise VersionRangeParseError(f"Invalid version '{part.strip()}' in range '{original}'") from e


def create_version_range(text: Optional[str], include_prerelease: bool) -> VersionRange:
    """Parse ``text`` and force the pre-release flag.

    An empty string means every version from the lowest pre-release up.
    """
    if not text:
        version_range = VersionRange(parse_version("0.0.0-alpha"), True, None, False)
    else:
        version_range = VersionRange.parse(text)
    return set_include_prerelease(version_range, include_prerelease)


def set_include_prerelease(version_range: VersionRange, include_prerelease: bool) -> VersionRange:
    """Copy of ``version_range`` with the pre-release flag replaced."""
    return dataclasses.replace(version_range, include_prerelease=include_prerelease)


__all__ = [
    "Version",
    "VersionRange",
    "create_version_range",
    "normalize_version",
    "parse_version",
    "revision",
    "set_include_prerelease",
    "version_key",
]
