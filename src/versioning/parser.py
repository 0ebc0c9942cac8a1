"""Token parsing utilities for library requests."""

from typing import Optional, Tuple

from library.models import LibraryRange, LibraryType
from .models import VersionRange, set_include_prerelease


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule."""
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def parse_cli_token(
    token: str,
    include_prerelease: bool = False,
    type_constraint: Optional[LibraryType] = None,
) -> LibraryRange:
    """Parse a ``Name[:range]`` token into a LibraryRange.

    A missing spec or ``latest`` means any stable version (any version
    at all when ``include_prerelease`` is set).

    Raises:
        VersionRangeParseError: if the range part is malformed.
    """
    identifier, spec = tokenize_rightmost_colon(token)
    if not identifier:
        raise ValueError(f"Missing library name in '{token}'")

    if spec is None or spec.lower() == 'latest':
        version_range = VersionRange.all() if include_prerelease else VersionRange.all_stable()
    else:
        version_range = VersionRange.parse(spec)
        if include_prerelease:
            version_range = set_include_prerelease(version_range, True)

    return LibraryRange(
        name=identifier,
        version_range=version_range,
        type_constraint=type_constraint,
    )
