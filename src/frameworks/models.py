"""Target framework descriptors and their parsing.

Accepts short folder names as they appear in package layouts and
manifests (``net45``, ``netstandard1.3``, ``dnxcore50``) and long names
(``.NETFramework,Version=v4.5``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from errors import FrameworkParseError

NET_FRAMEWORK = ".NETFramework"
NET_STANDARD = ".NETStandard"
NET_CORE_APP = ".NETCoreApp"
NET_CORE = ".NETCore"
NET_PORTABLE = ".NETPortable"
DNX = "DNX"
DNX_CORE = "DNXCore"
UAP = "UAP"
WINDOWS = "Windows"
WINDOWS_PHONE = "WindowsPhone"
ANY = "Any"
UNSUPPORTED = "Unsupported"

# Longest prefixes first so "netstandard" wins over "net".
_SHORT_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("netstandard", NET_STANDARD),
    ("netcoreapp", NET_CORE_APP),
    ("netcore", NET_CORE),
    ("net", NET_FRAMEWORK),
    ("dnxcore", DNX_CORE),
    ("dnx", DNX),
    ("uap", UAP),
    ("win", WINDOWS),
    ("wp", WINDOWS_PHONE),
)

_SHORT_NAMES: Dict[str, str] = {
    NET_STANDARD: "netstandard",
    NET_CORE_APP: "netcoreapp",
    NET_CORE: "netcore",
    NET_FRAMEWORK: "net",
    DNX_CORE: "dnxcore",
    DNX: "dnx",
    UAP: "uap",
    WINDOWS: "win",
    WINDOWS_PHONE: "wp",
}

# Families whose short names always use dotted versions.
_DOTTED = {NET_STANDARD, NET_CORE_APP, UAP}

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")

FrameworkVersion = Tuple[int, int, int, int]


def _pad(parts: Tuple[int, ...]) -> FrameworkVersion:
    padded = tuple(parts[:4]) + (0,) * (4 - min(len(parts), 4))
    return padded  # type: ignore[return-value]


def _parse_version_text(text: str, original: str) -> FrameworkVersion:
    text = text.strip()
    if text.lower().startswith("v"):
        text = text[1:]
    if not text:
        return _pad(())
    if not _VERSION_RE.match(text):
        raise FrameworkParseError(f"Invalid framework version '{text}' in '{original}'")
    if "." in text:
        return _pad(tuple(int(p) for p in text.split(".")))
    # Compact form: every digit is one part ("451" -> 4.5.1)
    return _pad(tuple(int(ch) for ch in text))


@dataclass(frozen=True)
class TargetFramework:
    """A framework family, version and optional profile."""

    identifier: str
    version: FrameworkVersion = (0, 0, 0, 0)
    profile: str = ""

    @property
    def is_desktop(self) -> bool:
        """True for full desktop frameworks (.NETFramework and DNX)."""
        return self.identifier in (NET_FRAMEWORK, DNX)

    @property
    def any_platform(self) -> bool:
        return self.identifier == ANY

    @property
    def is_unsupported(self) -> bool:
        return self.identifier == UNSUPPORTED

    @property
    def framework_name(self) -> str:
        """Long form, e.g. ``.NETFramework,Version=v4.5``."""
        if self.any_platform or self.is_unsupported:
            return self.identifier
        name = f"{self.identifier},Version=v{self._dotted(min_parts=2)}"
        if self.profile:
            name += f",Profile={self.profile}"
        return name

    @property
    def short_folder_name(self) -> str:
        if self.any_platform:
            return "any"
        if self.is_unsupported:
            return "unsupported"
        if self.identifier == NET_PORTABLE:
            return f"portable-{self.profile}"
        if self.identifier == NET_CORE_APP and self.version[0] >= 5:
            return f"net{self._dotted(min_parts=2)}"
        prefix = _SHORT_NAMES.get(self.identifier)
        if prefix is None:
            return self.framework_name
        if self.identifier in _DOTTED or any(p > 9 for p in self.version):
            return f"{prefix}{self._dotted(min_parts=2)}"
        return f"{prefix}{self._compact()}"

    def _trimmed(self, min_parts: int) -> Tuple[int, ...]:
        parts = list(self.version)
        while len(parts) > min_parts and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def _dotted(self, min_parts: int) -> str:
        return ".".join(str(p) for p in self._trimmed(min_parts))

    def _compact(self) -> str:
        return "".join(str(p) for p in self._trimmed(2))

    def __str__(self) -> str:
        return self.short_folder_name

    @classmethod
    def parse(cls, text: Optional[str]) -> "TargetFramework":
        """Parse a short or long framework name.

        Empty input and ``any`` give the any-platform framework. Unknown
        families give an unsupported framework, which is compatible with
        nothing.

        Raises:
            FrameworkParseError: if a known family carries a malformed version.
        """
        if text is None:
            return ANY_FRAMEWORK
        s = text.strip()
        if not s or s.lower() in ("any", "agnostic"):
            return ANY_FRAMEWORK
        if "," in s:
            return cls._parse_long(s)
        return cls._parse_short(s)

    @classmethod
    def _parse_long(cls, s: str) -> "TargetFramework":
        parts = [p.strip() for p in s.split(",")]
        identifier = parts[0]
        version: FrameworkVersion = _pad(())
        profile = ""
        for part in parts[1:]:
            key, _, value = part.partition("=")
            key = key.strip().lower()
            if key == "version":
                version = _parse_version_text(value, s)
            elif key == "profile":
                profile = value.strip()
        canonical = {v.lower(): v for v in (
            NET_FRAMEWORK, NET_STANDARD, NET_CORE_APP, NET_CORE, NET_PORTABLE,
            DNX, DNX_CORE, UAP, WINDOWS, WINDOWS_PHONE,
        )}
        identifier = canonical.get(identifier.lower(), identifier)
        return cls(identifier, version, profile)

    @classmethod
    def _parse_short(cls, s: str) -> "TargetFramework":
        lowered = s.lower()
        if lowered.startswith("portable-"):
            return cls(NET_PORTABLE, _pad(()), lowered[len("portable-"):])

        for prefix, identifier in _SHORT_PREFIXES:
            if not lowered.startswith(prefix):
                continue
            rest = lowered[len(prefix):]
            if rest and not rest[0].isdigit():
                continue
            version = _parse_version_text(rest, s)
            if identifier == NET_FRAMEWORK and "." in rest and version[0] >= 5:
                identifier = NET_CORE_APP
            return cls(identifier, version)

        return cls(UNSUPPORTED, _pad(()), s)


ANY_FRAMEWORK = TargetFramework(ANY)
