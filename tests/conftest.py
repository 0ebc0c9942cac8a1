"""Shared fixtures: in-memory package archives and isolated configuration."""

import io
import zipfile
from typing import Dict, Optional

import pytest

from constants import Constants

NUSPEC_NS = "http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd"

BOOKKEEPING_ENTRIES = {
    "_rels/.rels": b"<Relationships/>",
    "[Content_Types].xml": b"<Types/>",
    "package/services/metadata/core-properties/0123abcd.psmdcp": b"<coreProperties/>",
}


def nuspec_xml(package_id: str, version: str, metadata: str = "") -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<package xmlns="{NUSPEC_NS}">\n'
        "  <metadata>\n"
        f"    <id>{package_id}</id>\n"
        f"    <version>{version}</version>\n"
        f"    {metadata}\n"
        "  </metadata>\n"
        "</package>\n"
    ).encode("utf-8")


def build_nupkg(
    package_id: str,
    version: str,
    metadata: str = "",
    files: Optional[Dict[str, bytes]] = None,
    manifest_name: Optional[str] = None,
    include_manifest: bool = True,
) -> bytes:
    """Build a package archive with bookkeeping entries and optional payload."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        if include_manifest:
            name = manifest_name or f"{package_id}.nuspec"
            archive.writestr(name, nuspec_xml(package_id, version, metadata))
        for entry, content in BOOKKEEPING_ENTRIES.items():
            archive.writestr(entry, content)
        for entry, content in (files or {}).items():
            archive.writestr(entry, content)
    return buffer.getvalue()


@pytest.fixture
def nupkg():
    """Factory fixture returning package archive bytes."""
    return build_nupkg


@pytest.fixture
def lock_dir(tmp_path):
    path = tmp_path / "locks"
    path.mkdir()
    return str(path)


@pytest.fixture(autouse=True)
def _restore_constants():
    """Undo any Constants changes a test makes."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)
