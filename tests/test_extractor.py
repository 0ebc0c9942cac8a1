"""Tests for filtered, traversal-safe archive extraction."""

import io
import logging
import os
import zipfile

from install.extractor import extract_files, extract_package, normalize_entry_name, nupkg_filter


def make_archive(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries:
            info = zipfile.ZipInfo(name)
            archive.writestr(info, content)
    buffer.seek(0)
    return buffer


class TestNupkgFilter:
    """Default inclusion predicate."""

    def test_excludes_bookkeeping_entries(self):
        assert not nupkg_filter(os.path.join("_rels", ".rels"))
        assert not nupkg_filter("[Content_Types].xml")
        assert not nupkg_filter(os.path.join("package", "services", "abc.psmdcp"))

    def test_includes_payload(self):
        assert nupkg_filter(os.path.join("lib", "net45", "Foo.dll"))
        assert nupkg_filter("Foo.nuspec")


class TestNormalizeEntryName:
    """Entry name normalization."""

    def test_strips_one_leading_separator_and_decodes(self):
        assert normalize_entry_name("/lib/My%20Lib.dll") == os.path.join("lib", "My Lib.dll")


class TestExtractFiles:
    """Extraction into a target directory."""

    def test_nested_entry_lands_in_nested_path(self, tmp_path):
        target = tmp_path / "out"
        archive = make_archive([("lib/net45/Foo.dll", b"dll")])
        with zipfile.ZipFile(archive) as zf:
            written = extract_files(zf, str(target))
        assert (target / "lib" / "net45" / "Foo.dll").read_bytes() == b"dll"
        assert written == [os.path.join("lib", "net45", "Foo.dll")]

    def test_parent_traversal_is_skipped(self, tmp_path, caplog):
        target = tmp_path / "out"
        archive = make_archive([
            ("../evil.txt", b"evil"),
            ("lib/../../also-evil.txt", b"evil"),
            ("ok.txt", b"ok"),
        ])
        with caplog.at_level(logging.WARNING, logger="install.extractor"):
            with zipfile.ZipFile(archive) as zf:
                written = extract_files(zf, str(target))

        assert written == ["ok.txt"]
        assert not (tmp_path / "evil.txt").exists()
        assert not (tmp_path / "also-evil.txt").exists()
        assert (target / "ok.txt").read_bytes() == b"ok"
        assert "outside target directory" in caplog.text

    def test_encoded_traversal_is_skipped(self, tmp_path):
        target = tmp_path / "out"
        archive = make_archive([("%2e%2e/evil.txt", b"evil")])
        with zipfile.ZipFile(archive) as zf:
            assert extract_files(zf, str(target)) == []
        assert not (tmp_path / "evil.txt").exists()

    def test_bookkeeping_entries_are_filtered(self, tmp_path):
        target = tmp_path / "out"
        archive = make_archive([
            ("_rels/.rels", b"x"),
            ("[Content_Types].xml", b"x"),
            ("package/services/metadata/core-properties/1.psmdcp", b"x"),
            ("Foo.nuspec", b"<package/>"),
        ])
        with zipfile.ZipFile(archive) as zf:
            written = extract_files(zf, str(target))
        assert written == ["Foo.nuspec"]
        assert not (target / "[Content_Types].xml").exists()
        assert not (target / "_rels" / ".rels").exists()

    def test_custom_predicate(self, tmp_path):
        target = tmp_path / "out"
        archive = make_archive([("a.txt", b"a"), ("b.txt", b"b")])
        with zipfile.ZipFile(archive) as zf:
            written = extract_files(zf, str(target), should_include=lambda n: n == "b.txt")
        assert written == ["b.txt"]

    def test_directory_entries_create_directories(self, tmp_path):
        target = tmp_path / "out"
        archive = make_archive([("content/empty/", b"")])
        with zipfile.ZipFile(archive) as zf:
            assert extract_files(zf, str(target)) == []
        assert (target / "content" / "empty").is_dir()

    def test_existing_files_are_overwritten(self, tmp_path):
        target = tmp_path / "out"
        target.mkdir()
        (target / "a.txt").write_bytes(b"old")
        archive = make_archive([("a.txt", b"new")])
        with zipfile.ZipFile(archive) as zf:
            extract_files(zf, str(target))
        assert (target / "a.txt").read_bytes() == b"new"

    def test_extract_package_from_stream(self, tmp_path, nupkg):
        target = tmp_path / "out"
        data = nupkg("Foo", "1.0.0", files={"lib/net45/Foo.dll": b"dll"})
        written = extract_package(str(target), io.BytesIO(data))
        assert sorted(written) == sorted(["Foo.nuspec", os.path.join("lib", "net45", "Foo.dll")])
