"""Tests for manifest parsing and archive identity helpers."""

import io
import os
import zipfile

import pytest

from conftest import nuspec_xml
from errors import ManifestFormatError
from frameworks.models import ANY_FRAMEWORK, TargetFramework
from registry.nuget.manifest import (
    find_manifest_entry,
    read_identity_from_archive,
    read_manifest,
    rewrite_manifest_id,
)
from versioning.models import VersionRange, parse_version


GROUPED = """
<dependencies>
  <group targetFramework="net40">
    <dependency id="Legacy.Lib" version="1.0" />
  </group>
  <group targetFramework="netstandard2.0">
    <dependency id="Modern.Lib" version="[2.0,3.0)" />
    <dependency id="NoVersion.Lib" />
  </group>
</dependencies>
<frameworkAssemblies>
  <frameworkAssembly assemblyName="System.Xml" targetFramework="net40, net45" />
  <frameworkAssembly assemblyName="System.Net.Http" />
</frameworkAssemblies>
"""


class TestReadManifest:
    """Parsing of identity, dependency groups and framework references."""

    def test_identity_and_serviceable(self):
        manifest = read_manifest(nuspec_xml("Foo", "1.2", "<serviceable>true</serviceable>"))
        assert manifest.id == "Foo"
        assert manifest.version == parse_version("1.2.0")
        assert manifest.serviceable is True

    def test_grouped_dependencies(self):
        manifest = read_manifest(nuspec_xml("Foo", "1.0.0", GROUPED))
        groups = manifest.get_dependency_groups()
        assert [g.target_framework for g in groups] == [
            TargetFramework.parse("net40"),
            TargetFramework.parse("netstandard2.0"),
        ]
        modern = groups[1].packages
        assert modern[0].id == "Modern.Lib"
        assert modern[0].version_range == VersionRange.parse("[2.0,3.0)")
        assert modern[1].version_range == VersionRange.all_stable()

    def test_flat_dependencies_apply_to_any_framework(self):
        xml = '<dependencies><dependency id="Bar" version="1.0" /></dependencies>'
        groups = read_manifest(nuspec_xml("Foo", "1.0.0", xml)).get_dependency_groups()
        assert len(groups) == 1
        assert groups[0].target_framework == ANY_FRAMEWORK
        assert groups[0].packages[0].id == "Bar"

    def test_framework_assemblies_grouped_per_framework(self):
        manifest = read_manifest(nuspec_xml("Foo", "1.0.0", GROUPED))
        by_framework = {
            g.target_framework: g.items for g in manifest.get_framework_reference_groups()
        }
        assert by_framework[TargetFramework.parse("net40")] == ("System.Xml",)
        assert by_framework[TargetFramework.parse("net45")] == ("System.Xml",)
        assert by_framework[ANY_FRAMEWORK] == ("System.Net.Http",)

    def test_manifest_without_namespace(self):
        xml = b"<package><metadata><id>Foo</id><version>1.0</version></metadata></package>"
        assert read_manifest(xml).id == "Foo"

    def test_reads_from_stream(self):
        assert read_manifest(io.BytesIO(nuspec_xml("Foo", "1.0.0"))).id == "Foo"

    @pytest.mark.parametrize("xml", [
        b"<package>",
        b"<package><nometadata/></package>",
        b"<package><metadata><id>Foo</id></metadata></package>",
        b"<package><metadata><id>Foo</id><version>x.y</version></metadata></package>",
    ])
    def test_malformed_manifests_raise(self, xml):
        with pytest.raises(ManifestFormatError):
            read_manifest(xml)

    def test_bad_dependency_range_raises(self):
        xml = '<dependencies><dependency id="Bar" version="[2.0,1.0]" /></dependencies>'
        with pytest.raises(ManifestFormatError):
            read_manifest(nuspec_xml("Foo", "1.0.0", xml))


class TestArchiveHelpers:
    """Manifest lookup inside package archives."""

    def test_find_manifest_entry_is_root_level_and_case_insensitive(self, nupkg):
        data = nupkg("Foo", "1.0.0", manifest_name="foo.NUSPEC",
                     files={"content/other.nuspec": b"<x/>"})
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert find_manifest_entry(archive) == "foo.NUSPEC"

    def test_read_identity_from_archive(self, tmp_path, nupkg):
        path = tmp_path / "foo.nupkg"
        path.write_bytes(nupkg("Foo", "1.0.0.5"))
        identity = read_identity_from_archive(str(path))
        assert identity.name == "Foo"
        assert str(identity) == "Foo 1.0.0.5"

    def test_archive_without_manifest_raises(self, tmp_path, nupkg):
        path = tmp_path / "foo.nupkg"
        path.write_bytes(nupkg("Foo", "1.0.0", include_manifest=False))
        with pytest.raises(ManifestFormatError):
            read_identity_from_archive(str(path))

    def test_not_an_archive_raises(self, tmp_path):
        path = tmp_path / "foo.nupkg"
        path.write_bytes(b"definitely not a zip")
        with pytest.raises(ManifestFormatError):
            read_identity_from_archive(str(path))

    def test_rewrite_manifest_id(self, tmp_path):
        source = tmp_path / "foo.nuspec"
        source.write_bytes(nuspec_xml("foo", "1.0.0"))
        target = tmp_path / "Foo.nuspec"

        rewrite_manifest_id(str(source), str(target), "Foo")

        assert os.listdir(tmp_path) == ["Foo.nuspec"]
        assert read_manifest(target.read_bytes()).id == "Foo"
