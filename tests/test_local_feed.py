"""Tests for the local folder feed and an end-to-end restore through it."""

import asyncio
import logging

import pytest

from conftest import build_nupkg
from errors import PackageNotFoundError, SourceUnavailableError
from frameworks.models import TargetFramework
from install.installer import install_from_provider
from install.repository import LocalPackageRepository
from library.models import LibraryRange
from registry.nuget.local_feed import LocalFolderFindPackageByIdResource
from registry.nuget.provider import SourceRepositoryDependencyProvider
from registry.nuget.source import PackageSource, SourceRepository
from versioning.models import VersionRange, parse_version


@pytest.fixture
def feed_dir(tmp_path):
    feed = tmp_path / "feed"
    feed.mkdir()
    deps = '<dependencies><dependency id="Bar" version="[1.0,2.0)" /></dependencies>'
    for version in ("1.0.0", "1.2.0", "2.0.0-beta"):
        (feed / f"foo.{version}.nupkg").write_bytes(
            build_nupkg("Foo", version, deps, files={"lib/net45/Foo.dll": version.encode()})
        )
    (feed / "renamed-on-disk.nupkg").write_bytes(build_nupkg("Bar", "1.1.0"))
    (feed / "notes.txt").write_text("not a package")
    return feed


class TestLocalFolderResource:
    """Find-by-id over a folder of archives."""

    def test_versions_are_read_from_manifests(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        versions = asyncio.run(resource.get_all_versions("FOO"))
        assert versions == [parse_version(v) for v in ("1.0.0", "1.2.0", "2.0.0-beta")]

    def test_file_names_do_not_matter(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        assert asyncio.run(resource.get_all_versions("bar")) == [parse_version("1.1.0")]

    def test_unknown_id_has_no_versions(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        assert asyncio.run(resource.get_all_versions("Nope")) == []

    def test_unreadable_archives_are_skipped(self, feed_dir, caplog):
        (feed_dir / "broken.nupkg").write_bytes(b"garbage")
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        with caplog.at_level(logging.WARNING):
            versions = asyncio.run(resource.get_all_versions("Foo"))
        assert len(versions) == 3
        assert "broken.nupkg" in caplog.text

    def test_missing_folder_is_unavailable(self, tmp_path):
        resource = LocalFolderFindPackageByIdResource(str(tmp_path / "missing"))
        with pytest.raises(SourceUnavailableError):
            asyncio.run(resource.get_all_versions("Foo"))

    def test_get_manifest(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        manifest = asyncio.run(resource.get_manifest("foo", parse_version("1.2.0")))
        assert manifest.id == "Foo"
        assert manifest.get_dependency_groups()[0].packages[0].id == "Bar"

    def test_missing_version_raises(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        with pytest.raises(PackageNotFoundError):
            asyncio.run(resource.get_manifest("Foo", parse_version("9.9.9")))

    def test_iter_package_streams_file(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))

        async def _read():
            return b"".join([c async for c in resource.iter_package("Foo", parse_version("1.0.0"))])

        assert asyncio.run(_read()) == (feed_dir / "foo.1.0.0.nupkg").read_bytes()

    def test_index_is_reused_unless_no_cache(self, feed_dir):
        resource = LocalFolderFindPackageByIdResource(str(feed_dir))
        asyncio.run(resource.get_all_versions("Foo"))
        (feed_dir / "foo.3.0.0.nupkg").write_bytes(build_nupkg("Foo", "3.0.0"))

        assert parse_version("3.0.0") not in asyncio.run(resource.get_all_versions("Foo"))
        resource.no_cache = True
        assert parse_version("3.0.0") in asyncio.run(resource.get_all_versions("Foo"))


class TestLocalRestore:
    """Resolve, expand and install through a local source."""

    def test_source_repository_builds_local_resource(self, feed_dir):
        repository = SourceRepository(PackageSource(str(feed_dir)))
        resource = asyncio.run(repository.get_resource())
        assert isinstance(resource, LocalFolderFindPackageByIdResource)
        assert not repository.package_source.is_http

    def test_resolve_expand_install(self, feed_dir, tmp_path):
        packages = str(tmp_path / "packages")
        lock_dir = str(tmp_path / "locks")
        provider = SourceRepositoryDependencyProvider(SourceRepository(PackageSource(str(feed_dir))))
        net45 = TargetFramework.parse("net45")

        async def _run():
            identity = await provider.find_library(
                LibraryRange("Foo", VersionRange.parse("[1.0,2.0)")), net45
            )
            dependencies = await provider.get_dependencies(identity, net45)
            installed = await install_from_provider(provider, identity, packages, lock_dir=lock_dir)
            await provider.close()
            return identity, dependencies, installed

        identity, dependencies, installed = asyncio.run(_run())

        assert identity.version == parse_version("1.2.0")
        assert [str(d.library_range) for d in dependencies] == ["Bar [1.0.0, 2.0.0)"]
        assert installed is True
        repository = LocalPackageRepository(packages)
        assert repository.is_installed(identity)
        assert "lib/net45/Foo.dll" in repository.list_files(identity)
