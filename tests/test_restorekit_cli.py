"""End-to-end tests for the restorekit command line against a local feed."""

import json
import os

import pytest

from args import parse_args
from conftest import build_nupkg
from constants import ExitCodes
from errors import (
    LockTimeoutError,
    ManifestFormatError,
    SourceUnavailableError,
    VersionNotFoundError,
)
from restorekit import exit_code_for, main


@pytest.fixture
def feed(tmp_path):
    feed_dir = tmp_path / "feed"
    feed_dir.mkdir()
    deps = """
<dependencies>
  <group targetFramework="net40"><dependency id="Bar" version="1.0" /></group>
  <group targetFramework="netstandard2.0" />
</dependencies>"""
    for version in ("1.0.0", "1.5.0"):
        (feed_dir / f"foo.{version}.nupkg").write_bytes(
            build_nupkg("Foo", version, deps, files={"lib/net40/Foo.dll": b"x"})
        )
    return feed_dir


@pytest.fixture
def cli(tmp_path, feed, monkeypatch):
    """Run main() and return (exit code, stdout)."""
    for name in ("RESTOREKIT_SOURCE", "RESTOREKIT_PACKAGES", "RESTOREKIT_LOCK_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RESTOREKIT_LOCK_DIR", str(tmp_path / "locks"))
    packages = str(tmp_path / "packages")

    def _run(*argv, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--source", str(feed), "--packages", packages, "--loglevel", "WARNING", *argv])
        return exc_info.value.code, capsys.readouterr().out

    _run.packages = packages
    return _run


class TestParseArgs:
    """Argument parsing."""

    def test_install_options(self):
        args = parse_args(["--source", "/feed", "install", "Foo:[1.0,2.0)", "-f", "net45",
                           "--lock-file", "out.json"])
        assert args.COMMAND == "install"
        assert args.PACKAGE == "Foo:[1.0,2.0)"
        assert args.FRAMEWORK == "net45"
        assert args.LOCK_FILE == "out.json"
        assert args.SOURCE == "/feed"
        assert args.LOG_LEVEL is None

    def test_deps_requires_framework(self):
        with pytest.raises(SystemExit):
            parse_args(["deps", "Foo", "1.0.0"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestExitCodes:
    """Error to exit code mapping."""

    def test_mapping(self):
        assert exit_code_for(LockTimeoutError("x", 1.0)) is ExitCodes.LOCK_TIMEOUT
        assert exit_code_for(SourceUnavailableError("down")) is ExitCodes.CONNECTION_ERROR
        assert exit_code_for(VersionNotFoundError("none")) is ExitCodes.RESOLUTION_ERROR
        assert exit_code_for(ManifestFormatError("bad")) is ExitCodes.FILE_ERROR


class TestMain:
    """Subcommands end to end."""

    def test_resolve(self, cli, capsys):
        code, out = cli("resolve", "Foo:[1.0,2.0)", capsys=capsys)
        assert code == ExitCodes.SUCCESS.value
        assert out.strip() == "Foo 1.5.0"

    def test_resolve_without_match(self, cli, capsys):
        code, _ = cli("resolve", "Foo:[3.0,)", capsys=capsys)
        assert code == ExitCodes.RESOLUTION_ERROR.value

    def test_malformed_range(self, cli, capsys):
        code, _ = cli("resolve", "Foo:[3.0", capsys=capsys)
        assert code == ExitCodes.RESOLUTION_ERROR.value

    def test_deps(self, cli, capsys):
        code, out = cli("deps", "Foo", "1.0.0", "--framework", "net45", capsys=capsys)
        assert code == ExitCodes.SUCCESS.value
        assert out.strip() == "Bar [1.0.0, )"

    def test_deps_empty_group(self, cli, capsys):
        code, out = cli("deps", "Foo", "1.0.0", "--framework", "netcoreapp2.0", capsys=capsys)
        assert code == ExitCodes.SUCCESS.value
        assert out.strip() == ""

    def test_install_twice_and_lock_file(self, cli, capsys, tmp_path):
        lock_path = str(tmp_path / "project.lock.json")

        code, out = cli("install", "Foo", "-f", "net45", "--lock-file", lock_path, capsys=capsys)
        assert code == ExitCodes.SUCCESS.value
        assert out.strip() == "Installed Foo 1.5.0"
        assert os.path.isfile(os.path.join(cli.packages, "foo", "1.5.0", "foo.1.5.0.nupkg.sha512"))

        with open(lock_path, encoding="utf-8") as f:
            data = json.load(f)
        assert "Foo/1.5.0" in data["libraries"]
        assert data["targets"]["net45"]["Foo/1.5.0"]["runtime"] == {"lib/net40/Foo.dll": {}}

        code, out = cli("install", "Foo", capsys=capsys)
        assert code == ExitCodes.SUCCESS.value
        assert "already installed" in out

    def test_missing_source(self, cli, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--source", str(tmp_path / "nowhere"), "resolve", "Foo"])
        assert exc_info.value.code == ExitCodes.CONNECTION_ERROR.value
