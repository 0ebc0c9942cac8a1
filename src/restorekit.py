"""restorekit - NuGet-style package resolution and shared-cache installation.

Exits with an ``ExitCodes`` value.
"""
import asyncio
import logging
import sys

from constants import Constants, ExitCodes
from errors import (
    LockFileFormatError,
    LockTimeoutError,
    ManifestFormatError,
    NoCompatibleGroupError,
    PackageNotFoundError,
    RestoreError,
    SourceUnavailableError,
    VersionNotFoundError,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import configure
from frameworks.models import TargetFramework
from install.installer import install_from_provider
from install.repository import LocalPackageRepository
from library.models import LibraryIdentity, LibraryType
from lockfile.builder import create_lock_file_library, create_target_library
from lockfile.format import write_lock_file
from lockfile.models import LockFile, LockFileTarget
from registry.nuget.provider import SourceRepositoryDependencyProvider, require_library
from registry.nuget.source import PackageSource, SourceRepository
from versioning.models import normalize_version, parse_version
from versioning.parser import parse_cli_token

logger = logging.getLogger(__name__)

_EXIT_CODES = (
    (LockTimeoutError, ExitCodes.LOCK_TIMEOUT),
    (SourceUnavailableError, ExitCodes.CONNECTION_ERROR),
    (PackageNotFoundError, ExitCodes.RESOLUTION_ERROR),
    (VersionNotFoundError, ExitCodes.RESOLUTION_ERROR),
    (NoCompatibleGroupError, ExitCodes.RESOLUTION_ERROR),
    (ManifestFormatError, ExitCodes.FILE_ERROR),
    (LockFileFormatError, ExitCodes.FILE_ERROR),
)


def exit_code_for(error: Exception) -> ExitCodes:
    """Map an error to the process exit code."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCodes.FILE_ERROR


def create_provider(args) -> SourceRepositoryDependencyProvider:
    source = SourceRepository(
        PackageSource(Constants.DEFAULT_SOURCE),
        timeout=Constants.REQUEST_TIMEOUT,
    )
    return SourceRepositoryDependencyProvider(source, no_cache=bool(getattr(args, "NO_CACHE", False)))


async def run_resolve(args, provider: SourceRepositoryDependencyProvider) -> LibraryIdentity:
    library_range = parse_cli_token(args.PACKAGE, include_prerelease=args.PRERELEASE)
    identity = await require_library(provider, library_range)
    print(f"{identity.name} {normalize_version(identity.version)}")
    return identity


async def run_deps(args, provider: SourceRepositoryDependencyProvider) -> None:
    framework = TargetFramework.parse(args.FRAMEWORK)
    identity = LibraryIdentity(args.NAME, parse_version(args.VERSION), LibraryType.PACKAGE)
    dependencies = await provider.get_dependencies(identity, framework)
    if not dependencies:
        logger.info("%s has no dependencies for %s", identity, framework)
    for dependency in dependencies:
        print(dependency.library_range)


async def run_install(args, provider: SourceRepositoryDependencyProvider) -> None:
    library_range = parse_cli_token(args.PACKAGE, include_prerelease=args.PRERELEASE)
    identity = await require_library(provider, library_range)

    installed = await install_from_provider(
        provider,
        identity,
        Constants.PACKAGES_DIR,
        lock_timeout=Constants.LOCK_TIMEOUT_SEC,
        lock_dir=Constants.LOCK_DIR,
    )
    if installed:
        print(f"Installed {identity.name} {normalize_version(identity.version)}")
    else:
        print(f"{identity.name} {normalize_version(identity.version)} is already installed")

    if args.LOCK_FILE:
        repository = LocalPackageRepository(Constants.PACKAGES_DIR)
        library = create_lock_file_library(identity, repository)
        lock_file = LockFile(libraries=[library])
        if args.FRAMEWORK:
            framework = TargetFramework.parse(args.FRAMEWORK)
            manifest = await provider.get_manifest(identity)
            target = LockFileTarget(target_framework=framework, runtime_identifier=args.RUNTIME)
            target.libraries.append(
                create_target_library(identity, manifest, framework, library.files, args.RUNTIME)
            )
            lock_file.targets.append(target)
        write_lock_file(lock_file, args.LOCK_FILE)


_COMMANDS = {
    "resolve": run_resolve,
    "deps": run_deps,
    "install": run_install,
}


async def run_command(args) -> None:
    """Run the selected subcommand against the configured source."""
    provider = create_provider(args)
    try:
        await _COMMANDS[args.COMMAND](args, provider)
    finally:
        await provider.close()


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        file_handler = logging.FileHandler(args.LOG_FILE)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)

    configure(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main",
                                target=args.COMMAND, source=Constants.DEFAULT_SOURCE)
        )

    try:
        asyncio.run(run_command(args))
    except (RestoreError, ValueError) as e:
        logger.error("%s", e)
        code = exit_code_for(e) if isinstance(e, RestoreError) else ExitCodes.RESOLUTION_ERROR
        sys.exit(code.value)
    except OSError as e:
        logger.error("I/O error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        sys.exit(ExitCodes.FILE_ERROR.value)

    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
