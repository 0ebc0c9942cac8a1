"""Argument parsing functionality for restorekit."""

import argparse
from typing import List, Optional

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _add_global_options(parser):
    parser.add_argument("-s", "--source",
                        dest="SOURCE",
                        help="Package source: V3 service index URL, flat container URL or local folder",
                        action="store",
                        type=str)
    parser.add_argument("--packages",
                        dest="PACKAGES",
                        help="Root of the shared package cache",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--lock-timeout",
                        dest="LOCK_TIMEOUT",
                        help="Seconds to wait for a contended install lock (negative waits forever)",
                        action="store",
                        type=float)
    parser.add_argument("--no-cache",
                        dest="NO_CACHE",
                        help="Do not reuse feed responses within this run",
                        action="store_true")
    parser.add_argument("--prerelease",
                        dest="PRERELEASE",
                        help="Allow pre-release versions to satisfy ranges",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $RESTOREKIT_LOG_LEVEL, then WARNING)",
                        action="store",
                        type=str.upper,
                        choices=LOG_LEVELS,
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def build_parser():
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="restorekit",
        description="restorekit - resolve, inspect and install NuGet packages into a shared cache",
        add_help=True,
    )
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    resolve = subparsers.add_parser(
        "resolve", help="Resolve NAME[:RANGE] to the best available version")
    resolve.add_argument("PACKAGE",
                         help="Package id, optionally followed by :RANGE (e.g. Newtonsoft.Json:[12.0,13.0))",
                         type=str)

    deps = subparsers.add_parser(
        "deps", help="List the dependencies of one package version for a framework")
    deps.add_argument("NAME", help="Package id", type=str)
    deps.add_argument("VERSION", help="Exact package version", type=str)
    deps.add_argument("-f", "--framework",
                      dest="FRAMEWORK",
                      help="Target framework, e.g. net45 or netstandard2.0",
                      action="store",
                      type=str,
                      required=True)

    install = subparsers.add_parser(
        "install", help="Resolve NAME[:RANGE] and install it into the package cache")
    install.add_argument("PACKAGE",
                         help="Package id, optionally followed by :RANGE",
                         type=str)
    install.add_argument("-f", "--framework",
                         dest="FRAMEWORK",
                         help="Target framework used for the lock file target",
                         action="store",
                         type=str)
    install.add_argument("--runtime",
                         dest="RUNTIME",
                         help="Runtime identifier for native assets in the lock file target",
                         action="store",
                         type=str)
    install.add_argument("--lock-file",
                         dest="LOCK_FILE",
                         help="Write a lock file describing the installed package",
                         action="store",
                         type=str)

    return parser


def parse_args(argv: Optional[List[str]] = None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
