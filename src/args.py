"""Argument parsing functionality for nupkgsync."""

import argparse
from typing import List, Optional

from constants import Constants


def parse_args(argv: Optional[List[str]] = None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="nupkgsync",
        description=(
            "Copy the NuGet packages referenced by a source tree (and their "
            "dependencies) from the local cache, then prune stale archives "
            "and outdated cache versions"
        ),
        add_help=True,
    )

    parser.add_argument("SOURCE",
                        help="Source directory scanned for project files (default: current directory)",
                        nargs="?",
                        type=str)
    parser.add_argument("-d", "--destination",
                        dest="DESTINATION",
                        help=f"Destination directory for archives (default: <source>/{Constants.DESTINATION_DIR_NAME})",
                        action="store",
                        type=str)
    parser.add_argument("--cache",
                        dest="CACHE_ROOTS",
                        help="Cache root to resolve packages from; repeat for several roots searched in order "
                             "(default: $NUGET_PACKAGES or ~/.nuget/packages)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--prune-root",
                        dest="PRUNE_ROOTS",
                        help="Additional cache root whose outdated versions are pruned (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--prefix",
                        dest="PACKAGE_PREFIX",
                        help="Only follow and prune packages whose name starts with this prefix "
                             "(without it, cache pruning covers every package in every prune root)",
                        action="store",
                        type=str)
    parser.add_argument("--extractor",
                        dest="EXTRACTOR",
                        help=f"7-Zip executable used to extract archives (default: {Constants.EXTRACTOR_EXECUTABLE})",
                        action="store",
                        type=str)
    parser.add_argument("-j", "--jobs",
                        dest="MAX_CONCURRENCY",
                        help=f"Maximum concurrent extractions/copies (default: {Constants.MAX_CONCURRENCY})",
                        action="store",
                        type=int)
    parser.add_argument("--no-cache-prune",
                        dest="NO_CACHE_PRUNE",
                        help="Do not delete outdated versions from cache roots (by default every package "
                             "in every cache and prune root keeps only its newest version).",
                        action="store_true")

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to JSON report file",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only output errors to console.",
                        action="store_true")
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if a package was missing from the cache.",
                        action="store_true")

    return parser.parse_args(argv)
