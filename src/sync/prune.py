"""Garbage collection for the destination directory and cache roots."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, List, Optional, Tuple

from constants import Constants
from versioning.comparator import compare_versions
from versioning.parser import parse_archive_name
from .report import EventKind, SyncReport
from .visited import VisitedSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PruneResult:
    """Paths removed (or that would be removed on a dry run) and paths kept."""
    removed: Tuple[str, ...] = ()
    kept: Tuple[str, ...] = ()


def prune_destination(
    destination_dir: str,
    visited: VisitedSet,
    archive_ext: str = Constants.ARCHIVE_EXT,
    report: Optional[SyncReport] = None,
    dry_run: bool = False,
) -> PruneResult:
    """Delete archives under ``destination_dir`` whose identity was not visited.

    Must only run once every resolution branch has settled; an in-flight
    branch is indistinguishable from an unreferenced archive. Files whose
    name doesn't parse are left alone.
    """
    if not os.path.isdir(destination_dir):
        return PruneResult()

    removed: List[str] = []
    kept: List[str] = []
    ext = archive_ext.lower()
    for current, _dirs, files in os.walk(destination_dir):
        for file_name in sorted(files):
            if not file_name.lower().endswith(ext):
                continue
            path = os.path.join(current, file_name)
            identity = parse_archive_name(file_name, archive_ext)
            if identity is None:
                logger.debug("Skipping %s: name doesn't match <name>.<version>%s", path, archive_ext)
                continue
            if identity in visited:
                kept.append(path)
                continue
            if not dry_run:
                os.remove(path)
            removed.append(path)
            if report is not None:
                report.record(EventKind.DELETED_STALE, identity.canonical, destination_dir)
            else:
                logger.info("Deleted %s from %s", identity.canonical, destination_dir)
    return PruneResult(removed=tuple(removed), kept=tuple(kept))


def _list_dirs(path: str) -> List[str]:
    return sorted(entry.name for entry in os.scandir(path) if entry.is_dir())


def prune_cache_root(
    cache_root: str,
    compare: Callable[[str, str], int] = compare_versions,
    package_prefix: Optional[str] = None,
    report: Optional[SyncReport] = None,
    dry_run: bool = False,
) -> PruneResult:
    """Keep only the newest version directory of every package in ``cache_root``.

    A missing cache root is expected (e.g. no shared cache configured) and
    only logs a warning.

    Args:
        cache_root: Root laid out as ``<name>/<version>/...``.
        compare: Three-way comparison on version directory names.
        package_prefix: Only prune package directories starting with this prefix.
        report: Event sink for deletions.
        dry_run: Report what would be deleted without deleting.
    """
    if not os.path.isdir(cache_root):
        logger.warning("%s Nuget cache does not exist", cache_root)
        return PruneResult()

    removed: List[str] = []
    kept: List[str] = []
    prefix = package_prefix.casefold() if package_prefix else None
    sort_key = cmp_to_key(compare)
    for package_name in _list_dirs(cache_root):
        if prefix and not package_name.casefold().startswith(prefix):
            continue
        package_dir = os.path.join(cache_root, package_name)
        versions = sorted(_list_dirs(package_dir), key=sort_key, reverse=True)
        if not versions:
            continue
        kept.append(os.path.join(package_dir, versions[0]))
        for version in versions[1:]:
            version_dir = os.path.join(package_dir, version)
            if not dry_run:
                shutil.rmtree(version_dir)
            removed.append(version_dir)
            if report is not None:
                report.record(EventKind.DELETED_SUPERSEDED, f"{package_name}.{version}", version_dir)
            else:
                logger.info("Deleted outdated package %s", version_dir)
    return PruneResult(removed=tuple(removed), kept=tuple(kept))
