"""End-to-end sync run: resolve, then prune the destination, then prune caches."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Optional

from cli_config import SyncConfig
from registry.nuget.scan import find_manifests
from .extractor import SevenZipExtractor
from .materializer import Extractor
from .prune import prune_cache_root, prune_destination
from .report import SyncReport
from .resolver import ClosureResolver

logger = logging.getLogger(__name__)


async def run_sync(
    config: SyncConfig,
    extractor: Optional[Extractor] = None,
    report: Optional[SyncReport] = None,
) -> SyncReport:
    """Run one synchronization of ``config.destination_dir``.

    Garbage collection only starts after every resolution branch settled.
    When any branch failed the closure is incomplete, so both pruning passes
    are skipped and the failures are left in the report.
    """
    report = report if report is not None else SyncReport()
    extractor = extractor if extractor is not None else SevenZipExtractor(config.extractor)

    os.makedirs(config.destination_dir, exist_ok=True)
    scratch_root = tempfile.mkdtemp(prefix="nupkgsync-")
    logger.debug("Using temp path %s...", scratch_root)
    try:
        manifests = find_manifests(
            config.source_dir,
            exclude=[config.destination_dir],
            patterns=config.manifest_patterns,
        )
        resolver = ClosureResolver(
            destination_dir=config.destination_dir,
            cache_roots=config.cache_roots,
            scratch_root=scratch_root,
            extractor=extractor,
            package_prefix=config.package_prefix,
            archive_ext=config.archive_ext,
            max_concurrency=config.max_concurrency,
            report=report,
        )
        failures = await resolver.resolve_all(manifests)
        logger.info("Resolved %d unique package(s)", len(resolver.visited))

        if failures:
            logger.error(
                "%d manifest(s) failed to resolve; skipping destination and cache pruning",
                len(failures),
            )
            return report

        prune_destination(
            config.destination_dir,
            resolver.visited,
            archive_ext=config.archive_ext,
            report=report,
        )
        if config.prune_cache:
            if not config.package_prefix:
                logger.warning(
                    "No package prefix set: keeping only the newest version of every package in %s",
                    ", ".join(config.prune_roots),
                )
            for cache_root in config.prune_roots:
                prune_cache_root(cache_root, package_prefix=config.package_prefix, report=report)
    finally:
        shutil.rmtree(scratch_root, ignore_errors=True)
        logger.debug("Deleted %s", scratch_root)
    return report
