"""Dependency closure resolver.

Walks the dependency graph starting at project manifests, copying every
reachable package archive from a cache root into the destination directory
and recursing into the dependencies declared by each archive's own nuspec.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from typing import Awaitable, Iterable, List, Optional, Sequence, Set

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from registry.nuget.scan import extract_dependencies
from versioning.models import PackageIdentity
from .materializer import Extractor, with_extracted_entries
from .report import EventKind, SyncReport
from .visited import VisitedSet

logger = logging.getLogger(__name__)


async def _settle(awaitables: Iterable[Awaitable[None]]) -> None:
    """Await every branch, then re-raise the first failure.

    Sibling branches are never abandoned mid-flight, so once this returns
    (or raises) no work started here is still running.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result


def _copy_atomic(source: str, target: str) -> None:
    """Copy ``source`` to ``target`` through a sibling temp file and ``os.replace``.

    ``target`` either doesn't exist or is complete; an interrupted copy
    leaves nothing behind.
    """
    fd, partial = tempfile.mkstemp(
        prefix=f".{os.path.basename(target)}-",
        suffix=".partial",
        dir=os.path.dirname(target),
    )
    os.close(fd)
    try:
        shutil.copyfile(source, partial)
        os.replace(partial, target)
    except BaseException:
        try:
            os.remove(partial)
        except FileNotFoundError:
            pass
        raise


class ClosureResolver:
    """Materializes the transitive closure of the packages declared by manifests.

    One instance serves one run: the visited set, the concurrency limiter and
    the report are shared by every branch it spawns.
    """

    def __init__(
        self,
        destination_dir: str,
        cache_roots: Sequence[str],
        scratch_root: str,
        extractor: Extractor,
        package_prefix: Optional[str] = None,
        archive_ext: str = Constants.ARCHIVE_EXT,
        max_concurrency: int = Constants.MAX_CONCURRENCY,
        report: Optional[SyncReport] = None,
    ):
        """Initialize the resolver.

        Args:
            destination_dir: Directory receiving the copied archives.
            cache_roots: Cache roots searched in order for each package.
            scratch_root: Parent directory for per-archive scratch directories.
            extractor: External extraction tool adapter.
            package_prefix: Only follow packages whose name starts with this prefix.
            archive_ext: Archive file extension.
            max_concurrency: Upper bound on concurrent extractions and copies.
            report: Event sink; a fresh one is created when omitted.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.destination_dir = destination_dir
        self.cache_roots = list(cache_roots)
        self.scratch_root = scratch_root
        self.extractor = extractor
        self.package_prefix = package_prefix
        self.archive_ext = archive_ext
        self.max_concurrency = max_concurrency
        self.report = report if report is not None else SyncReport()
        self._visited = VisitedSet()
        self._limiter: Optional[asyncio.Semaphore] = None
        self._reported: Set[BaseException] = set()

    @property
    def visited(self) -> VisitedSet:
        return self._visited

    def _get_limiter(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running loop.
        if self._limiter is None:
            self._limiter = asyncio.Semaphore(self.max_concurrency)
        return self._limiter

    def _record_failure(self, subject: str, error: BaseException) -> None:
        if error in self._reported:
            return
        self._reported.add(error)
        self.report.record(EventKind.FAILED, subject, detail=str(error))

    def destination_path(self, identity: PackageIdentity) -> str:
        return os.path.join(self.destination_dir, identity.file_name(self.archive_ext))

    def find_in_cache(self, identity: PackageIdentity) -> Optional[str]:
        """Locate ``root/<name>/<version>/<name>.<version><ext>`` in the first root that has it.

        The NuGet global packages folder stores lowercased names, so the
        lowercased layout is tried after the declared casing.
        """
        file_name = identity.file_name(self.archive_ext)
        version = str(identity.version)
        for root in self.cache_roots:
            exact = os.path.join(root, identity.name, version, file_name)
            lowered = os.path.join(root, identity.name.lower(), version.lower(), file_name.lower())
            for candidate in dict.fromkeys((exact, lowered)):
                if os.path.isfile(candidate):
                    return candidate
        return None

    async def resolve_manifest(self, manifest_path: str) -> None:
        """Clone every package declared by ``manifest_path`` and their dependencies.

        Raises:
            ManifestParseError: If the manifest is not well-formed.
        """
        dependencies = extract_dependencies(manifest_path, self.package_prefix)
        logger.debug("Resolving %d package(s) declared by %s", len(dependencies), manifest_path)
        await _settle(self.clone_package(identity) for identity in dependencies)

    async def resolve_all(self, manifest_paths: Sequence[str]) -> List[BaseException]:
        """Resolve all manifests concurrently and wait until every branch settled.

        Returns:
            Failures that escaped a manifest's branch; empty on a clean run.
        """
        results = await asyncio.gather(
            *(self.resolve_manifest(path) for path in manifest_paths),
            return_exceptions=True,
        )
        failures: List[BaseException] = []
        for path, result in zip(manifest_paths, results):
            if isinstance(result, BaseException):
                failures.append(result)
                self._record_failure(path, result)
        return failures

    async def clone_package(self, identity: PackageIdentity) -> None:
        """Copy ``identity`` from cache to destination and follow its dependencies.

        Idempotent per run: only the first caller for an identity does any work.
        A cache miss ends this branch without failing the run. An archive
        already in the destination is not copied again, but its nuspec is
        still followed so its dependencies stay part of the closure.
        """
        name = identity.canonical
        if not self._visited.add_if_absent(identity):
            self.report.record(EventKind.DUPLICATE, name)
            return

        try:
            destination_file = self.destination_path(identity)
            if os.path.exists(destination_file):
                self.report.record(EventKind.PRESENT, name, self.destination_dir)
                archive_path = destination_file
            else:
                cache_file = self.find_in_cache(identity)
                if cache_file is None:
                    self.report.record(EventKind.NOT_FOUND, name, os.pathsep.join(self.cache_roots))
                    return
                async with self._get_limiter():
                    await asyncio.to_thread(_copy_atomic, cache_file, destination_file)
                self.report.record(EventKind.CLONED, name, self.destination_dir)
                archive_path = cache_file

            async def follow_descriptor(binary_path: str, descriptor_path: str) -> None:
                await self._clone_dependencies(identity, descriptor_path)

            await with_extracted_entries(
                archive_path,
                self.scratch_root,
                follow_descriptor,
                self.extractor,
                limiter=self._get_limiter(),
                archive_ext=self.archive_ext,
                identity=identity,
            )
        except Exception as e:
            self._record_failure(name, e)
            raise

    async def _clone_dependencies(self, parent: PackageIdentity, descriptor_path: str) -> None:
        dependencies = extract_dependencies(descriptor_path, self.package_prefix)
        if is_debug_enabled(logger):
            for identity in dependencies:
                logger.debug(
                    "Trying to clone %s which is a dependency of %s",
                    identity.canonical,
                    parent.canonical,
                    extra=extra_context(event="decision", component="resolver", action="follow_dependency"),
                )
        await _settle(self.clone_package(identity) for identity in dependencies)
