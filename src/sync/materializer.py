"""Scoped extraction of a package's binary payload and descriptor."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, Tuple

from constants import Constants
from errors import MalformedArchiveNameError
from versioning.models import PackageIdentity
from versioning.parser import parse_archive_path

logger = logging.getLogger(__name__)

Continuation = Callable[[str, str], Awaitable[None]]


class Extractor(Protocol):
    async def extract(self, archive_path: str, target_dir: str, entry_name: str) -> None:
        ...


async def _extract(
    extractor: Extractor,
    limiter: Optional[asyncio.Semaphore],
    archive_path: str,
    target_dir: str,
    entry_name: str,
) -> None:
    if limiter is None:
        await extractor.extract(archive_path, target_dir, entry_name)
        return
    async with limiter:
        await extractor.extract(archive_path, target_dir, entry_name)


def _locate(directory: str, entry_name: str) -> str:
    """Path of ``entry_name`` in ``directory``, matched case-insensitively.

    The extraction tool writes an entry under the casing it has inside the
    archive, which can differ from the casing of the archive's file name.
    """
    path = os.path.join(directory, entry_name)
    if os.path.exists(path):
        return path
    wanted = entry_name.casefold()
    for name in os.listdir(directory):
        if name.casefold() == wanted:
            return os.path.join(directory, name)
    return path


@asynccontextmanager
async def extracted_entries(
    archive_path: str,
    scratch_root: str,
    extractor: Extractor,
    limiter: Optional[asyncio.Semaphore] = None,
    archive_ext: str = Constants.ARCHIVE_EXT,
    identity: Optional[PackageIdentity] = None,
) -> AsyncIterator[Tuple[str, str]]:
    """Extract ``<name>.dll`` and ``<name>.nuspec`` into a private scratch directory.

    Yields ``(binary_path, descriptor_path)``. The scratch directory is named
    after the full identity plus a random suffix and is removed on exit,
    whether or not the body raised.

    Entry names come from ``identity`` when given, otherwise from the archive
    name. The NuGet global packages folder lowercases archive names while the
    entries inside keep the package id's casing.

    Raises:
        MalformedArchiveNameError: If the archive name doesn't parse.
        ExtractionError: If the extraction tool fails.
    """
    parsed = parse_archive_path(archive_path, archive_ext)
    if parsed is None:
        raise MalformedArchiveNameError(archive_path)
    if identity is None:
        identity = parsed

    os.makedirs(scratch_root, exist_ok=True)
    scratch_dir = tempfile.mkdtemp(prefix=f"{identity.canonical}-", dir=scratch_root)
    try:
        binary_name = f"{identity.name}{Constants.BINARY_EXT}"
        descriptor_name = f"{identity.name}{Constants.DESCRIPTOR_EXT}"
        await _extract(extractor, limiter, archive_path, scratch_dir, binary_name)
        await _extract(extractor, limiter, archive_path, scratch_dir, descriptor_name)
        yield _locate(scratch_dir, binary_name), _locate(scratch_dir, descriptor_name)
    finally:
        shutil.rmtree(scratch_dir)
        logger.debug("Removed scratch directory %s", scratch_dir)


async def with_extracted_entries(
    archive_path: str,
    scratch_root: str,
    continuation: Continuation,
    extractor: Extractor,
    limiter: Optional[asyncio.Semaphore] = None,
    archive_ext: str = Constants.ARCHIVE_EXT,
    identity: Optional[PackageIdentity] = None,
) -> None:
    """Run ``continuation(binary_path, descriptor_path)`` against the extracted entries.

    The continuation is awaited to completion, including any nested work it
    starts, before the scratch directory is removed.
    """
    async with extracted_entries(
        archive_path, scratch_root, extractor, limiter, archive_ext, identity
    ) as (binary_path, descriptor_path):
        await continuation(binary_path, descriptor_path)
