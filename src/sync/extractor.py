"""Adapter for the external archive extraction tool."""

from __future__ import annotations

import logging
from typing import List

from constants import Constants
from common.process import run_process
from errors import ExtractionError

logger = logging.getLogger(__name__)


class SevenZipExtractor:
    """Extracts single entries from an archive with 7-Zip.

    Runs ``<executable> e <archive> -o<target> <entry> -r -y -ssc-``: the entry
    is searched recursively and case-insensitively inside the archive and
    written flat into the target under the name it has in the archive.
    Any object exposing the same ``extract`` coroutine can stand in for it.
    """

    def __init__(self, executable: str = Constants.EXTRACTOR_EXECUTABLE):
        self.executable = executable

    def build_command(self, archive_path: str, target_dir: str, entry_name: str) -> List[str]:
        return [
            self.executable,
            "e",
            archive_path,
            f"-o{target_dir}",
            entry_name,
            "-r",
            "-y",
            "-ssc-",
        ]

    async def extract(self, archive_path: str, target_dir: str, entry_name: str) -> None:
        """Extract ``entry_name`` from ``archive_path`` into ``target_dir``.

        Raises:
            ExtractionError: On non-zero exit status or when the tool can't be launched.
        """
        command = self.build_command(archive_path, target_dir, entry_name)
        logger.debug("Extracting %s from %s", entry_name, archive_path)
        try:
            result = await run_process(command)
        except OSError as e:
            raise ExtractionError(command, None, str(e)) from e
        if not result.ok:
            raise ExtractionError(command, result.returncode, result.output)
