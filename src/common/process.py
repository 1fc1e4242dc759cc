"""Async helper for running external tools."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from common.logging_utils import Timer, extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of a finished external process."""

    command: Sequence[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_process(command: Sequence[str]) -> ProcessResult:
    """Run ``command`` without a shell and capture combined stdout/stderr.

    Raises:
        OSError: If the executable cannot be launched.
    """
    with Timer() as t:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            stdin=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await proc.communicate()

    result = ProcessResult(
        command=list(command),
        returncode=proc.returncode if proc.returncode is not None else -1,
        output=stdout.decode("utf-8", errors="replace") if stdout else "",
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Process finished",
            extra=extra_context(
                event="process_exit",
                component="process",
                action="run",
                target=command[0] if command else None,
                returncode=result.returncode,
                duration_ms=t.duration_ms(),
            ),
        )
    return result
