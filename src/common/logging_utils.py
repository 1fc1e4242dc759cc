"""Logging helpers shared by every module.

Modules log through ``logging.getLogger(__name__)``; this module only wires
the root handler and offers small helpers for structured DEBUG records.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_HANDLER_NAME = "nupkgsync-console"


def _level_from_env(default: int = logging.INFO) -> int:
    raw = os.environ.get(Constants.ENV_LOG_LEVEL, "")
    if not raw.strip():
        return default
    value = getattr(logging, raw.strip().upper(), None)
    return value if isinstance(value, int) else default


def configure_logging(level: Optional[int] = None) -> None:
    """Configure the root logger with a single console handler.

    Safe to call more than once; the console handler is only installed once
    and later calls only adjust the level.

    Args:
        level: Explicit level; defaults to NUPKGSYNC_LOG_LEVEL or INFO.
    """
    root = logging.getLogger()
    effective = level if level is not None else _level_from_env()

    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)

    root.setLevel(effective)


def set_console_level(level: int) -> None:
    """Raise or lower the console handler threshold without touching file handlers."""
    for handler in logging.getLogger().handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a timestamped file handler to the root logger."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped so records only carry the fields that were set.
    """
    return {key: value for key, value in fields.items() if value is not None}


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds (up to now when still running)."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
