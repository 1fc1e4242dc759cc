"""Run configuration: config file loading and CLI override merging.

Precedence is CLI flag > config file > Constants defaults.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants, default_user_cache_root
from errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """Resolved settings for one sync run."""

    source_dir: str
    destination_dir: str
    cache_roots: List[str]
    prune_roots: List[str]
    package_prefix: Optional[str] = None
    archive_ext: str = Constants.ARCHIVE_EXT
    extractor: str = Constants.EXTRACTOR_EXECUTABLE
    max_concurrency: int = Constants.MAX_CONCURRENCY
    prune_cache: bool = True
    error_on_warnings: bool = False
    output: Optional[str] = None
    manifest_patterns: List[str] = field(default_factory=lambda: list(Constants.MANIFEST_PATTERNS))


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML or JSON file.

    Args:
        config_path: Path to a .yml/.yaml/.json file, or None.

    Returns:
        The ``sync`` section when present, otherwise the whole mapping.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    section = data.get(Constants.CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"'{Constants.CONFIG_SECTION}' section in {config_path} must be a mapping")
    return section


def _abs(path: str) -> str:
    return os.path.abspath(os.path.expanduser(str(path)))


def _as_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigError(f"'{key}' must be a path or a list of paths")


def _pick(cli_value: Any, file_config: Dict[str, Any], key: str, default: Any) -> Any:
    if cli_value is not None and cli_value is not False and cli_value != []:
        return cli_value
    value = file_config.get(key)
    return default if value is None else value


def build_config(args: Any, file_config: Optional[Dict[str, Any]] = None) -> SyncConfig:
    """Merge parsed CLI arguments with config file values into a SyncConfig.

    Raises:
        ConfigError: If a setting has an unusable value.
    """
    file_config = file_config or {}

    source_dir = _abs(_pick(getattr(args, "SOURCE", None), file_config, "source", os.getcwd()))
    destination = _pick(getattr(args, "DESTINATION", None), file_config, "destination", None)
    destination_dir = _abs(destination) if destination else os.path.join(source_dir, Constants.DESTINATION_DIR_NAME)

    cache_roots = _as_list(_pick(getattr(args, "CACHE_ROOTS", None), file_config, "cache_roots", None), "cache_roots")
    if not cache_roots:
        cache_roots = [default_user_cache_root()]
    cache_roots = [_abs(p) for p in cache_roots]

    extra_prune = _as_list(_pick(getattr(args, "PRUNE_ROOTS", None), file_config, "extra_prune_roots", None), "extra_prune_roots")
    prune_roots: List[str] = []
    for root in cache_roots + [_abs(p) for p in extra_prune]:
        if root not in prune_roots:
            prune_roots.append(root)

    try:
        max_concurrency = int(_pick(getattr(args, "MAX_CONCURRENCY", None), file_config, "max_concurrency", Constants.MAX_CONCURRENCY))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"max_concurrency must be an integer: {e}") from e
    if max_concurrency < 1:
        raise ConfigError("max_concurrency must be at least 1")

    archive_ext = str(file_config.get("archive_ext") or Constants.ARCHIVE_EXT)
    if not archive_ext.startswith("."):
        archive_ext = f".{archive_ext}"

    prune_cache = not getattr(args, "NO_CACHE_PRUNE", False) and bool(file_config.get("prune_cache", True))

    patterns = _as_list(file_config.get("manifest_patterns"), "manifest_patterns") or list(Constants.MANIFEST_PATTERNS)
    output = _pick(getattr(args, "OUTPUT", None), file_config, "output", None)

    config = SyncConfig(
        source_dir=source_dir,
        destination_dir=destination_dir,
        cache_roots=cache_roots,
        prune_roots=prune_roots,
        package_prefix=_pick(getattr(args, "PACKAGE_PREFIX", None), file_config, "package_prefix", None),
        archive_ext=archive_ext,
        extractor=str(_pick(getattr(args, "EXTRACTOR", None), file_config, "extractor", Constants.EXTRACTOR_EXECUTABLE)),
        max_concurrency=max_concurrency,
        prune_cache=prune_cache,
        error_on_warnings=bool(_pick(getattr(args, "ERROR_ON_WARNINGS", False), file_config, "error_on_warnings", False)),
        output=_abs(output) if output else None,
        manifest_patterns=patterns,
    )
    logger.debug("Resolved configuration: %s", config)
    return config
