"""Parsing utilities for archive file names and manifest version strings."""

import os
import re
from functools import lru_cache
from typing import Optional, Pattern

from constants import Constants
from .models import PackageIdentity, PackageVersion

_LABEL = r"[0-9a-z\-]+(?:\.[0-9a-z\-]+)*"
_ARCHIVE_VERSION = rf"[0-9]+(?:\.[0-9]+){{2,}}(?:-{_LABEL})?"
_VERSION_RE = re.compile(rf"^(?P<numbers>[0-9]+(?:\.[0-9]+)+)(?:-(?P<label>{_LABEL}))?$", re.IGNORECASE)
_EXACT_BRACKET_RE = re.compile(r"^\[\s*([^,\[\]()]+?)\s*\]$")


@lru_cache(maxsize=16)
def _archive_pattern(archive_ext: str) -> Pattern[str]:
    return re.compile(
        rf"^(?P<name>.*?)\.(?P<version>{_ARCHIVE_VERSION}){re.escape(archive_ext)}$",
        re.IGNORECASE,
    )


def parse_version(text: Optional[str]) -> Optional[PackageVersion]:
    """Parse a concrete version string.

    Accepts ``1.2``, ``1.2.3``, ``1.2.3.4``, ``1.2.3-beta.1`` and the exact
    bracket form ``[1.2.3]``. Two-part versions are padded to three parts the
    way NuGet normalizes them. Ranges and floating versions return None.
    """
    if text is None:
        return None
    value = text.strip()
    bracket = _EXACT_BRACKET_RE.match(value)
    if bracket:
        value = bracket.group(1)
    match = _VERSION_RE.match(value)
    if not match:
        return None
    numbers = tuple(int(part) for part in match.group("numbers").split("."))
    if len(numbers) == 2:
        numbers = numbers + (0,)
    return PackageVersion(numbers=numbers, label=match.group("label"))


def parse_archive_name(
    file_name: str, archive_ext: str = Constants.ARCHIVE_EXT
) -> Optional[PackageIdentity]:
    """Derive the identity from ``<name>.<version><ext>``.

    The version needs at least three numeric groups and may carry a trailing
    pre-release label. Returns None (never raises) when the name doesn't fit.
    """
    match = _archive_pattern(archive_ext).match(file_name)
    if not match or not match.group("name"):
        return None
    version = parse_version(match.group("version"))
    if version is None:
        return None
    return PackageIdentity(name=match.group("name"), version=version)


def parse_archive_path(
    path: str, archive_ext: str = Constants.ARCHIVE_EXT
) -> Optional[PackageIdentity]:
    """Same as parse_archive_name, applied to the file name part of ``path``."""
    return parse_archive_name(os.path.basename(path), archive_ext)
