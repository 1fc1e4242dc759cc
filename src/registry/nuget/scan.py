"""NuGet manifest scanner: dependency declarations from .csproj, Directory.Build.props, packages.config and .nuspec files."""
from __future__ import annotations

import fnmatch
import logging
import os
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Sequence, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from errors import ManifestParseError
from versioning.models import PackageIdentity
from versioning.parser import parse_version

logger = logging.getLogger(__name__)

# (element tag, name attribute, version attribute)
_PACKAGE_REFERENCE = ("PackageReference", "Include", "Version")
_PACKAGES_CONFIG = ("package", "id", "version")
_NUSPEC_DEPENDENCY = ("dependency", "id", "version")


def _load_root(path: str) -> ET.Element:
    """Parse ``path`` and strip XML namespaces from every tag."""
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise ManifestParseError(path, str(e)) from e
    root = tree.getroot()
    # Remove namespace for easier parsing
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]
    return root


def _element_version(element: ET.Element, version_attr: str) -> Optional[str]:
    """Version from the attribute, or from a child element of the same name (MSBuild style)."""
    value = element.get(version_attr)
    if value is None:
        child = element.find(version_attr)
        if child is not None and child.text:
            value = child.text
    return value


def _matches_prefix(name: str, package_prefix: Optional[str]) -> bool:
    if not package_prefix:
        return True
    return name.casefold().startswith(package_prefix.casefold())


def _collect(
    root: ET.Element,
    path: str,
    spec: Tuple[str, str, str],
    package_prefix: Optional[str],
) -> List[PackageIdentity]:
    tag, name_attr, version_attr = spec
    found: List[PackageIdentity] = []
    seen = set()
    for element in root.iter(tag):
        name = (element.get(name_attr) or "").strip()
        raw_version = _element_version(element, version_attr)
        if not name or raw_version is None:
            continue
        if not _matches_prefix(name, package_prefix):
            if is_debug_enabled(logger):
                logger.debug("Skipping %s: outside prefix %s", name, package_prefix, extra=extra_context(
                    event="decision", component="scan", action="filter_prefix",
                    target=path, outcome="skipped"
                ))
            continue
        version = parse_version(raw_version)
        if version is None:
            logger.warning("Skipping %s %s in %s: not a concrete version", name, raw_version.strip(), path)
            continue
        identity = PackageIdentity(name=name, version=version)
        if identity.key in seen:
            continue
        seen.add(identity.key)
        found.append(identity)
    return found


def _spec_for(path: str) -> Tuple[str, str, str]:
    file_name = os.path.basename(path).lower()
    if file_name.endswith(Constants.DESCRIPTOR_EXT):
        return _NUSPEC_DEPENDENCY
    if file_name == Constants.PACKAGES_CONFIG_FILE.lower():
        return _PACKAGES_CONFIG
    return _PACKAGE_REFERENCE


def extract_dependencies(path: str, package_prefix: Optional[str] = None) -> List[PackageIdentity]:
    """Extract the declared dependencies of a project file or package descriptor.

    The file kind is picked from its name: ``*.nuspec`` yields ``dependency``
    elements, ``packages.config`` yields ``package`` elements and everything
    else (``*.csproj``, ``Directory.Build.props``) yields ``PackageReference``
    elements.

    Args:
        path: Manifest or descriptor path
        package_prefix: Only keep package names starting with this prefix (case-insensitive)

    Returns:
        Identities in declaration order, duplicates removed

    Raises:
        ManifestParseError: If the file is not well-formed XML
    """
    root = _load_root(path)
    identities = _collect(root, path, _spec_for(path), package_prefix)
    if is_debug_enabled(logger):
        logger.debug("Extracted dependencies", extra=extra_context(
            event="function_exit", component="scan", action="extract_dependencies",
            target=path, count=len(identities)
        ))
    return identities


def _is_excluded(dir_path: str, excluded: Sequence[str]) -> bool:
    for root in excluded:
        try:
            if os.path.commonpath([dir_path, root]) == root:
                return True
        except ValueError:
            continue
    return False


def find_manifests(
    dir_name: str,
    exclude: Iterable[str] = (),
    patterns: Sequence[str] = Constants.MANIFEST_PATTERNS,
) -> List[str]:
    """Recursively find project manifests under ``dir_name``.

    Args:
        dir_name: Directory to scan
        exclude: Directories whose contents are ignored (e.g. the destination)
        patterns: File name patterns considered manifests

    Returns:
        Sorted list of manifest paths
    """
    excluded = [os.path.abspath(p) for p in exclude]
    manifests: List[str] = []
    for current, dirs, files in os.walk(os.path.abspath(dir_name)):
        if _is_excluded(current, excluded):
            dirs[:] = []
            continue
        for file_name in files:
            if any(fnmatch.fnmatch(file_name, pattern) for pattern in patterns):
                manifests.append(os.path.join(current, file_name))
    manifests.sort()
    logger.info("Found %d manifest(s) under %s", len(manifests), dir_name)
    return manifests
