"""NuGet manifest support.

- scan.py: dependency declarations from .csproj, Directory.Build.props,
  packages.config and .nuspec files, plus manifest discovery
"""

from .scan import extract_dependencies, find_manifests  # noqa: F401

__all__ = [
    "extract_dependencies",
    "find_manifests",
]
