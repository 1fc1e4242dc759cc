"""Shared fixtures: on-disk package caches and a zipfile-backed extractor."""

import os
import zipfile
from typing import Iterable, List, Optional, Tuple

import pytest

from errors import ExtractionError

NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>{name}</id>
    <version>{version}</version>
    <dependencies>
      <group targetFramework="net6.0">
{dependencies}
      </group>
    </dependencies>
  </metadata>
</package>
"""

CSPROJ_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project Sdk="Microsoft.NET.Sdk">
  <ItemGroup>
{references}
  </ItemGroup>
</Project>
"""


def write_nupkg(
    cache_root: str,
    name: str,
    version: str,
    dependencies: Iterable[Tuple[str, str]] = (),
    lowercase: bool = False,
) -> str:
    """Create ``cache_root/<name>/<version>/<name>.<version>.nupkg`` with a dll and a nuspec.

    With ``lowercase`` the directories and archive name are lowercased the way
    the NuGet global packages folder stores them; the entries inside keep the
    package id's casing.
    """
    dir_name = name.lower() if lowercase else name
    file_name = f"{name}.{version}.nupkg"
    if lowercase:
        file_name = file_name.lower()
    package_dir = os.path.join(cache_root, dir_name, version)
    os.makedirs(package_dir, exist_ok=True)
    path = os.path.join(package_dir, file_name)
    deps = "\n".join(
        f'        <dependency id="{dep_name}" version="{dep_version}" exclude="Build,Analyzers" />'
        for dep_name, dep_version in dependencies
    )
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(f"{name}.nuspec", NUSPEC_TEMPLATE.format(name=name, version=version, dependencies=deps))
        archive.writestr(f"lib/net6.0/{name}.dll", b"MZ\x90\x00")
    return path


def write_csproj(directory: str, file_name: str, references: Iterable[Tuple[str, str]]) -> str:
    """Write an SDK-style project with PackageReference items."""
    os.makedirs(directory, exist_ok=True)
    refs = "\n".join(
        f'    <PackageReference Include="{name}" Version="{version}" />'
        for name, version in references
    )
    path = os.path.join(directory, file_name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(CSPROJ_TEMPLATE.format(references=refs))
    return path


class ZipExtractor:
    """Stand-in for 7-Zip: copies the first entry whose base name matches, flat, into the target.

    Like ``7za e``, the entry is written under the name it has in the archive.
    ``case_sensitive`` mirrors 7-Zip's default matching on POSIX systems.
    """

    def __init__(self, fail_for: Optional[str] = None, case_sensitive: bool = False):
        self.calls: List[Tuple[str, str, str]] = []
        self.fail_for = fail_for
        self.case_sensitive = case_sensitive

    def _matches(self, member: str, entry_name: str) -> bool:
        if self.case_sensitive:
            return member == entry_name
        return member.lower() == entry_name.lower()

    async def extract(self, archive_path: str, target_dir: str, entry_name: str) -> None:
        self.calls.append((archive_path, target_dir, entry_name))
        if self.fail_for and self.fail_for.lower() in os.path.basename(archive_path).lower():
            raise ExtractionError(["7za", "e", archive_path], 2, "ERROR: Data Error")
        with zipfile.ZipFile(archive_path) as archive:
            for info in archive.infolist():
                member = os.path.basename(info.filename)
                if self._matches(member, entry_name):
                    with open(os.path.join(target_dir, member), "wb") as out:
                        out.write(archive.read(info))
                    return

    def descriptor_calls(self, package_file_name: str) -> int:
        return sum(
            1 for archive, _target, entry in self.calls
            if os.path.basename(archive).lower() == package_file_name.lower() and entry.endswith(".nuspec")
        )


@pytest.fixture
def extractor():
    return ZipExtractor()


@pytest.fixture
def workspace(tmp_path):
    """Source tree, destination, cache and scratch directories under tmp_path."""
    paths = {
        "source": tmp_path / "src",
        "destination": tmp_path / "src" / "Nuget",
        "cache": tmp_path / "cache",
        "scratch": tmp_path / "scratch",
    }
    for key in ("source", "cache", "scratch"):
        paths[key].mkdir(parents=True)
    return {key: str(value) for key, value in paths.items()}
