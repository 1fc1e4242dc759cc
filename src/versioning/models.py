"""Data models for package identities and versions."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class PackageVersion:
    """Concrete package version: numeric components plus optional pre-release label."""
    numbers: Tuple[int, ...]
    label: Optional[str] = None

    def __str__(self) -> str:
        text = ".".join(str(n) for n in self.numbers)
        if self.label:
            text = f"{text}-{self.label}"
        return text


@dataclass(frozen=True, eq=False)
class PackageIdentity:
    """Name + version pair identifying one archive.

    Equality and hashing are case-insensitive on the canonical
    ``name.version`` string, matching how NuGet treats package ids.
    """
    name: str
    version: PackageVersion

    @property
    def canonical(self) -> str:
        return f"{self.name}.{self.version}"

    @property
    def key(self) -> str:
        """Case-folded canonical string used for set membership."""
        return self.canonical.casefold()

    def file_name(self, archive_ext: str) -> str:
        return f"{self.canonical}{archive_ext}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.canonical
