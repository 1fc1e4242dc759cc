"""Run-scoped set of already visited package identities."""

from __future__ import annotations

import threading
from typing import FrozenSet, Set, Union

from versioning.models import PackageIdentity


class VisitedSet:
    """Case-insensitive set of canonical identity strings.

    ``add_if_absent`` is the only mutator; membership check and insertion
    happen under one lock so concurrent branches never both claim the same
    identity.
    """

    def __init__(self) -> None:
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def _key(item: Union[PackageIdentity, str]) -> str:
        if isinstance(item, PackageIdentity):
            return item.key
        return item.casefold()

    def add_if_absent(self, identity: Union[PackageIdentity, str]) -> bool:
        """Insert ``identity``; return False when it was already present."""
        key = self._key(identity)
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, (PackageIdentity, str)):
            return False
        key = self._key(item)
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def snapshot(self) -> FrozenSet[str]:
        """Immutable copy of the case-folded canonical strings."""
        with self._lock:
            return frozenset(self._keys)
