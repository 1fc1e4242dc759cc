"""Per-run record of package-level events."""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Package-level outcomes reported during a run."""
    CLONED = "cloned"
    DUPLICATE = "duplicate"
    PRESENT = "present"
    NOT_FOUND = "not_found"
    DELETED_STALE = "deleted_stale"
    DELETED_SUPERSEDED = "deleted_superseded"
    FAILED = "failed"


_LEVELS = {
    EventKind.NOT_FOUND: logging.WARNING,
    EventKind.FAILED: logging.ERROR,
}

_MESSAGES = {
    EventKind.CLONED: "Copied %s from cache to %s",
    EventKind.DUPLICATE: "Package %s is already processed",
    EventKind.PRESENT: "Package %s already exists in %s",
    EventKind.NOT_FOUND: "Package %s does not exist in cache %s",
    EventKind.DELETED_STALE: "Deleted %s from %s",
    EventKind.DELETED_SUPERSEDED: "Deleted outdated package %s at %s",
    EventKind.FAILED: "Failed to process %s: %s",
}


@dataclass(frozen=True)
class SyncEvent:
    """A single reported event."""
    kind: EventKind
    package: str
    path: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class SyncReport:
    """Thread-safe collection of SyncEvents; every event is logged when recorded."""

    def __init__(self) -> None:
        self._events: List[SyncEvent] = []
        self._lock = threading.Lock()

    def record(
        self,
        kind: EventKind,
        package: str,
        path: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> SyncEvent:
        event = SyncEvent(kind=kind, package=package, path=path, detail=detail)
        with self._lock:
            self._events.append(event)
        second = detail if kind is EventKind.FAILED else path
        logger.log(_LEVELS.get(kind, logging.INFO), _MESSAGES[kind], package, second)
        return event

    @property
    def events(self) -> List[SyncEvent]:
        with self._lock:
            return list(self._events)

    def events_of(self, kind: EventKind) -> List[SyncEvent]:
        return [e for e in self.events if e.kind is kind]

    def packages_of(self, kind: EventKind) -> List[str]:
        return [e.package for e in self.events_of(kind)]

    def counts(self) -> Dict[str, int]:
        counter = Counter(e.kind for e in self.events)
        return {kind.value: counter.get(kind, 0) for kind in EventKind}

    @property
    def has_failures(self) -> bool:
        return any(e.kind is EventKind.FAILED for e in self.events)

    @property
    def has_warnings(self) -> bool:
        return any(e.kind is EventKind.NOT_FOUND for e in self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.counts(),
            "events": [e.to_dict() for e in self.events],
        }

    def export_json(self, path: str) -> None:
        """Write the report to ``path`` as JSON.

        Raises:
            OSError: If the file cannot be written.
        """
        with open(path, "w", encoding="utf-8") as file:
            json.dump(self.to_dict(), file, ensure_ascii=False, indent=4)
        logger.info("JSON file has been successfully exported at: %s", path)
