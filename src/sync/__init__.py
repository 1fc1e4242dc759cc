"""Package closure sync.

This package copies the transitive closure of referenced packages from a
cache into a destination directory and garbage-collects afterwards:
- resolver.py: dependency walk over project manifests and nuspec files
- materializer.py: scoped extraction of an archive's dll and nuspec
- extractor.py: 7-Zip adapter used for extraction
- prune.py: destination and cache garbage collection
- runner.py: one end-to-end run
"""

from .report import EventKind, SyncEvent, SyncReport
from .visited import VisitedSet
from .resolver import ClosureResolver
from .prune import PruneResult, prune_cache_root, prune_destination
from .runner import run_sync

__all__ = [
    "EventKind",
    "SyncEvent",
    "SyncReport",
    "VisitedSet",
    "ClosureResolver",
    "PruneResult",
    "prune_cache_root",
    "prune_destination",
    "run_sync",
]
