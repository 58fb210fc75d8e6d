"""External service interfaces and their offline implementations."""

from holdsweep.services.base import DirectorySource, StatusService
from holdsweep.services.memory import InMemoryDirectory, InMemoryStatusService
from holdsweep.services.snapshot import (
    SnapshotDirectory,
    SnapshotStatusService,
    SnapshotStore,
)

__all__ = [
    "DirectorySource",
    "InMemoryDirectory",
    "InMemoryStatusService",
    "SnapshotDirectory",
    "SnapshotStatusService",
    "SnapshotStore",
    "StatusService",
]
