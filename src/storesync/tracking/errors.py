"""
Error taxonomy and result types for progress bookkeeping.

Storage exceptions are raised by the store adapter and caught at the
tracker/history boundary, where they become a TrackerResult the caller can
inspect. A sync job never sees them as exceptions.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from storesync.models.progress import SyncProgress


# ── Exceptions ────────────────────────────────────────────────────────────────

class TrackingError(RuntimeError):
    """Base class for progress store failures."""


class StorageUnavailable(TrackingError):
    """Raised when the persistent store cannot be read or written."""


class SchemaMissing(StorageUnavailable):
    """Raised when a progress or history table does not exist yet."""


class ActiveSyncExists(TrackingError):
    """Raised by insert when the store already has an in_progress record."""


# ── Results ───────────────────────────────────────────────────────────────────

class ResultKind(str, Enum):
    OK = "ok"
    STALE_WRITE_IGNORED = "stale_write_ignored"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class TrackerResult:
    """Outcome of a tracker or history write."""

    kind: ResultKind
    record: Optional[SyncProgress] = None
    created: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """False only when the store could not be used."""
        return self.kind is not ResultKind.STORAGE_UNAVAILABLE

    @property
    def ignored(self) -> bool:
        return self.kind is ResultKind.STALE_WRITE_IGNORED


@dataclass
class SyncStatus:
    """Read-path answer for pollers.

    success=False means "no progress info available", which is different
    from in_progress=False ("definitely not running").
    """

    success: bool
    in_progress: bool = False
    record: Optional[SyncProgress] = None
    reconciled_stale: bool = False
    error: Optional[str] = None
