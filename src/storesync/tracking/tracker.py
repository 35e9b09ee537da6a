"""
ProgressTracker: lifecycle of a store's sync job in the sync_progress table.

State machine per store:

    (none) ──start()──▶ in_progress ──finish(completed)──▶ completed
                          │  ▲
                          │  └── report() updates counters
                          │
                          └── finish(failed) or stale on read ──▶ failed

completed and failed are terminal. Every transition out of in_progress is a
compare-and-swap on status, so a job finishing and a poller failing it as
stale cannot both win.

Coordination happens only through the store: the tracker keeps no per-job
state and may be shared between the job and any number of pollers.
Storage failures never raise out of start/report/finish; they come back as
a TrackerResult with kind=storage_unavailable.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from storesync.models.progress import ProgressStatus, SyncProgress, utcnow
from storesync.tracking.errors import (
    ActiveSyncExists,
    ResultKind,
    StorageUnavailable,
    SyncStatus,
    TrackerResult,
)
from storesync.tracking.provisioning import SchemaGuard
from storesync.tracking.staleness import DEFAULT_STALE_TIMEOUT, is_stale, timeout_note

logger = logging.getLogger(__name__)

IN_PROGRESS = ProgressStatus.IN_PROGRESS.value


class ProgressTracker:
    """Records start, progress, and end of sync jobs, one active job per store."""

    def __init__(
        self,
        store,
        *,
        timeout: timedelta = DEFAULT_STALE_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: SqlSyncStore (or any object with the same methods).
            timeout: inactivity after which an in_progress job counts as dead.
            clock: returns the current naive-UTC time; injectable for tests.
        """
        self.store = store
        self.timeout = timeout
        self.clock = clock
        self._schema = SchemaGuard(store)

    # ─── Job-side operations ──────────────────────────────────────────────────

    def start(self, store_id: str, connection_id: str) -> TrackerResult:
        """
        Mark a sync as running for `store_id`.

        If the store already has an in_progress record, nothing is written
        and that record is returned with created=False, whatever its age.
        Stale records are only failed by get_status() and the sweep.

        Raises:
            ValueError: if store_id or connection_id is empty.
        """
        _require_id(store_id, "store_id")
        _require_id(connection_id, "connection_id")
        try:
            return self._schema.run(
                lambda: self._start(store_id, connection_id), provision_first=True
            )
        except StorageUnavailable as exc:
            logger.error("Could not start sync progress for store %s: %s", store_id, exc)
            return TrackerResult(ResultKind.STORAGE_UNAVAILABLE, error=str(exc))

    def report(
        self,
        record_id: int,
        current: int,
        total: int,
        notes: Optional[str] = None,
    ) -> TrackerResult:
        """
        Update counters on an in_progress record.

        Dropped with kind=stale_write_ignored once the record has left
        in_progress (finished, or failed as stale by a poller).

        Raises:
            ValueError: on negative counters.
        """
        if current < 0 or total < 0:
            raise ValueError(f"Counters must be non-negative, got {current}/{total}")
        if total and current > total:
            logger.warning(
                "Sync %s reported current=%d above total=%d", record_id, current, total
            )

        patch = {"current": current, "total": total, "updated_at": self.clock()}
        if notes is not None:
            patch["notes"] = notes
        return self._transition(record_id, patch, action="report")

    def finish(
        self,
        record_id: int,
        outcome: Union[ProgressStatus, str],
        notes: Optional[str] = None,
    ) -> TrackerResult:
        """
        Move an in_progress record to a terminal state.

        Calling it again on a terminal record is a no-op.

        Raises:
            ValueError: if outcome is not completed or failed.
        """
        status = ProgressStatus(outcome)
        if not status.is_terminal:
            raise ValueError(f"finish() needs a terminal outcome, got {status.value}")

        patch = {"status": status.value, "updated_at": self.clock()}
        if notes is not None:
            patch["notes"] = notes
        return self._transition(record_id, patch, action=f"finish({status.value})")

    # ─── Poller-side operations ───────────────────────────────────────────────

    def get_status(self, store_id: str) -> SyncStatus:
        """
        Return the latest progress for `store_id`.

        A stale in_progress record is failed before returning, so a dead job
        never shows as running. Storage failures give success=False.
        """
        try:
            return self._schema.run(lambda: self._status(store_id))
        except StorageUnavailable as exc:
            logger.error("Could not read sync progress for store %s: %s", store_id, exc)
            return SyncStatus(success=False, error=f"Failed to get sync progress: {exc}")

    def reconcile_stale(self) -> int:
        """Check every store with an active job. Returns how many were failed."""
        try:
            active = self._schema.run(self.store.find_all_active)
        except StorageUnavailable as exc:
            logger.error("Could not list active syncs: %s", exc)
            return 0

        reconciled = 0
        for record in active:
            if self.get_status(record.store_id).reconciled_stale:
                reconciled += 1
        return reconciled

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _start(self, store_id: str, connection_id: str) -> TrackerResult:
        existing = self.store.find_active(store_id)
        if existing is not None:
            logger.info("Sync %s already in progress for store %s", existing.id, store_id)
            return TrackerResult(ResultKind.OK, record=existing)

        now = self.clock()
        record = SyncProgress(
            store_id=store_id,
            connection_id=connection_id,
            status=IN_PROGRESS,
            current=0,
            total=0,
            started_at=now,
            updated_at=now,
        )
        try:
            record = self.store.insert(record)
        except ActiveSyncExists:
            # Another starter inserted between our lookup and insert
            existing = self.store.find_active(store_id)
            if existing is None:
                raise StorageUnavailable(
                    f"Active sync for store {store_id} disappeared during start"
                )
            logger.info("Lost start race for store %s to sync %s", store_id, existing.id)
            return TrackerResult(ResultKind.OK, record=existing)

        logger.info("Started sync %s for store %s", record.id, store_id)
        return TrackerResult(ResultKind.OK, record=record, created=True)

    def _transition(self, record_id: int, patch: dict, *, action: str) -> TrackerResult:
        try:
            changed = self._schema.run(
                lambda: self.store.update(record_id, patch, expected_status=IN_PROGRESS),
                provision_first=True,
            )
        except StorageUnavailable as exc:
            logger.error("Sync %s %s not recorded: %s", record_id, action, exc)
            return TrackerResult(ResultKind.STORAGE_UNAVAILABLE, error=str(exc))

        if not changed:
            logger.info("Sync %s is no longer in progress; %s ignored", record_id, action)
            return TrackerResult(ResultKind.STALE_WRITE_IGNORED)
        return TrackerResult(ResultKind.OK)

    def _status(self, store_id: str) -> SyncStatus:
        record = self.store.find_latest(store_id)
        if record is None:
            return SyncStatus(success=True)
        if not record.in_progress:
            return SyncStatus(success=True, record=record)

        now = self.clock()
        if not is_stale(record.updated_at, now, self.timeout):
            return SyncStatus(success=True, in_progress=True, record=record)

        if self._fail_stale(record, now):
            return SyncStatus(success=True, record=record, reconciled_stale=True)

        # The job finished between our read and the CAS; report what it wrote
        record = self.store.get(record.id)
        return SyncStatus(
            success=True,
            in_progress=bool(record and record.in_progress),
            record=record,
        )

    def _fail_stale(self, record: SyncProgress, now: datetime) -> bool:
        """Fail a stale in_progress record in place. False if it already left in_progress."""
        notes = timeout_note(self.timeout)
        changed = self.store.update(
            record.id,
            {"status": ProgressStatus.FAILED.value, "updated_at": now, "notes": notes},
            expected_status=IN_PROGRESS,
        )
        if changed:
            logger.warning(
                "Sync %s for store %s is stale (last update %s), marked failed",
                record.id,
                record.store_id,
                record.updated_at.isoformat(),
            )
            record.status = ProgressStatus.FAILED.value
            record.updated_at = now
            record.notes = notes
        return changed


def _require_id(value: str, name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
