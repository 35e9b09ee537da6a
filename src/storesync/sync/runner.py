"""
SyncRunner: wraps one store sync job with progress and history bookkeeping.

Flow for a single run:
  1. tracker.start() → in_progress record (or skip if another job is live)
  2. job(report) runs; each report() call updates the record's counters
  3. On success: tracker.finish(completed), recorder.record("completed")
  4. On exception: tracker.finish(failed), recorder.record("failed"), re-raise.
     History gets the partial counts from a SyncJobError, else 0/0.

Bookkeeping is observability only. If the store is down the job still runs
and its own outcome is unchanged.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from storesync.models.progress import ProgressStatus
from storesync.tracking.history import HistoryRecorder
from storesync.tracking.tracker import ProgressTracker

logger = logging.getLogger(__name__)


@dataclass
class SyncCounts:
    orders: int = 0
    products: int = 0


class SyncJobError(RuntimeError):
    """Raised by a job that fails after syncing some items; counts go to history."""

    def __init__(self, message: str, counts: SyncCounts):
        super().__init__(message)
        self.counts = counts


ReportFn = Callable[..., None]
SyncJob = Callable[[ReportFn], Awaitable[SyncCounts]]


class SyncRunner:
    """Runs sync jobs for stores, one at a time per store."""

    def __init__(self, tracker: ProgressTracker, recorder: HistoryRecorder):
        self.tracker = tracker
        self.recorder = recorder

    async def run(
        self, store_id: str, connection_id: str, job: SyncJob
    ) -> Optional[SyncCounts]:
        """
        Run `job` for a store.

        Args:
            store_id: Store being mirrored.
            connection_id: Platform connection the job uses.
            job: async callable taking report(current, total, notes=None)
                and returning SyncCounts.

        Returns:
            The job's counts, or None if another sync was already running.

        Raises:
            Any exception from the job (after recording the failure).
        """
        started = self.tracker.start(store_id, connection_id)
        if started.ok and not started.created:
            logger.info(
                "Skipping sync for store %s: sync %s already running",
                store_id,
                started.record.id,
            )
            return None

        record_id = started.record.id if started.record else None
        if record_id is None:
            logger.warning("Running sync for store %s without progress tracking", store_id)

        def report(current: int, total: int, notes: Optional[str] = None) -> None:
            if record_id is not None:
                self.tracker.report(record_id, current, total, notes)

        try:
            counts = await job(report)
        except Exception as exc:
            if record_id is not None:
                self.tracker.finish(record_id, ProgressStatus.FAILED, notes=str(exc))
            partial = exc.counts if isinstance(exc, SyncJobError) else SyncCounts()
            self.recorder.record(
                store_id,
                partial.orders,
                partial.products,
                ProgressStatus.FAILED,
                error=str(exc),
            )
            raise

        if record_id is not None:
            self.tracker.finish(record_id, ProgressStatus.COMPLETED)
        self.recorder.record(
            store_id, counts.orders, counts.products, ProgressStatus.COMPLETED
        )
        return counts
