"""Append-only audit log of finished sync attempts."""
import logging
from datetime import datetime
from typing import Callable, Optional, Union

from storesync.models.history import SyncHistory
from storesync.models.progress import ProgressStatus, utcnow
from storesync.tracking.errors import ResultKind, StorageUnavailable, TrackerResult
from storesync.tracking.provisioning import SchemaGuard

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Writes one SyncHistory row per finished job. Best effort: never raises on storage errors."""

    def __init__(self, store, *, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self._schema = SchemaGuard(store)

    def record(
        self,
        store_id: str,
        orders_count: int,
        products_count: int,
        status: Union[ProgressStatus, str],
        error: Optional[str] = None,
    ) -> TrackerResult:
        """
        Append a history entry for a finished sync.

        Args:
            store_id: Store that was synced.
            orders_count: Orders written during the attempt.
            products_count: Products written during the attempt.
            status: "completed" or "failed".
            error: Failure message, if any.

        Raises:
            ValueError: if status is not a terminal sync status.
        """
        status = ProgressStatus(status)
        if not status.is_terminal:
            raise ValueError(f"History needs a finished status, got {status.value}")

        entry = SyncHistory(
            store_id=store_id,
            orders_synced=orders_count,
            products_synced=products_count,
            status=status.value,
            error_message=error or None,
            sync_date=self.clock(),
        )
        try:
            self._schema.run(lambda: self.store.append_history(entry), provision_first=True)
        except StorageUnavailable as exc:
            logger.error("Failed to record sync history for store %s: %s", store_id, exc)
            return TrackerResult(ResultKind.STORAGE_UNAVAILABLE, error=str(exc))

        logger.info(
            "Recorded %s sync for store %s (%d orders, %d products)",
            status.value,
            store_id,
            orders_count,
            products_count,
        )
        return TrackerResult(ResultKind.OK)
