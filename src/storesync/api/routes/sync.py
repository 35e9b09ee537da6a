"""Sync status routes."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storesync.config import get_settings
from storesync.db.engine import get_store
from storesync.tracking.tracker import ProgressTracker

router = APIRouter()


class ProgressResponse(BaseModel):
    id: int
    store_id: str
    connection_id: Optional[str]  # NULL on rows migrated from older schemas
    status: str
    current: int
    total: int
    started_at: datetime
    updated_at: datetime
    notes: Optional[str]


class SyncStatusResponse(BaseModel):
    success: bool
    in_progress: bool
    reconciled_stale: bool = False
    progress: Optional[ProgressResponse] = None
    error: Optional[str] = None


def get_tracker() -> ProgressTracker:
    """FastAPI dependency that builds a tracker over the shared engine."""
    return ProgressTracker(get_store(), timeout=get_settings().stale_timeout)


@router.get("/{store_id}/status", response_model=SyncStatusResponse)
def sync_status(store_id: str, tracker: ProgressTracker = Depends(get_tracker)):
    """
    Return the latest sync progress for a store.

    Polling this endpoint also fails a job that has stopped reporting.
    Storage errors come back as success=false, not as a 5xx.
    """
    status = tracker.get_status(store_id)
    progress = None
    if status.record is not None:
        progress = ProgressResponse(**status.record.model_dump())
    return SyncStatusResponse(
        success=status.success,
        in_progress=status.in_progress,
        reconciled_stale=status.reconciled_stale,
        progress=progress,
        error=status.error,
    )
