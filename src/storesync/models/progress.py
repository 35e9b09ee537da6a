"""Live sync progress model: one row per sync attempt for a store."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import NaiveDatetime
from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, SQLModel


class ProgressStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ProgressStatus.IN_PROGRESS


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite round-trips unchanged."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


_ACTIVE_ONLY = text("status = 'in_progress'")


class SyncProgress(SQLModel, table=True):
    """Live status of one sync attempt.

    At most one row per store_id may be in_progress; the partial unique
    index enforces it for concurrent writers that both miss the lookup.
    """

    __tablename__ = "sync_progress"
    __table_args__ = (
        Index(
            "ux_sync_progress_active_store",
            "store_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: str = Field(index=True)
    connection_id: str
    status: str = ProgressStatus.IN_PROGRESS.value
    current: int = 0
    total: int = 0  # 0 means the total is not known yet
    started_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)
    notes: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self.status == ProgressStatus.IN_PROGRESS.value
