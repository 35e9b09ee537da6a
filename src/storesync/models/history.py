"""Sync history audit model."""
from typing import Optional

from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from storesync.models.progress import utcnow


class SyncHistory(SQLModel, table=True):
    """Records each finished sync attempt. Append-only."""

    __tablename__ = "sync_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: str = Field(index=True)
    orders_synced: int = 0
    products_synced: int = 0
    status: str  # "completed", "failed"
    error_message: Optional[str] = None
    sync_date: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime())
