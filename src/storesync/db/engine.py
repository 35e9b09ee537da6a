"""SQLModel engine singleton and store dependency."""
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from storesync.config import get_settings
from storesync.db.store import SqlSyncStore

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return the module-level engine, creating it on first call.

    Tables are not created here; SqlSyncStore provisions them lazily.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False  # shared across FastAPI threads
        _engine = create_engine(settings.database_url, connect_args=connect_args)
    return _engine


def get_store() -> SqlSyncStore:
    """Build a store adapter over the shared engine."""
    return SqlSyncStore(get_engine())
