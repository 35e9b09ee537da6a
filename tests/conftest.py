"""Shared test fixtures."""
from datetime import datetime, timedelta
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

# Import all models so SQLModel.metadata knows about them
from storesync.models.history import SyncHistory  # noqa: F401
from storesync.models.progress import SyncProgress  # noqa: F401
from storesync.db.store import SqlSyncStore
from storesync.tracking.history import HistoryRecorder
from storesync.tracking.tracker import ProgressTracker

T0 = datetime(2025, 1, 15, 12, 0, 0)


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="bare_engine")
def bare_engine_fixture():
    """In-memory SQLite engine with no tables, for provisioning tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="engine")
def engine_fixture(bare_engine):
    """In-memory SQLite engine with the sync tables provisioned."""
    SqlSyncStore(bare_engine).ensure_schema()
    return bare_engine


@pytest.fixture(name="store")
def store_fixture(engine) -> SqlSyncStore:
    return SqlSyncStore(engine)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="tracker")
def tracker_fixture(store, clock) -> ProgressTracker:
    return ProgressTracker(store, clock=clock)


@pytest.fixture(name="recorder")
def recorder_fixture(store, clock) -> HistoryRecorder:
    return HistoryRecorder(store, clock=clock)


@pytest.fixture(name="fetch_progress")
def fetch_progress_fixture(engine):
    """Read a progress row straight from the DB, bypassing the tracker."""

    def fetch(record_id: int) -> SyncProgress:
        with Session(engine) as s:
            return s.get(SyncProgress, record_id)

    return fetch


@pytest.fixture(name="progress_rows")
def progress_rows_fixture(engine):
    """All progress rows for a store, oldest first."""

    def rows(store_id: str):
        with Session(engine) as s:
            return s.exec(
                select(SyncProgress)
                .where(SyncProgress.store_id == store_id)
                .order_by(SyncProgress.id)
            ).all()

    return rows


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session
