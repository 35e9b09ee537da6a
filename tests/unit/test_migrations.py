"""Tests for schema provisioning and migration helpers."""
import pytest
from sqlalchemy import inspect, text

from storesync.db.migrations import run_migrations
from storesync.db.store import SqlSyncStore

LEGACY_PROGRESS_DDL = """
CREATE TABLE sync_progress (
    id INTEGER PRIMARY KEY,
    store_id VARCHAR NOT NULL,
    status VARCHAR NOT NULL,
    current INTEGER NOT NULL,
    total INTEGER NOT NULL,
    started_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""


def _columns(engine, table):
    return {col["name"] for col in inspect(engine).get_columns(table)}


def _indexes(engine, table):
    return {ix["name"] for ix in inspect(engine).get_indexes(table)}


@pytest.fixture(name="legacy_engine")
def legacy_engine_fixture(bare_engine):
    """A DB created by an older release: no connection_id/notes, duplicate active rows."""
    with bare_engine.begin() as conn:
        conn.execute(text(LEGACY_PROGRESS_DDL))
        conn.execute(text(
            "INSERT INTO sync_progress (id, store_id, status, current, total, started_at, updated_at) "
            "VALUES (1, 'store-1', 'in_progress', 5, 10, '2025-01-15 10:00:00.000000', '2025-01-15 10:05:00.000000'),"
            "       (2, 'store-1', 'in_progress', 1, 10, '2025-01-15 11:00:00.000000', '2025-01-15 11:05:00.000000'),"
            "       (3, 'store-2', 'in_progress', 0, 0, '2025-01-15 11:00:00.000000', '2025-01-15 11:00:00.000000')"
        ))
    return bare_engine


class TestEnsureSchema:
    def test_creates_both_tables(self, bare_engine):
        SqlSyncStore(bare_engine).ensure_schema()
        tables = set(inspect(bare_engine).get_table_names())
        assert {"sync_progress", "sync_history"} <= tables

    def test_is_idempotent(self, bare_engine):
        store = SqlSyncStore(bare_engine)
        store.ensure_schema()
        store.ensure_schema()  # second call must be safe

    def test_creates_active_store_index(self, bare_engine):
        SqlSyncStore(bare_engine).ensure_schema()
        assert "ux_sync_progress_active_store" in _indexes(bare_engine, "sync_progress")


class TestRunMigrations:
    def test_run_migrations_is_idempotent(self, engine):
        run_migrations(engine)
        run_migrations(engine)

    def test_adds_missing_columns(self, legacy_engine):
        SqlSyncStore(legacy_engine).ensure_schema()
        cols = _columns(legacy_engine, "sync_progress")
        assert "connection_id" in cols
        assert "notes" in cols

    def test_keeps_newest_active_row_per_store(self, legacy_engine):
        SqlSyncStore(legacy_engine).ensure_schema()
        with legacy_engine.connect() as conn:
            rows = dict(
                conn.execute(text("SELECT id, status FROM sync_progress ORDER BY id")).all()
            )
        assert rows == {1: "failed", 2: "in_progress", 3: "in_progress"}

    def test_duplicate_row_gets_note(self, legacy_engine):
        SqlSyncStore(legacy_engine).ensure_schema()
        with legacy_engine.connect() as conn:
            note = conn.execute(text("SELECT notes FROM sync_progress WHERE id = 1")).scalar()
        assert note == "Superseded by a newer sync"

    def test_creates_unique_index_on_legacy_table(self, legacy_engine):
        SqlSyncStore(legacy_engine).ensure_schema()
        assert "ux_sync_progress_active_store" in _indexes(legacy_engine, "sync_progress")
