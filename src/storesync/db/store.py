"""
SqlSyncStore: the persistence adapter behind the progress tracker and the
history recorder.

Every call opens its own short session, so the adapter holds no state
beyond the engine and can be shared between a running job and any number
of status pollers. SQLAlchemy errors are translated into the tracking
exception taxonomy:

  - missing table        → SchemaMissing
  - active-row collision → ActiveSyncExists (partial unique index)
  - anything else        → StorageUnavailable
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import inspect, update
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from storesync.db.migrations import run_migrations
from storesync.models.history import SyncHistory
from storesync.models.progress import ProgressStatus, SyncProgress
from storesync.tracking.errors import (
    ActiveSyncExists,
    SchemaMissing,
    StorageUnavailable,
    TrackingError,
)

logger = logging.getLogger(__name__)

PROGRESS_TABLE = SyncProgress.__tablename__
HISTORY_TABLE = SyncHistory.__tablename__


class SqlSyncStore:
    """SQL-backed store for SyncProgress and SyncHistory rows."""

    def __init__(self, engine):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
        """
        self.engine = engine

    # ─── Provisioning ─────────────────────────────────────────────────────────

    def ensure_schema(self) -> None:
        """Create the sync tables and apply migrations.

        Idempotent. Two processes provisioning at once may collide on
        CREATE TABLE; that is fine as long as the tables exist afterwards.

        Raises:
            StorageUnavailable: if the tables still do not exist.
        """
        tables = [SyncProgress.__table__, SyncHistory.__table__]
        try:
            SQLModel.metadata.create_all(self.engine, tables=tables)
            run_migrations(self.engine)
        except SQLAlchemyError as exc:
            if self._has_table(PROGRESS_TABLE) and self._has_table(HISTORY_TABLE):
                logger.info("Schema provisioned concurrently: %s", exc)
                return
            raise StorageUnavailable(f"Could not provision sync tables: {exc}") from exc
        logger.debug("Sync tables provisioned")

    # ─── Progress reads ───────────────────────────────────────────────────────

    def get(self, record_id: int) -> Optional[SyncProgress]:
        with self._translated(PROGRESS_TABLE), Session(self.engine) as s:
            return s.get(SyncProgress, record_id)

    def find_active(self, store_id: str) -> Optional[SyncProgress]:
        """Return the in_progress record for a store, if any."""
        with self._translated(PROGRESS_TABLE), Session(self.engine) as s:
            return s.exec(
                select(SyncProgress)
                .where(SyncProgress.store_id == store_id)
                .where(SyncProgress.status == ProgressStatus.IN_PROGRESS.value)
            ).first()

    def find_latest(self, store_id: str) -> Optional[SyncProgress]:
        """Return the most recently updated record for a store."""
        with self._translated(PROGRESS_TABLE), Session(self.engine) as s:
            return s.exec(
                select(SyncProgress)
                .where(SyncProgress.store_id == store_id)
                .order_by(SyncProgress.updated_at.desc(), SyncProgress.id.desc())
                .limit(1)
            ).first()

    def find_all_active(self) -> List[SyncProgress]:
        with self._translated(PROGRESS_TABLE), Session(self.engine) as s:
            return list(
                s.exec(
                    select(SyncProgress).where(
                        SyncProgress.status == ProgressStatus.IN_PROGRESS.value
                    )
                ).all()
            )

    # ─── Progress writes ──────────────────────────────────────────────────────

    def insert(self, record: SyncProgress) -> SyncProgress:
        """Insert a new record and return it with its generated id.

        Raises:
            ActiveSyncExists: if the store already has an in_progress row.
        """
        with self._translated(PROGRESS_TABLE), Session(self.engine) as s:
            s.add(record)
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                raise ActiveSyncExists(
                    f"Store {record.store_id} already has an active sync"
                ) from exc
            s.refresh(record)
            return record

    def update(
        self,
        record_id: int,
        patch: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        """Apply `patch` to one record.

        With `expected_status`, the update only lands if the row still has
        that status (compare-and-swap in a single UPDATE statement).

        Returns:
            True if a row was changed.
        """
        stmt = update(SyncProgress).where(SyncProgress.id == record_id)
        if expected_status is not None:
            stmt = stmt.where(SyncProgress.status == expected_status)
        stmt = stmt.values(**patch)

        with self._translated(PROGRESS_TABLE), self.engine.begin() as conn:
            result = conn.execute(stmt)
            return result.rowcount > 0

    # ─── History ──────────────────────────────────────────────────────────────

    def append_history(self, entry: SyncHistory) -> SyncHistory:
        with self._translated(HISTORY_TABLE), Session(self.engine) as s:
            s.add(entry)
            s.commit()
            s.refresh(entry)
            return entry

    # ─── Internal helpers ─────────────────────────────────────────────────────

    @contextmanager
    def _translated(self, table: str) -> Iterator[None]:
        try:
            yield
        except TrackingError:
            raise
        except (OperationalError, ProgrammingError) as exc:
            if not self._has_table(table):
                raise SchemaMissing(f"Table {table} does not exist") from exc
            raise StorageUnavailable(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def _has_table(self, table: str) -> bool:
        try:
            return inspect(self.engine).has_table(table)
        except SQLAlchemyError:
            # Unknown; surface the underlying error instead
            return True
