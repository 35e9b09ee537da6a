"""
Schema migrations for the sync tables.

Uses ALTER TABLE ADD COLUMN for incremental schema evolution of tables
created by older releases. Each migration is idempotent: columns and
indexes are only added if absent.

Called from SqlSyncStore.ensure_schema() after create_all() so both
fresh installs and existing DBs are handled without manual steps.
"""
import logging

from sqlalchemy import inspect, text

from storesync.models.progress import SyncProgress

logger = logging.getLogger(__name__)


def run_migrations(engine) -> None:
    """Apply all pending schema migrations.

    Safe to call multiple times: checks column and index existence before
    altering.

    Args:
        engine: SQLAlchemy engine (SQLModel create_engine result).
    """
    with engine.connect() as conn:
        # SyncProgress: connection reference and free-text notes
        _add_column_if_missing(conn, "sync_progress", "connection_id", "TEXT")
        _add_column_if_missing(conn, "sync_progress", "notes", "TEXT")

        # SyncHistory: failure reason
        _add_column_if_missing(conn, "sync_history", "error_message", "TEXT")

        # One in-progress row per store; older DBs may hold duplicates
        _fail_duplicate_active_rows(conn)
        for index in SyncProgress.__table__.indexes:
            index.create(conn, checkfirst=True)

        conn.commit()


def _add_column_if_missing(conn, table: str, column: str, col_type: str) -> None:
    """Add a column to a table if it doesn't already exist.

    Args:
        conn: SQLAlchemy connection.
        table: Table name.
        column: Column name to add.
        col_type: SQL type string, e.g. "INTEGER", "TEXT".
    """
    existing_columns = {col["name"] for col in inspect(conn).get_columns(table)}
    if column not in existing_columns:
        logger.info("Adding column %s.%s", table, column)
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}"))


def _fail_duplicate_active_rows(conn) -> None:
    """Keep only the most recently updated in_progress row per store."""
    result = conn.execute(
        text(
            "UPDATE sync_progress SET status = 'failed', "
            "notes = 'Superseded by a newer sync' "
            "WHERE status = 'in_progress' AND id NOT IN ("
            "  SELECT id FROM ("
            "    SELECT id, ROW_NUMBER() OVER ("
            "      PARTITION BY store_id ORDER BY updated_at DESC, id DESC"
            "    ) AS rn FROM sync_progress WHERE status = 'in_progress'"
            "  ) ranked WHERE rn = 1"
            ")"
        )
    )
    if result.rowcount:
        logger.warning("Failed %d duplicate in-progress sync rows", result.rowcount)
