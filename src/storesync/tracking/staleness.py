"""Liveness rule for in-progress sync jobs."""
from datetime import datetime, timedelta

DEFAULT_STALE_TIMEOUT = timedelta(minutes=15)


def is_stale(
    updated_at: datetime,
    now: datetime,
    timeout: timedelta = DEFAULT_STALE_TIMEOUT,
) -> bool:
    """True when more than `timeout` has passed since the last update.

    Exactly `timeout` is not stale.
    """
    return now - updated_at > timeout


def timeout_note(timeout: timedelta = DEFAULT_STALE_TIMEOUT) -> str:
    """Note written onto a record that was failed by the stale check."""
    minutes = timeout.total_seconds() / 60
    return f"Sync timed out after {minutes:g} minutes of inactivity"
