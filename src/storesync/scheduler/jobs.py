"""
APScheduler jobs for stale-sync reconciliation.

Status reads already fail dead jobs on their own. The periodic sweep covers
stores nobody is polling, so their last record does not stay in_progress
until the next dashboard visit.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from storesync.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler(tracker) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        tracker: ProgressTracker used by the sweep.

    Returns:
        Configured AsyncIOScheduler (not yet started). Has no jobs when
        STALE_SWEEP_MINUTES is 0.
    """
    settings = get_settings()
    scheduler = AsyncIOScheduler()

    if settings.stale_sweep_minutes > 0:
        scheduler.add_job(
            _stale_sweep,
            trigger="interval",
            minutes=settings.stale_sweep_minutes,
            id="stale_sweep",
            replace_existing=True,
            kwargs={"tracker": tracker},
        )

    return scheduler


async def _stale_sweep(tracker) -> None:
    """Fail every in_progress sync that has stopped reporting."""
    try:
        reconciled = tracker.reconcile_stale()
        if reconciled:
            logger.info("Stale sweep failed %d dead sync(s)", reconciled)
    except Exception as exc:
        logger.error("Stale sweep failed: %s", exc)
