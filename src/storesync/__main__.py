"""
Main entrypoint: stale-sync sweep scheduler and maintenance commands.

The status API runs separately under uvicorn.

Usage:
    python -m storesync                   # runs the stale-sweep scheduler
    python -m storesync status STORE_ID   # prints a store's sync status
    python -m storesync sweep             # one reconciliation pass
    python -m storesync init-db           # provisions the sync tables
    uvicorn storesync.api.main:app --host 0.0.0.0 --port 8000  # starts API
"""
import argparse
import asyncio
import json
import logging
import sys

from storesync.config import get_settings

logger = logging.getLogger(__name__)


def _build_tracker():
    from storesync.db.engine import get_store
    from storesync.tracking.tracker import ProgressTracker

    return ProgressTracker(get_store(), timeout=get_settings().stale_timeout)


def _run_status(store_id: str) -> int:
    status = _build_tracker().get_status(store_id)
    payload = {
        "success": status.success,
        "in_progress": status.in_progress,
        "reconciled_stale": status.reconciled_stale,
        "progress": status.record.model_dump(mode="json") if status.record else None,
        "error": status.error,
    }
    print(json.dumps(payload, indent=2))
    return 0 if status.success else 1


def _run_sweep() -> int:
    reconciled = _build_tracker().reconcile_stale()
    print(f"Reconciled {reconciled} stale sync(s)")
    return 0


def _run_init_db() -> int:
    from storesync.db.engine import get_store
    from storesync.tracking.errors import StorageUnavailable

    try:
        get_store().ensure_schema()
    except StorageUnavailable as exc:
        logger.error("%s", exc)
        return 1
    logger.info("Sync tables ready")
    return 0


async def _run_scheduler() -> None:
    from storesync.scheduler.jobs import build_scheduler

    settings = get_settings()
    scheduler = build_scheduler(_build_tracker())
    if not scheduler.get_jobs():
        logger.error("STALE_SWEEP_MINUTES is 0; nothing to schedule.")
        sys.exit(1)

    scheduler.start()
    logger.info("Scheduler started (stale sweep every %d min)", settings.stale_sweep_minutes)
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="storesync")
    sub = parser.add_subparsers(dest="command")
    status = sub.add_parser("status", help="print a store's sync status")
    status.add_argument("store_id")
    sub.add_parser("sweep", help="fail stale syncs once")
    sub.add_parser("init-db", help="create the sync tables")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "status":
        return _run_status(args.store_id)
    if args.command == "sweep":
        return _run_sweep()
    if args.command == "init-db":
        return _run_init_db()
    asyncio.run(_run_scheduler())
    return 0


if __name__ == "__main__":
    sys.exit(main())
