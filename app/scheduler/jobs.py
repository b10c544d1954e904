"""
app/scheduler/jobs.py

APScheduler-based periodic sync of every active quarterly sheet.

Schedule
--------
  sheet_sync_all: every ``SCHEDULER_SYNC_INTERVAL_MINUTES`` minutes (default 60)

Sources are synced one after another with ``SHEET_SYNC_BATCH_DELAY_SECONDS``
between them. A source whose lease is held by a webhook or manual run is
skipped for that tick and picked up on the next one.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_scheduler_settings
from app.services.sheet_sync_service import get_sheet_sync_service
from sheet_sync.types import SyncTrigger

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: periodic full sync
# ---------------------------------------------------------------------------


def run_sheet_sync_all() -> None:
    """
    Full sync of all active sources. Per-source failures are logged by the
    service and never abort the remaining sources.
    """
    logger.info("Scheduler: sheet_sync_all starting")
    try:
        summaries = get_sheet_sync_service().sync_all_active(trigger=SyncTrigger.SCHEDULED)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: sheet_sync_all could not list sources: %s", exc)
        return

    failed = [summary for summary in summaries if not summary.succeeded]
    for summary in failed:
        logger.warning(
            "Scheduler: sheet_sync_all source_id=%s error=%s errors=%s",
            summary.source_id,
            summary.error,
            len(summary.result.errors) if summary.result is not None else None,
        )
    logger.info(
        "Scheduler: sheet_sync_all complete sources=%d failed=%d",
        len(summaries),
        len(failed),
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    With ``SCHEDULER_ENABLED=false`` the scheduler is returned with no jobs.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if not settings.enabled:
        logger.info("Scheduler disabled via SCHEDULER_ENABLED")
        return scheduler

    scheduler.add_job(
        run_sheet_sync_all,
        trigger="interval",
        minutes=settings.sync_interval_minutes,
        id="sheet_sync_all",
        name="Periodic sync of active quarterly sheets",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=600,
    )

    return scheduler
