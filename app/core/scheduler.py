"""Background job scheduler for score snapshots."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import get_settings
from app.core.sync import (
    capture_secure_scores_for_all_tenants,
    cleanup_old_secure_score_history,
    run_daily_scores,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def cleanup_secure_score_history_job() -> int:
    return cleanup_old_secure_score_history()


def init_scheduler() -> AsyncIOScheduler:
    """Initialize and configure the background scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler()

    # Daily maturity scores
    scheduler.add_job(
        run_daily_scores,
        trigger=CronTrigger(hour=settings.daily_scores_hour, minute=0),
        id="daily_scores",
        name="Daily Tenant Scores",
        replace_existing=True,
    )

    if settings.secure_score_snapshot_enabled:
        # Last day of every month at 23:59
        scheduler.add_job(
            capture_secure_scores_for_all_tenants,
            trigger=CronTrigger(day="last", hour=23, minute=59),
            id="secure_score_snapshot",
            name="Monthly Secure Score Snapshot",
            replace_existing=True,
        )

        # 1st of every month at 01:00
        scheduler.add_job(
            cleanup_secure_score_history_job,
            trigger=CronTrigger(day=1, hour=1, minute=0),
            id="secure_score_cleanup",
            name="Secure Score History Cleanup",
            replace_existing=True,
        )

    logger.info(f"Scheduler initialized with {len(scheduler.get_jobs())} jobs")
    return scheduler


def get_scheduler() -> AsyncIOScheduler | None:
    """Get the scheduler instance."""
    return scheduler


async def trigger_manual_sync(job_type: str) -> bool:
    """Run a scheduled job immediately.

    Returns:
        False if ``job_type`` is unknown
    """
    job_functions = {
        "daily_scores": run_daily_scores,
        "secure_score_snapshot": capture_secure_scores_for_all_tenants,
        "secure_score_cleanup": cleanup_secure_score_history_job,
    }

    if job_type not in job_functions:
        return False

    logger.info(f"Manually triggering {job_type}")
    await job_functions[job_type]()
    return True
