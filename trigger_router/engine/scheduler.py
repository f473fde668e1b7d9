"""APScheduler integration for FastAPI.

Runs the periodic sweep that marks PENDING orders past ``expires_at`` as EXPIRED.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from trigger_router.services.order_store import OrderStore
from trigger_router.utils.constants import INTERVAL_MINUTES

logger = logging.getLogger(__name__)

EXPIRY_JOB_ID = "expiry_sweep"
DEFAULT_SWEEP_MINUTES = 5


def _get_trigger(interval: str) -> IntervalTrigger:
    # Support arbitrary "<N>m" schedule intervals
    if interval.endswith("m") and interval[:-1].isdigit():
        return IntervalTrigger(minutes=int(interval[:-1]))
    minutes = INTERVAL_MINUTES.get(interval)
    if minutes is None:
        logger.warning(f"Unknown sweep interval {interval!r}, using {DEFAULT_SWEEP_MINUTES}m")
        minutes = DEFAULT_SWEEP_MINUTES
    return IntervalTrigger(minutes=minutes)


async def run_expiry_sweep(store: OrderStore) -> int:
    """One sweep cycle. Errors are logged so the job keeps its schedule."""
    try:
        return store.expire_stale()
    except Exception as e:
        logger.error(f"Expiry sweep failed: {e}", exc_info=True)
        return 0


def build_scheduler(store: OrderStore, interval: str) -> AsyncIOScheduler:
    """Create a scheduler with the expiry sweep registered (not started)."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_expiry_sweep,
        trigger=_get_trigger(interval),
        args=[store],
        id=EXPIRY_JOB_ID,
        name="Order expiry sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    logger.info(f"Scheduled expiry sweep every {interval}")
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler):
    """Shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")


def _job_info(job) -> dict:
    # Jobs on a scheduler that has not started yet carry no next_run_time
    next_run = getattr(job, "next_run_time", None)
    return {
        "id": job.id,
        "name": job.name,
        "next_run": str(next_run) if next_run else None,
        "trigger": str(job.trigger),
    }


def get_scheduler_status(scheduler: AsyncIOScheduler | None) -> dict:
    """Return current scheduler state for the API."""
    if scheduler is None:
        return {"running": False, "job_count": 0, "jobs": []}
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [_job_info(j) for j in jobs],
    }
