"""
Periodic housekeeping for the server process (job reaping).
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger


logger = logging.getLogger(__name__)

HOUSEKEEPING_DEFAULTS = {
    "coalesce": True,         # a late run replaces any missed ones
    "max_instances": 1,
    "misfire_grace_time": 60,
}


class Scheduler:
    """In-memory APScheduler bound to the running event loop."""

    def __init__(self, timezone: str = "UTC"):
        self._scheduler = AsyncIOScheduler(job_defaults=HOUSEKEEPING_DEFAULTS, timezone=timezone)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info("Housekeeping scheduler started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Housekeeping scheduler stopped")

    def add_interval_job(
        self, func: Callable[[], Awaitable[None]], seconds: int, job_id: str
    ) -> None:
        """Run *func* every *seconds*; re-adding *job_id* replaces the old entry."""
        if seconds <= 0:
            raise ValueError(f"Interval for {job_id} must be positive, got {seconds}")
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
        )
        logger.info(f"Scheduled {job_id} every {seconds}s")

    def list_jobs(self) -> Dict[str, Any]:
        return {
            job.id: {
                "next_run": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self._scheduler.get_jobs()
        }
