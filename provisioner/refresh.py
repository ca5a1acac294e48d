"""
Recurring device refresh.

A RefreshTimer owns at most one APScheduler interval job. Rescheduling
always removes the previous job first; cancelling is idempotent.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class RefreshTimer:
    """Schedules ``callback`` every ``interval_ms`` milliseconds until cancelled."""

    JOB_ID = "refresh-devices"

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self._callback = callback
        self._scheduler = scheduler
        self._job = None
        self._interval_ms: Optional[float] = None

    @property
    def scheduler(self) -> AsyncIOScheduler:
        """Get or create the scheduler instance."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                executors={'default': AsyncIOExecutor()},
                job_defaults={
                    'coalesce': True,  # Combine missed ticks into one
                    'max_instances': 1,
                },
                timezone='UTC',
            )
        return self._scheduler

    @property
    def active(self) -> bool:
        return self._job is not None

    @property
    def interval_ms(self) -> Optional[float]:
        return self._interval_ms

    def schedule(self, interval_ms: float) -> None:
        """Replace any existing schedule with one firing every interval_ms."""
        self.cancel()
        if not self.scheduler.running:
            self.scheduler.start()
        self._job = self.scheduler.add_job(
            self._callback,
            trigger=IntervalTrigger(seconds=interval_ms / 1000),
            id=self.JOB_ID,
            name="Refresh devices",
            replace_existing=True,
        )
        self._interval_ms = interval_ms
        logger.info(f"Device refresh scheduled every {interval_ms}ms")

    def cancel(self) -> None:
        """Remove the scheduled job, if any."""
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            pass
        self._job = None
        self._interval_ms = None
        logger.info("Device refresh stopped")

    def shutdown(self) -> None:
        """Cancel the job and stop the scheduler."""
        self.cancel()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
