"""
Background Job Scheduler
========================

Thin wrapper around APScheduler's AsyncIOScheduler for the periodic AI jobs
(knowledge mining, throttle counter pruning).
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class IntervalJob:
    """An async callable run every ``interval_seconds``."""
    job_id: str
    name: str
    func: Callable[[], Awaitable[object]]
    interval_seconds: int
    misfire_grace_time: int = 60


class JobScheduler:
    """
    Manages the lifecycle of the scheduler and its interval jobs.

    Every job runs with ``max_instances=1`` so a slow mining run is never
    overlapped by the next tick.
    """

    def __init__(self, jobs: Optional[List[IntervalJob]] = None):
        self._jobs: List[IntervalJob] = list(jobs or [])
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def add_job(self, job: IntervalJob) -> None:
        self._jobs.append(job)
        if self._scheduler is not None:
            self._schedule(job)

    def _schedule(self, job: IntervalJob) -> None:
        self._scheduler.add_job(
            job.func,
            "interval",
            seconds=job.interval_seconds,
            id=job.job_id,
            name=job.name,
            misfire_grace_time=job.misfire_grace_time,
            max_instances=1,
            replace_existing=True
        )

    async def start(self) -> None:
        """Start the scheduler with all registered jobs."""
        if self._running:
            logger.warning("Job scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        for job in self._jobs:
            self._schedule(job)

        self._scheduler.start()
        self._running = True

        logger.info(
            "Job scheduler started",
            extra={"jobs": [job.job_id for job in self._jobs]}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None

        self._running = False
        logger.info("Job scheduler stopped")

    @property
    def job_ids(self) -> List[str]:
        return [job.job_id for job in self._jobs]

    @property
    def is_running(self) -> bool:
        return self._running
