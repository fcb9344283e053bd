"""Recurring execution of the sync job on an APScheduler interval."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from apscheduler.schedulers.base import STATE_RUNNING, BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "yappli_sync"


@dataclass(frozen=True, slots=True)
class SchedulerSnapshot:
    """Snapshot of job registrations and high-level runtime state."""

    total_jobs: int
    running: bool
    next_runs: dict[str, str | None]


class SchedulerManager:
    """Wrap APScheduler so that sync runs never overlap."""

    def __init__(self, scheduler: BaseScheduler | None = None) -> None:
        self.scheduler = scheduler or BlockingScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 90,
            }
        )

    def add_interval_job(self, func: Callable[[], Any], *, minutes: int, id: str = JOB_ID) -> None:
        def wrapped_job() -> None:
            start_time = datetime.now(timezone.utc)
            try:
                logger.info("Running job %s", id)
                func()
                duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
                logger.info("Job %s completed in %.2fms", id, duration_ms)
            except Exception:
                logger.exception("Job %s failed", id)

        self.scheduler.add_job(
            wrapped_job,
            IntervalTrigger(minutes=minutes),
            id=id,
            replace_existing=True,
            max_instances=1,
            next_run_time=datetime.now(self.scheduler.timezone),
        )
        logger.info("Registered job %s every %d minutes", id, minutes)

    def start(self) -> None:
        snapshot = self.snapshot()
        logger.info("Scheduler starting with %d jobs; next runs: %s", snapshot.total_jobs, snapshot.next_runs)
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.state == STATE_RUNNING:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shutdown complete.")

    def snapshot(self) -> SchedulerSnapshot:
        jobs = self.scheduler.get_jobs()
        next_runs: dict[str, str | None] = {}
        for job in jobs:
            next_run = getattr(job, "next_run_time", None)
            next_runs[job.id] = next_run.isoformat() if next_run else None
        running = self.scheduler.state == STATE_RUNNING
        return SchedulerSnapshot(total_jobs=len(jobs), running=running, next_runs=next_runs)
