"""APScheduler wrapper exposing higher level helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..logging_conf import configure_logging
from .base import BaseScheduler


class APSchedulerAdapter(BaseScheduler):
    """Drive engine passes from an APScheduler background thread."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_now(self, job_id: str, callback: Callable[[], object]) -> None:
        trigger = DateTrigger(run_date=datetime.now(timezone.utc))
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )
        self.logger.info("job_scheduled", job_id=job_id, trigger="now")

    def schedule_interval(
        self, job_id: str, callback: Callable[[], object], seconds: float
    ) -> None:
        if seconds <= 0:
            raise ValueError("Interval schedule requires a positive number of seconds")
        self.scheduler.add_job(
            callback,
            trigger=IntervalTrigger(seconds=float(seconds)),
            id=job_id,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.logger.info("job_scheduled", job_id=job_id, trigger="interval", seconds=seconds)

    def remove(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            self.logger.warning("job_remove_failed", job_id=job_id)

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter"]
