"""
Scheduler - named idempotent jobs driven by an injectable clock.

No global cron state: a Scheduler holds its jobs and asks its clock
for the time. Whatever loop drives it (a worker process, celery beat,
a systemd timer) just calls run_pending() periodically; tests call it
directly with a fake clock.

Usage:
    scheduler = default_scheduler()
    results = scheduler.run_pending()        # runs whatever is due
    scheduler.run_job("expire_free_trials")  # manual reconciliation

Cadences:
    HOURLY   - at every hour boundary
    DAILY    - at every local midnight
    MONTHLY  - at local midnight on the 1st
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from django.db import DatabaseError
from django.utils import timezone

from pointman import jobs
from pointman.protocols.clock import Clock, SystemClock
from pointman.utils import local_day_start, local_month_start, shift_months

logger = logging.getLogger(__name__)

HOURLY = "hourly"
DAILY = "daily"
MONTHLY = "monthly"


def next_boundary(cadence: str, after: datetime) -> datetime:
    """First boundary of ``cadence`` strictly after ``after`` (local time zone)."""
    local = timezone.localtime(after)
    if cadence == HOURLY:
        return local.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    if cadence == DAILY:
        return local_day_start(local_day_start(local) + timedelta(hours=36))
    if cadence == MONTHLY:
        return local_month_start(shift_months(local_month_start(local), 1))
    raise ValueError(f"Unknown cadence: {cadence}")


@dataclass
class Job:
    name: str
    func: Callable[[datetime], int]
    cadence: str
    next_run: datetime | None = None


@dataclass
class JobResult:
    name: str
    affected: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Scheduler:
    """
    Set of named jobs with cadences.

    A job that has never run is due immediately, so the first
    run_pending() performs a full reconciliation. A failing job is
    logged and reported; the other jobs still run and the failed one is
    retried at its next boundary.
    """

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()
        self.jobs: dict[str, Job] = {}

    def register(self, name: str, func: Callable[[datetime], int], cadence: str) -> Job:
        if cadence not in (HOURLY, DAILY, MONTHLY):
            raise ValueError(f"Unknown cadence: {cadence}")
        job = Job(name=name, func=func, cadence=cadence)
        self.jobs[name] = job
        return job

    def due(self, now: datetime | None = None) -> list[Job]:
        now = now or self.clock.now()
        return [job for job in self.jobs.values() if job.next_run is None or now >= job.next_run]

    def run_pending(self, now: datetime | None = None) -> list[JobResult]:
        """Run every due job and schedule its next boundary."""
        now = now or self.clock.now()
        results = []
        for job in self.due(now):
            results.append(self._run(job, now))
            job.next_run = next_boundary(job.cadence, now)
        return results

    def run_job(self, name: str, now: datetime | None = None) -> JobResult:
        """Run one job out of schedule. Its next scheduled run is unchanged."""
        try:
            job = self.jobs[name]
        except KeyError:
            raise ValueError(f"Unknown job: {name}")
        return self._run(job, now or self.clock.now())

    def run_all(self, now: datetime | None = None) -> list[JobResult]:
        now = now or self.clock.now()
        return [self._run(job, now) for job in self.jobs.values()]

    def next_wakeup(self) -> datetime | None:
        """Earliest next_run among jobs (None when some job never ran)."""
        if not self.jobs or any(job.next_run is None for job in self.jobs.values()):
            return None
        return min(job.next_run for job in self.jobs.values())

    def _run(self, job: Job, now: datetime) -> JobResult:
        try:
            affected = job.func(now)
        except DatabaseError as exc:
            logger.exception("Scheduler job %s failed", job.name)
            return JobResult(name=job.name, error=str(exc))
        logger.info("Scheduler job %s affected %d record(s)", job.name, affected)
        return JobResult(name=job.name, affected=affected)


def default_scheduler(clock: Clock | None = None) -> Scheduler:
    """Scheduler with the standard subscription and counter jobs."""
    scheduler = Scheduler(clock)
    scheduler.register("expire_paid_subscriptions", jobs.expire_paid_subscriptions, HOURLY)
    scheduler.register("expire_free_trials", jobs.expire_free_trials, HOURLY)
    scheduler.register("reset_daily_counters", jobs.reset_daily_counters, DAILY)
    scheduler.register("reset_monthly_counters", jobs.reset_monthly_counters, MONTHLY)
    return scheduler
