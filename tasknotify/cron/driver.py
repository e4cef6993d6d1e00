"""
Cron Driver.

Named periodic jobs, each with either a fixed interval or a daily wall-clock
time (optionally restricted to one weekday). The background loop wakes every
``tick_seconds`` and launches due jobs; ``run_due`` and ``run_job`` let tests
drive the same jobs without waiting on real timers.

Jobs receive the tick's ``now`` (naive UTC). Coroutine jobs run on the loop,
plain functions run in a worker thread. A job never overlaps itself, and a
failing job is logged and rescheduled like a successful one.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from tasknotify.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CronJob:
    name: str
    func: Callable[[datetime], Any]
    interval: Optional[timedelta] = None
    at: Optional[time] = None
    weekday: Optional[int] = None  # Monday == 0, only with ``at``
    next_run: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None
    run_count: int = 0
    running: bool = field(default=False, repr=False)

    def __post_init__(self):
        if (self.interval is None) == (self.at is None):
            raise ValueError(f"Job '{self.name}' needs exactly one of interval or at")
        if self.weekday is not None and self.at is None:
            raise ValueError(f"Job '{self.name}': weekday requires at")

    def following_run(self, moment: datetime, inclusive: bool = False) -> datetime:
        """Next run time after ``moment`` (or at it, when ``inclusive``)."""
        if self.interval is not None:
            return moment if inclusive else moment + self.interval

        candidate = datetime.combine(moment.date(), self.at)
        while (
            candidate < moment
            or (candidate == moment and not inclusive)
            or (self.weekday is not None and candidate.weekday() != self.weekday)
        ):
            candidate += timedelta(days=1)
        return candidate

    def is_due(self, now: datetime) -> bool:
        if self.next_run is None:
            self.next_run = self.following_run(now, inclusive=True)
        return not self.running and self.next_run <= now


class CronDriver:
    """Runs registered jobs on their schedules inside one asyncio loop."""

    def __init__(self, tick_seconds: float = 1.0, clock: Callable[[], datetime] = datetime.utcnow):
        self.tick_seconds = tick_seconds
        self.clock = clock
        self._jobs: Dict[str, CronJob] = {}
        self._loop_task: Optional[asyncio.Task] = None
        self._job_tasks: Set[asyncio.Task] = set()

    @property
    def jobs(self) -> Dict[str, CronJob]:
        return dict(self._jobs)

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def add_job(
        self,
        name: str,
        func: Callable[[datetime], Any],
        interval: Optional[timedelta] = None,
        at: Optional[time] = None,
        weekday: Optional[int] = None,
    ) -> CronJob:
        if name in self._jobs:
            raise ValueError(f"Job '{name}' already registered")
        job = CronJob(name=name, func=func, interval=interval, at=at, weekday=weekday)
        self._jobs[name] = job
        return job

    def due_jobs(self, now: datetime) -> List[CronJob]:
        return [job for job in self._jobs.values() if job.is_due(now)]

    async def run_due(self, now: Optional[datetime] = None) -> List[str]:
        """Run every due job to completion. Returns the names that ran."""
        now = now or self.clock()
        jobs = self.due_jobs(now)
        for job in jobs:
            job.running = True
        await asyncio.gather(*(self._execute(job, now) for job in jobs))
        return [job.name for job in jobs]

    async def run_job(self, name: str, now: Optional[datetime] = None) -> None:
        """Run one job now, regardless of its schedule (unless it is already running)."""
        job = self._jobs[name]
        if job.running:
            logger.warning("Job already running; skipped", job=name)
            return
        job.running = True
        await self._execute(job, now or self.clock())

    async def _execute(self, job: CronJob, now: datetime) -> None:
        try:
            if inspect.iscoroutinefunction(job.func):
                await job.func(now)
            else:
                await asyncio.to_thread(job.func, now)
            job.last_error = None
        except Exception as e:
            job.last_error = f"{type(e).__name__}: {e}"
            logger.exception("Cron job failed", job=job.name)
        finally:
            job.run_count += 1
            job.last_run = now
            job.next_run = job.following_run(now)
            job.running = False

    def _launch_due(self, now: datetime) -> None:
        for job in self.due_jobs(now):
            job.running = True
            task = asyncio.create_task(self._execute(job, now), name=f"cron:{job.name}")
            self._job_tasks.add(task)
            task.add_done_callback(self._job_tasks.discard)

    async def _loop(self) -> None:
        while True:
            self._launch_due(self.clock())
            await asyncio.sleep(self.tick_seconds)

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._loop(), name="cron-driver")
        logger.info("Cron driver started", jobs=sorted(self._jobs), tick_seconds=self.tick_seconds)

    async def stop(self) -> None:
        """Stop the loop and cancel in-flight jobs."""
        tasks = list(self._job_tasks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._job_tasks.clear()
        logger.info("Cron driver stopped")
