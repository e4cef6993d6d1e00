"""Tests for the cron driver and the engine's registered jobs."""

import asyncio
import threading
from datetime import datetime, time, timedelta

import pytest

from conftest import NOW
from tasknotify.cron import CronDriver, CronJob


class TestCronJob:

    def test_needs_exactly_one_schedule(self):
        with pytest.raises(ValueError):
            CronJob(name="none", func=lambda now: None)
        with pytest.raises(ValueError):
            CronJob(name="both", func=lambda now: None, interval=timedelta(seconds=5), at=time(8))

    def test_weekday_requires_at(self):
        with pytest.raises(ValueError):
            CronJob(name="bad", func=lambda now: None, interval=timedelta(seconds=5), weekday=0)

    def test_interval_runs_immediately_then_every_interval(self):
        job = CronJob(name="tick", func=lambda now: None, interval=timedelta(seconds=5))
        assert job.is_due(NOW)
        assert job.following_run(NOW) == NOW + timedelta(seconds=5)

    def test_daily_time(self):
        job = CronJob(name="daily", func=lambda now: None, at=time(8))
        assert not job.is_due(NOW)
        assert job.next_run == datetime(2026, 3, 11, 8, 0)

    def test_weekly_time(self):
        # NOW is a Tuesday; the next Monday is March 16th
        job = CronJob(name="weekly", func=lambda now: None, at=time(8), weekday=0)
        assert job.following_run(NOW) == datetime(2026, 3, 16, 8, 0)
        assert job.following_run(datetime(2026, 3, 16, 8, 0), inclusive=True) == datetime(2026, 3, 16, 8, 0)


class TestCronDriver:

    def test_duplicate_name_rejected(self):
        driver = CronDriver()
        driver.add_job("a", lambda now: None, interval=timedelta(seconds=1))
        with pytest.raises(ValueError):
            driver.add_job("a", lambda now: None, interval=timedelta(seconds=1))

    async def test_run_due_passes_now_and_reschedules(self):
        calls = []

        async def job(now):
            calls.append(now)

        driver = CronDriver()
        driver.add_job("collect", job, interval=timedelta(seconds=10))

        assert await driver.run_due(NOW) == ["collect"]
        assert await driver.run_due(NOW + timedelta(seconds=5)) == []
        assert await driver.run_due(NOW + timedelta(seconds=10)) == ["collect"]
        assert calls == [NOW, NOW + timedelta(seconds=10)]
        assert driver.jobs["collect"].run_count == 2

    async def test_sync_jobs_run_in_worker_thread(self):
        threads = []
        driver = CronDriver()
        driver.add_job("sync", lambda now: threads.append(threading.get_ident()), interval=timedelta(seconds=1))

        await driver.run_due(NOW)
        assert threads and threads[0] != threading.get_ident()

    async def test_failure_is_isolated(self):
        ran = []

        def broken(now):
            raise RuntimeError("boom")

        driver = CronDriver()
        driver.add_job("broken", broken, interval=timedelta(seconds=1))
        driver.add_job("healthy", lambda now: ran.append(now), interval=timedelta(seconds=1))

        await driver.run_due(NOW)
        job = driver.jobs["broken"]
        assert job.last_error == "RuntimeError: boom"
        assert job.next_run == NOW + timedelta(seconds=1)
        assert not job.running
        assert ran == [NOW]

    async def test_run_job_ignores_schedule(self):
        calls = []
        driver = CronDriver()
        driver.add_job("daily", lambda now: calls.append(now), at=time(3))
        await driver.run_job("daily", NOW)
        assert calls == [NOW]
        assert driver.jobs["daily"].next_run == datetime(2026, 3, 11, 3, 0)

    async def test_start_and_stop(self):
        fired = asyncio.Event()

        async def job(now):
            fired.set()

        driver = CronDriver(tick_seconds=0.01)
        driver.add_job("once", job, interval=timedelta(hours=1))
        driver.start()
        assert driver.is_running
        await asyncio.wait_for(fired.wait(), timeout=2)
        await driver.stop()
        assert not driver.is_running


class TestEngineJobs:

    def test_registered_jobs(self, service):
        jobs = service.cron.jobs
        assert sorted(jobs) == [
            "daily-summaries", "dispatch", "overdue-sweep", "retention-cleanup", "weekly-summaries",
        ]
        assert jobs["dispatch"].interval == timedelta(seconds=5)
        assert jobs["daily-summaries"].at == time(8)
        assert jobs["weekly-summaries"].weekday == 0

    async def test_jobs_drive_the_engine(self, service, user, make_task, providers):
        make_task(user, due_date=NOW - timedelta(hours=1))
        await service.cron.run_job("overdue-sweep", NOW)
        await service.cron.run_job("dispatch", NOW)

        assert len(providers["email"].sent) == 1
        [alert] = service.list_notifications(user.id)
        assert alert.type == "overdue_alert"
        assert alert.status == "sent"

    async def test_retention_job(self, service, user, make_notification):
        old = make_notification(user.id, created_at=NOW - timedelta(days=31))
        service.store.cancel(old.id, now=NOW)
        await service.cron.run_job("retention-cleanup", NOW)
        assert service.store.get(old.id) is None
