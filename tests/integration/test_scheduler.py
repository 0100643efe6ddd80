"""Tests for minute dispatch of the scheduled jobs."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import httpx
import pytest

from config.settings import MonitoringSettings, Settings
from exceptions import NotificationError
from monitoring.monitor import HTTPProbe, MonitoringEngine
from monitoring.scheduler import Scheduler, daily_at
from tests.fakes import FixedClock, InMemoryLogStore, InMemoryMonitorStore, RecordingNotifier, make_monitor


@pytest.fixture
def failing_engine(log_store: InMemoryLogStore, clock: FixedClock) -> MonitoringEngine:
    """Engine with one every-minute monitor whose upstream answers 500."""
    settings = MonitoringSettings()
    probe = HTTPProbe(settings, transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    return MonitoringEngine(InMemoryMonitorStore([make_monitor()]), log_store, probe=probe, settings=settings, clock=clock)


def job(scheduler: Scheduler, name: str) -> dict:
    return next(j for j in scheduler.get_job_stats() if j["name"] == name)


class TestDispatch:
    async def test_cleanup_minute_launches_both_jobs(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        scheduler = Scheduler(failing_engine, RecordingNotifier(), log_store, Settings())

        tasks = scheduler.dispatch(datetime(2024, 5, 1, 19, 0))
        await asyncio.gather(*tasks)

        assert len(tasks) == 2
        assert job(scheduler, "healthcheck_tick")["run_count"] == 1
        assert job(scheduler, "log_cleanup")["run_count"] == 1

    async def test_other_minutes_launch_only_the_tick(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        scheduler = Scheduler(failing_engine, RecordingNotifier(), log_store, Settings())

        tasks = scheduler.dispatch(datetime(2024, 5, 1, 19, 1))
        await asyncio.gather(*tasks)

        assert len(tasks) == 1
        assert job(scheduler, "log_cleanup")["run_count"] == 0

    async def test_disabled_job_is_skipped(self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore) -> None:
        scheduler = Scheduler(failing_engine, RecordingNotifier(), log_store, Settings())
        assert scheduler.disable_job("healthcheck_tick")

        assert scheduler.dispatch(datetime(2024, 5, 1, 10, 30)) == []


class TestHealthcheckTick:
    async def test_status_changes_are_forwarded(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        notifier = RecordingNotifier()
        scheduler = Scheduler(failing_engine, notifier, log_store, Settings())

        await asyncio.gather(*scheduler.dispatch(datetime(2024, 5, 1, 0, 0)))

        assert len(notifier.batches) == 1
        assert notifier.batches[0][0].monitor_name == "api"

    async def test_notification_failure_keeps_entries(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        notifier = RecordingNotifier(error=NotificationError("SendGrid API error: 500", provider="sendgrid"))
        scheduler = Scheduler(failing_engine, notifier, log_store, Settings())

        await asyncio.gather(*scheduler.dispatch(datetime(2024, 5, 1, 0, 0)))

        assert len(log_store.logs) == 1
        stats = job(scheduler, "healthcheck_tick")
        assert stats["run_count"] == 1
        assert stats["error_count"] == 0

    async def test_engine_failure_is_counted(self, log_store: InMemoryLogStore) -> None:
        class BrokenEngine:
            async def run_tick(self, now=None):
                raise RuntimeError("store unavailable")

        scheduler = Scheduler(BrokenEngine(), RecordingNotifier(), log_store, Settings())

        await asyncio.gather(*scheduler.dispatch(datetime(2024, 5, 1, 0, 0)))

        assert job(scheduler, "healthcheck_tick")["error_count"] == 1


class TestLogCleanup:
    async def test_deletes_entries_past_retention(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        minute = datetime(2024, 5, 1, 19, 0)
        log_store.add("mon-1", "unhealthy", minute - timedelta(days=7, minutes=1))
        log_store.add("mon-1", "healthy", minute - timedelta(days=6))
        scheduler = Scheduler(failing_engine, None, log_store, Settings())
        scheduler.disable_job("healthcheck_tick")

        await asyncio.gather(*scheduler.dispatch(minute))

        assert [log.status for log in log_store.logs] == ["healthy"]


class TestMainLoop:
    async def test_each_minute_dispatched_once(
        self, failing_engine: MonitoringEngine, log_store: InMemoryLogStore
    ) -> None:
        clock = FixedClock(datetime(2024, 5, 1, 11, 59, 30))
        scheduler = Scheduler(failing_engine, None, log_store, Settings(), clock=clock)
        dispatched = []
        delays = []
        # The second wake-up lands half a millisecond before 12:01
        wakes = iter([
            datetime(2024, 5, 1, 12, 0, 0, 50000),
            datetime(2024, 5, 1, 12, 0, 59, 999500),
            datetime(2024, 5, 1, 12, 2, 0, 1000),
        ])

        async def fake_sleep(seconds: float) -> None:
            delays.append(seconds)
            try:
                clock.now = next(wakes)
            except StopIteration:
                raise asyncio.CancelledError

        def record(minute: datetime) -> list:
            dispatched.append(minute)
            return []

        scheduler._sleep = fake_sleep
        scheduler.dispatch = record
        scheduler._running = True

        await scheduler._main_loop()

        assert dispatched == [
            datetime(2024, 5, 1, 12, 0),
            datetime(2024, 5, 1, 12, 1),
            datetime(2024, 5, 1, 12, 2),
        ]
        assert delays[0] == 30.0
        assert delays[1] == pytest.approx(59.95)


def test_daily_at_matches_one_minute() -> None:
    predicate = daily_at(19, 0)

    assert predicate(datetime(2024, 5, 1, 19, 0))
    assert not predicate(datetime(2024, 5, 1, 19, 1))
    assert not predicate(datetime(2024, 5, 1, 7, 0))
