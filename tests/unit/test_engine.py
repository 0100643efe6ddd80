"""Tests for transition tracking in the monitoring engine."""

from __future__ import annotations

from datetime import datetime, timedelta

import httpx
import pytest

from config.constants import ProbeStatus
from config.settings import MonitoringSettings
from exceptions import DatabaseQueryError
from monitoring.monitor import HTTPProbe, MonitoringEngine
from monitoring.ports import LatestStatus
from tests.fakes import FixedClock, InMemoryLogStore, InMemoryMonitorStore, make_monitor


def build_engine(monitors, log_store, clock, status_by_host=None, default_status=200) -> MonitoringEngine:
    status_by_host = status_by_host or {}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_by_host.get(request.url.host, default_status))

    probe = HTTPProbe(MonitoringSettings(), transport=httpx.MockTransport(handler))
    return MonitoringEngine(
        InMemoryMonitorStore(monitors),
        log_store,
        probe=probe,
        settings=MonitoringSettings(),
        clock=clock,
    )


class TestProcess:
    """Per-monitor transition detection."""

    async def test_first_failure_records_entry_without_downtime(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock, default_status=500)

        event = await engine.process(make_monitor(), None)

        assert event is not None
        assert event.old_status == ProbeStatus.HEALTHY
        assert event.new_status == ProbeStatus.UNHEALTHY
        assert event.downtime is None
        assert event.error == "expected status 200, got 500"
        assert len(log_store.logs) == 1
        assert log_store.logs[0].status == "unhealthy"
        assert log_store.logs[0].created_at == clock.now

    async def test_healthy_without_history_writes_nothing(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock)

        assert await engine.process(make_monitor(), None) is None
        assert log_store.logs == []

    async def test_unchanged_status_writes_nothing(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock, default_status=500)
        last = LatestStatus(ProbeStatus.UNHEALTHY, clock.now - timedelta(minutes=3))

        assert await engine.process(make_monitor(), last) is None
        assert log_store.logs == []

    async def test_recovery_carries_downtime(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock)
        went_down = clock.now - timedelta(minutes=12, seconds=30)

        event = await engine.process(make_monitor(), LatestStatus(ProbeStatus.UNHEALTHY, went_down))

        assert event.is_recovery
        assert event.downtime == timedelta(minutes=12, seconds=30)
        assert event.to_dict()["downtime_ms"] == 750_000
        assert log_store.logs[0].status == "healthy"

    async def test_recovery_without_timestamp_has_no_downtime(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock)

        event = await engine.process(make_monitor(), LatestStatus(ProbeStatus.UNHEALTHY, None))

        assert event.is_recovery
        assert event.downtime is None

    async def test_unknown_type_becomes_downtime(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock)

        event = await engine.process(make_monitor(type="FTP"), None)

        assert event.new_status == ProbeStatus.UNHEALTHY
        assert log_store.logs[0].status == "unhealthy"


class TestRunTick:
    async def test_only_due_monitors_are_probed(self, log_store: InMemoryLogStore) -> None:
        clock = FixedClock(datetime(2024, 5, 1, 0, 7))
        monitors = [
            make_monitor(id="due", slug="due", address="due.example.com", frequency=5, offset=2),
            make_monitor(id="idle", slug="idle", address="idle.example.com", frequency=5, offset=3),
        ]
        engine = build_engine(monitors, log_store, clock, default_status=500)

        events = await engine.run_tick()

        assert [e.monitor_id for e in events] == ["due"]
        assert [log.monitor_id for log in log_store.logs] == ["due"]

    async def test_tick_passes_the_monitor_cap(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([], log_store, clock)

        await engine.run_tick()

        assert engine.monitor_store.limits == [200]

    async def test_latest_statuses_read_before_any_write(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        monitors = [make_monitor(id="a", slug="a"), make_monitor(id="b", slug="b")]
        engine = build_engine(monitors, log_store, clock, default_status=500)

        await engine.run_tick()

        assert log_store.calls[0] == "latest_statuses"
        assert sorted(log_store.calls[1:]) == ["append_log:a", "append_log:b"]

    async def test_repeated_ticks_write_one_entry_per_transition(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([make_monitor()], log_store, clock, default_status=500)

        first = await engine.run_tick()
        clock.advance(minutes=1)
        second = await engine.run_tick()

        assert len(first) == 1
        assert second == []
        assert len(log_store.logs) == 1

    async def test_persistence_failure_is_isolated(
        self, log_store: InMemoryLogStore, clock: FixedClock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monitors = [make_monitor(id="a", slug="a"), make_monitor(id="b", slug="b")]
        engine = build_engine(monitors, log_store, clock, default_status=500)
        original = log_store.append_log

        async def flaky_append(entry):
            if entry.monitor_id == "a":
                raise DatabaseQueryError("disk full")
            return await original(entry)

        monkeypatch.setattr(log_store, "append_log", flaky_append)

        events = await engine.run_tick()

        assert [e.monitor_id for e in events] == ["b"]
        assert engine.get_stats()["failures"] == 1

    async def test_stats_are_counted(self, log_store: InMemoryLogStore, clock: FixedClock) -> None:
        engine = build_engine([make_monitor()], log_store, clock, default_status=500)

        await engine.run_tick()
        stats = engine.get_stats()

        assert stats["ticks"] == 1
        assert stats["probes"] == 1
        assert stats["status_changes"] == 1
        assert stats["last_tick_at"] == clock.now.isoformat()
