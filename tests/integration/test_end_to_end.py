"""A monitor followed through outage and recovery on a real database."""

from __future__ import annotations

from datetime import datetime, timedelta

import httpx

from config.constants import ProbeStatus
from config.settings import MonitoringSettings
from database.repositories import LogRepository, MonitorRepository
from monitoring.monitor import HTTPProbe, MonitoringEngine
from monitoring.stats import StatsService
from tests.fakes import FixedClock


class TestOutageAndRecovery:
    async def test_transitions_are_persisted_once(
        self, monitor_factory, monitor_repository: MonitorRepository, log_repository: LogRepository
    ) -> None:
        # Arrange
        monitor = await monitor_factory(slug="api", frequency=5, offset=2)
        upstream = {"status": 200}
        probes = []

        def handler(request: httpx.Request) -> httpx.Response:
            probes.append(request.url.host)
            return httpx.Response(upstream["status"], text="ok")

        clock = FixedClock(datetime(2024, 5, 1, 0, 2))
        settings = MonitoringSettings()
        engine = MonitoringEngine(
            monitor_repository,
            log_repository,
            probe=HTTPProbe(settings, transport=httpx.MockTransport(handler)),
            settings=settings,
            clock=clock,
        )

        # Minute 2: healthy, nothing recorded
        assert await engine.run_tick() == []
        assert await log_repository.query_logs(monitor.id) == []

        # Minute 3: not due
        clock.advance(minutes=1)
        assert await engine.run_tick() == []
        assert len(probes) == 1

        # Minute 7: goes down
        clock.now = datetime(2024, 5, 1, 0, 7)
        upstream["status"] = 500
        [down] = await engine.run_tick()
        assert down.new_status == ProbeStatus.UNHEALTHY
        assert down.downtime is None

        # Minute 12: still down, nothing new
        clock.now = datetime(2024, 5, 1, 0, 12)
        assert await engine.run_tick() == []

        # Minute 17: recovers
        clock.now = datetime(2024, 5, 1, 0, 17)
        upstream["status"] = 200
        [up] = await engine.run_tick()

        # Assert
        assert up.is_recovery
        assert up.downtime == timedelta(minutes=10)

        logs = await log_repository.query_logs(monitor.id)
        assert [(log.status, log.created_at.minute) for log in logs] == [("unhealthy", 7), ("healthy", 17)]
        assert len(probes) == 4

        stats = await StatsService(monitor_repository, log_repository, settings, clock=clock).get_monitor_stats(monitor.id)
        assert stats.requests == 2
        assert stats.uptime == 50.0
