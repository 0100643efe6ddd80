"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
import pytest

from config.settings import DatabaseSettings, MonitoringSettings, NotificationSettings
from database.manager import DatabaseManager
from database.repositories import LogRepository, MonitorRepository
from monitoring.monitor import HTTPProbe
from tests.fakes import FixedClock, InMemoryLogStore, InMemoryMonitorStore


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to 2024-05-01 00:00 UTC."""
    return FixedClock(datetime(2024, 5, 1, 0, 0))


@pytest.fixture
def monitoring_settings() -> MonitoringSettings:
    return MonitoringSettings()


@pytest.fixture
def notification_settings() -> NotificationSettings:
    """Email delivery enabled with a dummy key."""
    return NotificationSettings(
        enabled=True,
        sendgrid_api_key="SG.test-key",
        recipient="ops@example.com",
        sender_email="monitor@example.com",
    )


@pytest.fixture
def probe_factory(monitoring_settings: MonitoringSettings) -> Callable[[Any], HTTPProbe]:
    """Build an HTTPProbe whose requests are answered by *handler*."""

    def factory(handler: Any) -> HTTPProbe:
        return HTTPProbe(monitoring_settings, transport=httpx.MockTransport(handler))

    return factory


# === In-memory stores ===


@pytest.fixture
def monitor_store() -> InMemoryMonitorStore:
    return InMemoryMonitorStore()


@pytest.fixture
def log_store() -> InMemoryLogStore:
    return InMemoryLogStore()


# === SQLite fixtures ===


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Provide a temporary database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
async def db_manager(db_path: str) -> AsyncGenerator[DatabaseManager, None]:
    """Initialized manager on a temporary SQLite file."""
    manager = DatabaseManager(DatabaseSettings(), url=f"sqlite+aiosqlite:///{db_path}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def monitor_repository(db_manager: DatabaseManager) -> MonitorRepository:
    return MonitorRepository(db_manager)


@pytest.fixture
def log_repository(db_manager: DatabaseManager) -> LogRepository:
    return LogRepository(db_manager)


@pytest.fixture
def monitor_factory(monitor_repository: MonitorRepository):
    """Create persisted monitors with sensible defaults."""
    counter = {"n": 0}

    async def create(**overrides: Any):
        counter["n"] += 1
        data = {
            "slug": f"monitor-{counter['n']}",
            "address": "example.com",
            "frequency": 1,
        }
        data.update(overrides)
        return await monitor_repository.create(data)

    return create
