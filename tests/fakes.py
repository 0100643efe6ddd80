"""In-memory stand-ins for the storage and notification protocols."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence

from config.constants import ProbeStatus
from monitoring.ports import LatestStatus, LogEntry


class FixedClock:
    """Callable clock returning a settable naive UTC time."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_monitor(**overrides: Any) -> SimpleNamespace:
    """Monitor-shaped object with creation defaults."""
    fields = {
        "id": "mon-1",
        "slug": "api",
        "address": "example.com",
        "path": "/",
        "method": "GET",
        "port": 443,
        "type": "HTTPS",
        "headers": None,
        "body": None,
        "expected_code": "200",
        "expected_body": None,
        "match": "none",
        "timeout": 5000,
        "frequency": 1,
        "offset": 0,
        "active": True,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class InMemoryMonitorStore:
    def __init__(self, monitors: Sequence[Any] = ()) -> None:
        self.monitors = list(monitors)
        self.limits: List[int] = []

    async def list_active_monitors(self, limit: int) -> List[Any]:
        self.limits.append(limit)
        return [m for m in self.monitors if m.active][:limit]

    async def get_by_id(self, monitor_id: str) -> Optional[Any]:
        return next((m for m in self.monitors if m.id == monitor_id), None)

    async def list_active_by_slug(self) -> List[Any]:
        return sorted((m for m in self.monitors if m.active), key=lambda m: m.slug)


@dataclass
class StoredLog:
    monitor_id: str
    status: str
    created_at: datetime
    status_code: Optional[int] = None
    latency: Optional[int] = None
    error: Optional[str] = None
    response_body: Optional[str] = None


class InMemoryLogStore:
    def __init__(self) -> None:
        self.logs: List[StoredLog] = []
        self.calls: List[str] = []

    def add(self, monitor_id: str, status: str, created_at: datetime, latency: Optional[int] = None) -> StoredLog:
        log = StoredLog(monitor_id=monitor_id, status=status, created_at=created_at, latency=latency)
        self.logs.append(log)
        return log

    async def append_log(self, entry: LogEntry) -> StoredLog:
        self.calls.append(f"append_log:{entry.monitor_id}")
        log = StoredLog(
            monitor_id=entry.monitor_id,
            status=ProbeStatus(entry.status).value,
            created_at=entry.created_at,
            status_code=entry.status_code,
            latency=entry.latency,
            error=entry.error,
            response_body=entry.response_body,
        )
        self.logs.append(log)
        return log

    def _for(self, monitor_id: str) -> List[StoredLog]:
        return sorted((log for log in self.logs if log.monitor_id == monitor_id), key=lambda log: log.created_at)

    async def latest_status(self, monitor_id: str) -> Optional[LatestStatus]:
        logs = self._for(monitor_id)
        if not logs:
            return None
        return LatestStatus(status=ProbeStatus(logs[-1].status), timestamp=logs[-1].created_at)

    async def latest_statuses(self, monitor_ids: Sequence[str]) -> Dict[str, LatestStatus]:
        self.calls.append("latest_statuses")
        latest = {}
        for monitor_id in monitor_ids:
            status = await self.latest_status(monitor_id)
            if status is not None:
                latest[monitor_id] = status
        return latest

    async def query_logs(
        self,
        monitor_id: str,
        since: Optional[datetime] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[StoredLog]:
        logs = [log for log in self._for(monitor_id) if since is None or log.created_at >= since]
        if descending:
            logs.reverse()
        return logs[:limit] if limit is not None else logs

    async def count_by_status(self, since: datetime) -> Dict[str, Dict[str, int]]:
        counts: Dict[str, Dict[str, int]] = {}
        for log in self.logs:
            if log.created_at >= since:
                bucket = counts.setdefault(log.monitor_id, {"healthy": 0, "unhealthy": 0})
                bucket[log.status] += 1
        return counts

    async def delete_logs_before(self, cutoff: datetime) -> int:
        before = len(self.logs)
        self.logs = [log for log in self.logs if log.created_at >= cutoff]
        return before - len(self.logs)


@dataclass
class RecordingNotifier:
    batches: List[List[Any]] = field(default_factory=list)
    error: Optional[Exception] = None

    async def notify(self, events: Sequence[Any]) -> None:
        self.batches.append(list(events))
        if self.error is not None:
            raise self.error
