"""
Collaborator interfaces of the monitoring core.

The engine and the stats service only talk to storage and the
notification channel through these protocols; ``database.repositories``
and ``monitoring.alerts`` provide the production implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from config.constants import ProbeStatus


@dataclass(frozen=True)
class LatestStatus:
    """Classification and time of a monitor's most recent log entry."""

    status: ProbeStatus
    timestamp: Optional[datetime]


@dataclass
class LogEntry:
    """A transition record about to be appended."""

    monitor_id: str
    status: ProbeStatus
    status_code: Optional[int] = None
    latency: Optional[int] = None
    error: Optional[str] = None
    response_body: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "monitor_id": self.monitor_id,
            "status": self.status.value,
            "status_code": self.status_code,
            "latency": self.latency,
            "error": self.error,
            "response_body": self.response_body,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MonitorStore(Protocol):
    async def list_active_monitors(self, limit: int) -> List[Any]: ...

    async def get_by_id(self, monitor_id: str) -> Optional[Any]: ...

    async def list_active_by_slug(self) -> List[Any]: ...


class LogStore(Protocol):
    async def append_log(self, entry: LogEntry) -> Any: ...

    async def latest_status(self, monitor_id: str) -> Optional[LatestStatus]: ...

    async def latest_statuses(self, monitor_ids: Sequence[str]) -> Mapping[str, LatestStatus]: ...

    async def query_logs(
        self,
        monitor_id: str,
        since: Optional[datetime] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Any]: ...

    async def count_by_status(self, since: datetime) -> Mapping[str, Mapping[str, int]]: ...

    async def delete_logs_before(self, cutoff: datetime) -> int: ...


class NotificationSink(Protocol):
    async def notify(self, events: Iterable[Any]) -> None: ...
