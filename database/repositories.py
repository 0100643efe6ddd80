"""
============================================================================
HEALTHCHECK MONITOR - REPOSITORIES
============================================================================
Repository classes for monitors and transition logs.

Errors raised by the database surface as ``DatabaseQueryError`` from
``DatabaseManager.session()`` and are not swallowed here.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select

from config.constants import ProbeStatus
from database.manager import DatabaseManager
from database.models import Log, Monitor
from exceptions import NotFoundError
from monitoring.ports import LatestStatus, LogEntry
from utils.logger import get_logger
from utils.validators import MonitorValidator


# ============================================================================
# DATABASE REPOSITORY BASE CLASS
# ============================================================================

class BaseRepository:
    """
    Base repository class for database operations.
    """

    def __init__(self, db_manager: DatabaseManager):
        """
        Initialize repository.

        Args:
            db_manager: DatabaseManager instance
        """
        self.db = db_manager
        self.logger = get_logger(self.__class__.__name__)


# ============================================================================
# MONITOR REPOSITORY
# ============================================================================

class MonitorRepository(BaseRepository):
    """Repository for Monitor model operations."""

    async def create(self, data: Dict[str, Any]) -> Monitor:
        """
        Validate a definition and insert the monitor.

        Args:
            data: Raw monitor definition

        Returns:
            Created Monitor

        Raises:
            ValidationException: If the definition is invalid
        """
        fields = MonitorValidator.validate_new_monitor(data)
        monitor = Monitor(**fields)

        async with self.db.session() as session:
            session.add(monitor)
            await session.flush()
            await session.refresh(monitor)

        self.logger.info(f"[Monitors] Created {monitor.slug} ({monitor.id})")
        return monitor

    async def get_by_id(self, monitor_id: str) -> Optional[Monitor]:
        async with self.db.session() as session:
            return await session.get(Monitor, monitor_id)

    async def list_all(self) -> List[Monitor]:
        async with self.db.session() as session:
            result = await session.execute(select(Monitor).order_by(Monitor.created_at, Monitor.id))
            return list(result.scalars().all())

    async def list_active_monitors(self, limit: int) -> List[Monitor]:
        """
        Get up to ``limit`` active monitors.

        Args:
            limit: Maximum number of monitors returned
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(Monitor)
                .where(Monitor.active.is_(True))
                .order_by(Monitor.created_at, Monitor.id)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def list_active_by_slug(self) -> List[Monitor]:
        """Get all active monitors ordered by slug."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Monitor).where(Monitor.active.is_(True)).order_by(Monitor.slug)
            )
            return list(result.scalars().all())

    async def update(self, monitor_id: str, data: Dict[str, Any]) -> Monitor:
        """
        Apply a partial update; the merged definition is re-validated.

        Raises:
            NotFoundError: If the monitor does not exist
            ValidationException: If the merged definition is invalid
        """
        async with self.db.session() as session:
            monitor = await session.get(Monitor, monitor_id)
            if monitor is None:
                raise NotFoundError(f"Monitor {monitor_id} not found", resource="monitor", resource_id=monitor_id)

            merged = monitor.to_dict()
            merged.update({k: v for k, v in data.items() if v is not None})
            merged.pop("name", None)
            fields = MonitorValidator.validate_new_monitor(merged)

            for key, value in fields.items():
                setattr(monitor, key, value)

            await session.flush()
            await session.refresh(monitor)

        self.logger.info(f"[Monitors] Updated {monitor.slug} ({monitor.id})")
        return monitor

    async def delete(self, monitor_id: str) -> bool:
        """
        Delete a monitor and, through the cascade, its logs.

        Returns:
            True if a monitor was deleted
        """
        async with self.db.session() as session:
            result = await session.execute(delete(Monitor).where(Monitor.id == monitor_id))
            deleted = result.rowcount > 0

        if deleted:
            self.logger.info(f"[Monitors] Deleted {monitor_id}")
        return deleted


# ============================================================================
# LOG REPOSITORY
# ============================================================================

class LogRepository(BaseRepository):
    """Repository for Log model operations."""

    async def append_log(self, entry: LogEntry) -> Log:
        """
        Insert one transition record.

        Args:
            entry: Log entry to persist

        Returns:
            Persisted Log row
        """
        log = Log(
            monitor_id=entry.monitor_id,
            status=ProbeStatus(entry.status).value,
            status_code=entry.status_code,
            latency=entry.latency,
            error=entry.error,
            response_body=entry.response_body,
        )
        if entry.created_at is not None:
            log.created_at = entry.created_at

        async with self.db.session() as session:
            session.add(log)
            await session.flush()

        entry.id = log.id
        entry.created_at = log.created_at
        return log

    @staticmethod
    def _latest_query(monitor_id: str):
        return (
            select(Log.status, Log.created_at)
            .where(Log.monitor_id == monitor_id)
            .order_by(Log.created_at.desc(), Log.id.desc())
            .limit(1)
        )

    async def latest_status(self, monitor_id: str) -> Optional[LatestStatus]:
        async with self.db.session() as session:
            row = (await session.execute(self._latest_query(monitor_id))).first()

        if row is None:
            return None
        return LatestStatus(status=ProbeStatus(row.status), timestamp=row.created_at)

    async def latest_statuses(self, monitor_ids: Sequence[str]) -> Dict[str, LatestStatus]:
        """
        Latest status of each monitor in one session.

        Monitors without any log entry are absent from the result.
        """
        latest: Dict[str, LatestStatus] = {}
        if not monitor_ids:
            return latest

        async with self.db.session() as session:
            for monitor_id in monitor_ids:
                row = (await session.execute(self._latest_query(monitor_id))).first()
                if row is not None:
                    latest[monitor_id] = LatestStatus(status=ProbeStatus(row.status), timestamp=row.created_at)

        return latest

    async def query_logs(
        self,
        monitor_id: str,
        since: Optional[datetime] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Log]:
        """
        Log entries of a monitor, optionally bounded by time and count.

        Args:
            monitor_id: Monitor whose entries are returned
            since: Only entries created at or after this time
            descending: Newest first when True
            limit: Maximum number of entries
        """
        query = select(Log).where(Log.monitor_id == monitor_id)
        if since is not None:
            query = query.where(Log.created_at >= since)

        if descending:
            query = query.order_by(Log.created_at.desc(), Log.id.desc())
        else:
            query = query.order_by(Log.created_at.asc(), Log.id.asc())

        if limit is not None:
            query = query.limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_logs(
        self,
        monitor_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Newest log entries across monitors, each with its monitor's slug,
        address and type.
        """
        query = select(Log, Monitor.slug, Monitor.address, Monitor.type).join(Monitor, Log.monitor_id == Monitor.id)
        if monitor_id is not None:
            query = query.where(Log.monitor_id == monitor_id)
        if since is not None:
            query = query.where(Log.created_at >= since)
        query = query.order_by(Log.created_at.desc(), Log.id.desc()).limit(limit)

        async with self.db.session() as session:
            rows = (await session.execute(query)).all()

        logs = []
        for log, slug, address, monitor_type in rows:
            item = log.to_dict()
            item.update({"monitor_slug": slug, "address": address, "type": monitor_type})
            logs.append(item)
        return logs

    async def count_by_status(self, since: datetime) -> Dict[str, Dict[str, int]]:
        """
        Healthy and unhealthy entry counts per monitor since ``since``.

        Returns:
            ``{monitor_id: {"healthy": n, "unhealthy": m}}``
        """
        query = (
            select(Log.monitor_id, Log.status, func.count(Log.id))
            .where(Log.created_at >= since)
            .group_by(Log.monitor_id, Log.status)
        )

        async with self.db.session() as session:
            rows = (await session.execute(query)).all()

        counts: Dict[str, Dict[str, int]] = {}
        for monitor_id, status, count in rows:
            bucket = counts.setdefault(monitor_id, {ProbeStatus.HEALTHY.value: 0, ProbeStatus.UNHEALTHY.value: 0})
            bucket[status] = count
        return counts

    async def delete_logs_before(self, cutoff: datetime) -> int:
        """
        Delete log entries created before ``cutoff``.

        Returns:
            Number of deleted records
        """
        async with self.db.session() as session:
            result = await session.execute(delete(Log).where(Log.created_at < cutoff))
            deleted = result.rowcount or 0

        self.logger.info(f"[Retention] Deleted {deleted} log entries older than {cutoff.isoformat()}")
        return deleted
