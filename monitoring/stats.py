"""
============================================================================
HEALTHCHECK MONITOR - AGGREGATION
============================================================================
Uptime, latency percentiles and history computed on demand from the
transition log.

The log only holds transitions, so the counts and percentages below are
taken over log entries, not over individual probes.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.constants import Defaults, PageStatus, ProbeStatus, Statistics
from config.settings import MonitoringSettings, get_settings
from monitoring.ports import LogStore, MonitorStore
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import MonitorValidator


logger = get_logger("Stats")


# ============================================================================
# PURE CALCULATIONS
# ============================================================================

def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile of an ascending sequence; 0 when empty.
    """
    if not sorted_values:
        return 0
    index = math.ceil((p / 100) * len(sorted_values)) - 1
    return sorted_values[max(0, index)]


def uptime_percentage(healthy: int, total: int) -> float:
    """Share of healthy entries in percent; 100 when there are none."""
    if total <= 0:
        return 100.0
    return healthy / total * 100


def classify_uptime(
    uptime: float,
    operational_threshold: float = Statistics.OPERATIONAL_THRESHOLD,
    degraded_threshold: float = Statistics.DEGRADED_THRESHOLD,
) -> PageStatus:
    if uptime >= operational_threshold:
        return PageStatus.OPERATIONAL
    if uptime >= degraded_threshold:
        return PageStatus.DEGRADED
    return PageStatus.OUTAGE


def build_daily_history(
    logs: Sequence[Any],
    days: int,
    operational_threshold: float = Statistics.OPERATIONAL_THRESHOLD,
    degraded_threshold: float = Statistics.DEGRADED_THRESHOLD,
) -> List[PageStatus]:
    """
    One status per UTC day that has entries, oldest first, padded at the
    front with ``operational`` to exactly *days* cells.

    Args:
        logs: Entries with ``status`` and ``created_at``
        days: Number of cells
    """
    buckets: Dict[date, List[int]] = {}
    for log in logs:
        bucket = buckets.setdefault(log.created_at.date(), [0, 0])
        if log.status == ProbeStatus.HEALTHY.value:
            bucket[0] += 1
        bucket[1] += 1

    history = [
        classify_uptime(uptime_percentage(healthy, total), operational_threshold, degraded_threshold)
        for _, (healthy, total) in sorted(buckets.items())
    ][-days:]

    return [PageStatus.OPERATIONAL] * (days - len(history)) + history


def latency_breakdown(latency: Optional[int]) -> Dict[str, int]:
    """Split a total latency over request phases by fixed ratios."""
    value = latency or Defaults.FALLBACK_LATENCY_MS
    return {phase: math.floor(value * ratio) for phase, ratio in Statistics.LATENCY_SPLIT}


# ============================================================================
# RESULT OBJECTS
# ============================================================================

@dataclass
class LatencyPercentiles:
    p50: int = 0
    p75: int = 0
    p90: int = 0
    p95: int = 0
    p99: int = 0

    @classmethod
    def from_latencies(cls, latencies: Sequence[int]) -> "LatencyPercentiles":
        ordered = sorted(latencies)
        return cls(**{f"p{p}": int(round(percentile(ordered, p))) for p in Statistics.PERCENTILES})


@dataclass
class MonitorStats:
    """Per-monitor aggregates over a lookback window."""

    monitor_id: str
    window_minutes: int
    uptime: float
    healthy: int
    failing: int
    requests: int
    degraded: int = 0
    last_checked: Optional[datetime] = None
    latency: LatencyPercentiles = field(default_factory=LatencyPercentiles)
    uptime_history: List[Dict[str, int]] = field(default_factory=list)
    latency_history: List[Dict[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_checked"] = self.last_checked.isoformat() if self.last_checked else None
        return data


@dataclass
class SystemStatus:
    """One monitor on the status page."""

    name: str
    uptime: float
    status: PageStatus
    history: List[PageStatus]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "uptime": self.uptime,
            "status": self.status.value,
            "history": [h.value for h in self.history],
        }


@dataclass
class StatusPageView:
    overall: PageStatus
    systems: List[SystemStatus]
    incidents: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.value,
            "systems": [s.to_dict() for s in self.systems],
            "incidents": self.incidents,
        }


# ============================================================================
# STATS SERVICE
# ============================================================================

class StatsService:
    """
    Read-only aggregation over monitors and their logs.
    """

    def __init__(
        self,
        monitor_store: MonitorStore,
        log_store: LogStore,
        settings: Optional[MonitoringSettings] = None,
        clock: Callable[[], datetime] = TimeHelper.get_utc_now,
    ):
        self.monitor_store = monitor_store
        self.log_store = log_store
        self.settings = settings or get_settings().monitoring
        self.clock = clock

    def _classify(self, uptime: float) -> PageStatus:
        return classify_uptime(uptime, self.settings.operational_threshold, self.settings.degraded_threshold)

    async def get_monitor_stats(self, monitor_id: str, window_minutes: Optional[int] = None) -> Optional[MonitorStats]:
        """
        Aggregates of one monitor over the last *window_minutes*.

        Returns:
            MonitorStats, or None if the monitor does not exist
        """
        window = window_minutes or self.settings.default_stats_window_minutes
        monitor = await self.monitor_store.get_by_id(monitor_id)
        if monitor is None:
            return None

        since = self.clock() - timedelta(minutes=window)
        logs = await self.log_store.query_logs(monitor_id, since=since)

        total = len(logs)
        healthy = sum(1 for log in logs if log.status == ProbeStatus.HEALTHY.value)
        latencies = [log.latency for log in logs if log.latency is not None]

        recent = logs[-self.settings.history_limit:]
        uptime_history = [
            {
                "time": i,
                "status": ProbeStatus.chart_value(ProbeStatus(log.status)),
                "duration": log.latency or Defaults.FALLBACK_LATENCY_MS,
            }
            for i, log in enumerate(recent)
        ]
        latency_history = [{"time": i, **latency_breakdown(log.latency)} for i, log in enumerate(recent)]

        return MonitorStats(
            monitor_id=monitor_id,
            window_minutes=window,
            uptime=round(uptime_percentage(healthy, total), 2),
            healthy=healthy,
            failing=total - healthy,
            requests=total,
            last_checked=logs[-1].created_at if logs else None,
            latency=LatencyPercentiles.from_latencies(latencies),
            uptime_history=uptime_history,
            latency_history=latency_history,
        )

    async def get_status_page(self) -> StatusPageView:
        """
        Uptime and per-day history of every active monitor, ordered by slug.
        """
        days = self.settings.status_page_days
        since = self.clock() - timedelta(days=days)

        systems: List[SystemStatus] = []
        for monitor in await self.monitor_store.list_active_by_slug():
            logs = await self.log_store.query_logs(monitor.id, since=since)
            healthy = sum(1 for log in logs if log.status == ProbeStatus.HEALTHY.value)
            uptime = uptime_percentage(healthy, len(logs))

            systems.append(
                SystemStatus(
                    name=monitor.slug,
                    uptime=round(uptime, 2),
                    status=self._classify(uptime),
                    history=build_daily_history(
                        logs, days, self.settings.operational_threshold, self.settings.degraded_threshold
                    ),
                )
            )

        all_operational = all(s.status == PageStatus.OPERATIONAL for s in systems)
        overall = PageStatus.OPERATIONAL if all_operational else PageStatus.DEGRADED
        return StatusPageView(overall=overall, systems=systems)

    async def get_uptime_overview(self, minutes: Any) -> List[Dict[str, Any]]:
        """
        Healthy / unhealthy / total entry counts of every active monitor
        over the last *minutes*, which must be one of the configured windows.

        Raises:
            InvalidFieldError: If *minutes* is not an accepted window
        """
        window = MonitorValidator.validate_window(minutes, allowed=tuple(self.settings.uptime_windows))
        since = self.clock() - timedelta(minutes=window)

        monitors = await self.monitor_store.list_active_by_slug()
        counts = await self.log_store.count_by_status(since)

        overview = []
        for monitor in monitors:
            bucket = counts.get(monitor.id, {})
            healthy = bucket.get(ProbeStatus.HEALTHY.value, 0)
            unhealthy = bucket.get(ProbeStatus.UNHEALTHY.value, 0)
            overview.append({
                "monitor_id": monitor.id,
                "monitor_slug": monitor.slug,
                "address": monitor.address,
                "type": monitor.type,
                "healthy_count": healthy,
                "unhealthy_count": unhealthy,
                "total_count": healthy + unhealthy,
            })
        return overview
