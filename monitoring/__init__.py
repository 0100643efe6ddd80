"""
============================================================================
HEALTHCHECK MONITOR - MONITORING PACKAGE
============================================================================
This package contains the runtime monitoring infrastructure:
    • MonitoringEngine   — selects due monitors, probes them, records transitions
    • HTTPProbe          — one bounded-timeout HTTP request per monitor
    • StatsService       — uptime, latency percentiles and status page
    • AlertManager       — SendGrid email delivery of status changes
    • HealthServer       — read-only aiohttp API
    • Scheduler          — minute-aligned background job runner

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── ports.py             ← storage / notification protocols
├── monitor.py           ← MonitoringEngine + HTTPProbe + due-set selection
├── stats.py             ← StatsService + pure aggregation functions
├── alerts.py            ← AlertManager
├── server.py            ← HealthServer
└── scheduler.py         ← Scheduler + built-in jobs

============================================================================
"""

from monitoring.ports import LatestStatus, LogEntry, MonitorStore, LogStore, NotificationSink
from monitoring.monitor import (
    MonitoringEngine,
    HTTPProbe,
    ProbeOutcome,
    StatusChangeEvent,
    is_due,
    select_due,
)
from monitoring.stats import StatsService, MonitorStats, StatusPageView, SystemStatus, LatencyPercentiles
from monitoring.alerts import AlertManager, format_downtime
from monitoring.server import HealthServer
from monitoring.scheduler import Scheduler, ScheduledJob

__all__ = [
    # Ports
    "LatestStatus",
    "LogEntry",
    "MonitorStore",
    "LogStore",
    "NotificationSink",

    # Monitoring Engine
    "MonitoringEngine",
    "HTTPProbe",
    "ProbeOutcome",
    "StatusChangeEvent",
    "is_due",
    "select_due",

    # Aggregation
    "StatsService",
    "MonitorStats",
    "StatusPageView",
    "SystemStatus",
    "LatencyPercentiles",

    # Alerts
    "AlertManager",
    "format_downtime",

    # HTTP
    "HealthServer",

    # Scheduler
    "Scheduler",
    "ScheduledJob",
]
