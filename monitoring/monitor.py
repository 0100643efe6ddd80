"""
============================================================================
HEALTHCHECK MONITOR - MONITORING ENGINE
============================================================================
The heart of the service. Once per minute the engine selects the monitors
whose schedule matches the current minute of the UTC day, probes them
concurrently, compares every outcome with the last persisted status and
writes a log entry only when the classification changed.

Architecture
------------
MonitoringEngine          ← orchestrates one tick
├── select_due()          ← minute % frequency == offset
├── latest_statuses()     ← one read per due monitor, before any probe
├── process()             ← probe + transition detection per monitor
│   └── HTTPProbe         ← one bounded-timeout request via httpx
└── run_tick()            ← gathers all monitors, returns status changes

The tick is driven by ``monitoring.scheduler.Scheduler``.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from config.constants import HTTPMethod, MatchMode, MonitorScheme, ProbeStatus
from config.settings import MonitoringSettings, get_settings
from monitoring.ports import LatestStatus, LogEntry, LogStore, MonitorStore
from utils.helpers import TimeHelper
from utils.logger import MonitorLogger, get_logger


logger = get_logger("MonitoringEngine")


# ============================================================================
# PROBE OUTCOME
# ============================================================================

class ProbeOutcome:
    """
    Value object carrying the result of a single probe back up to the
    engine. Never persisted as such; a transition turns it into a log entry.
    """
    __slots__ = ("status", "status_code", "latency", "error", "response_body")

    def __init__(
        self,
        status: ProbeStatus,
        status_code: Optional[int] = None,
        latency: int = 0,
        error: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        self.status = status
        self.status_code = status_code
        self.latency = latency
        self.error = error
        self.response_body = response_body

    @property
    def is_healthy(self) -> bool:
        return self.status == ProbeStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        data = {slot: getattr(self, slot) for slot in self.__slots__}
        data["status"] = self.status.value
        return data

    def __repr__(self) -> str:
        return f"<ProbeOutcome(status={self.status.value}, status_code={self.status_code}, latency={self.latency})>"


# ============================================================================
# HTTP PROBE
# ============================================================================

class HTTPProbe:
    """
    Performs one HTTP / HTTPS request per monitor using httpx.

    Features
    --------
    • Hard timeout per monitor; the request is cancelled when it expires
    • Per-monitor headers, and request body for POST / PUT
    • Status code check against the expected code
    • Optional body expectation (exact, contains, regex)
    • No retries: every failure is reported as an unhealthy outcome
    """

    def __init__(
        self,
        settings: Optional[MonitoringSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            settings: Monitoring section of the settings
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.settings = settings or get_settings().monitoring
        self._transport = transport

    @staticmethod
    def build_url(monitor: Any) -> str:
        """
        ``scheme://address[:port]/path``; the port is omitted when it is
        the scheme's default.
        """
        scheme = MonitorScheme(str(monitor.type).upper())
        port_suffix = "" if monitor.port == scheme.default_port else f":{monitor.port}"
        path = monitor.path or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{scheme.value.lower()}://{monitor.address}{port_suffix}{path}"

    @staticmethod
    def validate_response_body(body: str, expected: Optional[str], match: str) -> bool:
        """
        Check *body* against the monitor's body expectation.

        An invalid regular expression never matches.
        """
        mode = MatchMode(match or MatchMode.NONE.value)
        if mode == MatchMode.NONE or not expected:
            return True
        if mode == MatchMode.EXACT:
            return body == expected
        if mode == MatchMode.CONTAINS:
            return expected in body
        try:
            return re.search(expected, body) is not None
        except re.error as e:
            logger.warning(f"[Probe] Invalid regex pattern {expected!r}: {e}")
            return False

    def truncate_body(self, body: Optional[str]) -> Optional[str]:
        """Bodies over the length limit are dropped, not cut."""
        if body is None or len(body) <= self.settings.max_body_length:
            return body
        return None

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return max(0, int(round((time.perf_counter() - start) * 1000)))

    def _build_request(self, monitor: Any) -> Dict[str, Any]:
        method = (monitor.method or HTTPMethod.GET.value).upper()
        headers = dict(monitor.headers) if monitor.headers else {}
        headers.setdefault("User-Agent", self.settings.user_agent)

        content = None
        if monitor.body and method in [m.value for m in HTTPMethod.with_body()]:
            content = monitor.body

        return {
            "method": method,
            "url": self.build_url(monitor),
            "headers": headers,
            "content": content,
        }

    async def execute(self, monitor: Any) -> ProbeOutcome:
        """
        Probe *monitor* once and classify the outcome.

        Never raises for transport failures or unmet expectations; both
        produce an unhealthy outcome whose error text tells them apart.
        """
        timeout_ms = monitor.timeout or self.settings.default_timeout_ms
        timeout_s = timeout_ms / 1000

        start = time.perf_counter()
        try:
            request = self._build_request(monitor)
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_s),
                follow_redirects=self.settings.follow_redirects,
                verify=self.settings.verify_ssl,
                transport=self._transport,
            ) as client:
                start = time.perf_counter()
                response = await asyncio.wait_for(client.request(**request), timeout=timeout_s)
            latency = self._elapsed_ms(start)

        except (asyncio.TimeoutError, httpx.TimeoutException):
            latency = self._elapsed_ms(start)
            logger.debug(f"[Probe] {monitor.slug} timed out after {timeout_ms} ms")
            return ProbeOutcome(
                status=ProbeStatus.UNHEALTHY,
                latency=latency,
                error=f"request timed out after {timeout_ms} ms",
            )
        except Exception as e:
            latency = self._elapsed_ms(start)
            logger.debug(f"[Probe] {monitor.slug} failed: {type(e).__name__}: {e}")
            return ProbeOutcome(
                status=ProbeStatus.UNHEALTHY,
                latency=latency,
                error=str(e) or type(e).__name__,
            )

        body = response.text
        response_body = self.truncate_body(body)
        expected_code = str(monitor.expected_code)

        if str(response.status_code) != expected_code:
            return ProbeOutcome(
                status=ProbeStatus.UNHEALTHY,
                status_code=response.status_code,
                latency=latency,
                error=f"expected status {expected_code}, got {response.status_code}",
                response_body=response_body,
            )

        if not self.validate_response_body(body, monitor.expected_body, monitor.match):
            return ProbeOutcome(
                status=ProbeStatus.UNHEALTHY,
                status_code=response.status_code,
                latency=latency,
                error=f"response body did not match expected ({monitor.match})",
                response_body=response_body,
            )

        return ProbeOutcome(
            status=ProbeStatus.HEALTHY,
            status_code=response.status_code,
            latency=latency,
            response_body=response_body,
        )


# ============================================================================
# STATUS CHANGE EVENT
# ============================================================================

@dataclass(frozen=True)
class StatusChangeEvent:
    """A classification change of one monitor, handed to the notifier."""

    monitor_id: str
    monitor_name: str
    old_status: ProbeStatus
    new_status: ProbeStatus
    downtime: Optional[timedelta]
    error: Optional[str]
    timestamp: datetime

    @property
    def is_recovery(self) -> bool:
        return self.new_status == ProbeStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monitor_id": self.monitor_id,
            "monitor_name": self.monitor_name,
            "old_status": self.old_status.value,
            "new_status": self.new_status.value,
            "downtime_ms": int(self.downtime.total_seconds() * 1000) if self.downtime is not None else None,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================================
# DUE-SET SELECTION
# ============================================================================

def is_due(monitor: Any, minute: int) -> bool:
    """True when *monitor* runs at *minute* (minutes since 00:00 UTC)."""
    return minute % monitor.frequency == monitor.offset


def select_due(monitors: Iterable[Any], minute: int) -> List[Any]:
    return [m for m in monitors if is_due(m, minute)]


# ============================================================================
# MONITORING ENGINE
# ============================================================================

class MonitoringEngine:
    """
    Runs one tick at a time: selects the due monitors, probes them
    concurrently and persists transitions.

    The engine keeps no state between ticks; the previous status of a
    monitor is always read back from the log.
    """

    def __init__(
        self,
        monitor_store: MonitorStore,
        log_store: LogStore,
        probe: Optional[HTTPProbe] = None,
        settings: Optional[MonitoringSettings] = None,
        clock: Callable[[], datetime] = TimeHelper.get_utc_now,
    ):
        """
        Args:
            monitor_store: Source of active monitors
            log_store: Transition log
            probe: Probe executor; built from settings when omitted
            settings: Monitoring section of the settings
            clock: Returns the current naive UTC time
        """
        self.settings = settings or get_settings().monitoring
        self.monitor_store = monitor_store
        self.log_store = log_store
        self.probe = probe or HTTPProbe(self.settings)
        self.clock = clock
        self.monitor_logger = MonitorLogger()

        self._stats = {
            "ticks": 0,
            "probes": 0,
            "status_changes": 0,
            "failures": 0,
            "last_tick_at": None,
        }

        logger.info(f"MonitoringEngine created — max_checks_per_tick={self.settings.max_checks_per_tick}")

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        if stats["last_tick_at"]:
            stats["last_tick_at"] = stats["last_tick_at"].isoformat()
        return stats

    async def process(self, monitor: Any, last_known: Optional[LatestStatus]) -> Optional[StatusChangeEvent]:
        """
        Probe *monitor* and record a transition if its status changed.

        Args:
            monitor: Monitor to probe
            last_known: Most recent persisted status; None means the
                monitor is considered healthy

        Returns:
            The status change, or None when the status is unchanged

        Raises:
            DatabaseQueryError: If the log entry cannot be written
        """
        outcome = await self.probe.execute(monitor)
        self.monitor_logger.log_check(monitor.slug, monitor.address, outcome.is_healthy, outcome.latency, outcome.error)

        old_status = last_known.status if last_known else ProbeStatus.HEALTHY
        new_status = outcome.status
        if new_status == old_status:
            return None

        now = self.clock()
        downtime = None
        if (
            old_status == ProbeStatus.UNHEALTHY
            and new_status == ProbeStatus.HEALTHY
            and last_known is not None
            and last_known.timestamp is not None
        ):
            downtime = now - last_known.timestamp

        await self.log_store.append_log(
            LogEntry(
                monitor_id=monitor.id,
                status=new_status,
                status_code=outcome.status_code,
                latency=outcome.latency,
                error=outcome.error,
                response_body=outcome.response_body,
                created_at=now,
            )
        )

        if new_status == ProbeStatus.UNHEALTHY:
            self.monitor_logger.log_downtime(monitor.slug, outcome.error)
        else:
            self.monitor_logger.log_recovery(monitor.slug, downtime)

        return StatusChangeEvent(
            monitor_id=monitor.id,
            monitor_name=monitor.slug,
            old_status=old_status,
            new_status=new_status,
            downtime=downtime,
            error=outcome.error,
            timestamp=now,
        )

    async def run_tick(self, now: Optional[datetime] = None) -> List[StatusChangeEvent]:
        """
        Run every monitor due at the current minute.

        Monitors whose processing fails are logged and left out of the
        result; they do not affect the others.

        Args:
            now: Tick time, defaults to the engine clock

        Returns:
            Status changes of this tick
        """
        now = now or self.clock()
        minute = TimeHelper.minute_of_day(now)

        self._stats["ticks"] += 1
        self._stats["last_tick_at"] = now

        monitors = await self.monitor_store.list_active_monitors(self.settings.max_checks_per_tick)
        due = select_due(monitors, minute)
        if not due:
            return []

        logger.info(f"[Engine] Running {len(due)} healthchecks: {', '.join(m.slug for m in due)}")

        latest = await self.log_store.latest_statuses([m.id for m in due])

        results = await asyncio.gather(
            *(self.process(m, latest.get(m.id)) for m in due),
            return_exceptions=True
        )
        self._stats["probes"] += len(due)

        events: List[StatusChangeEvent] = []
        for monitor, result in zip(due, results):
            if isinstance(result, BaseException):
                self._stats["failures"] += 1
                logger.error(f"[Engine] Processing {monitor.slug} ({monitor.id}) failed: {result}")
            elif result is not None:
                events.append(result)

        self._stats["status_changes"] += len(events)
        logger.info(f"[Engine] Status changes detected: {len(events)}")
        return events
