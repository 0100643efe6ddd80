"""
Constants Module for Healthcheck Monitor

Contains all constant values, enumerations and static configuration
used throughout the application.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Final, Tuple


class ProbeStatus(str, Enum):
    """
    Probe Classification Enumeration

    The only two states a monitor can be in. There is no intermediate
    state: a single probe flip is a transition.
    """

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def get_emoji(cls, status: "ProbeStatus") -> str:
        """Get emoji for probe status."""
        emojis = {
            cls.HEALTHY: "🟢",
            cls.UNHEALTHY: "🔴",
        }
        return emojis.get(status, "❓")

    @classmethod
    def chart_value(cls, status: "ProbeStatus") -> int:
        """Value plotted on the uptime chart (2 = up, 0 = down)."""
        return 2 if status == cls.HEALTHY else 0


class MatchMode(str, Enum):
    """How a response body is compared to the expected body."""

    NONE = "none"
    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"


class HTTPMethod(str, Enum):
    """HTTP methods a monitor may use."""

    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def with_body(cls) -> Tuple["HTTPMethod", ...]:
        """Methods for which the configured request body is sent."""
        return (cls.POST, cls.PUT)


class MonitorScheme(str, Enum):
    """Target scheme of a monitor."""

    HTTP = "HTTP"
    HTTPS = "HTTPS"

    @property
    def default_port(self) -> int:
        return DEFAULT_PORTS[self]


class PageStatus(str, Enum):
    """
    Status Page Colour Bucket

    Applied both to whole-window uptime and to individual day buckets.
    """

    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    OUTAGE = "outage"


class ErrorKind(str, Enum):
    """
    Tagged error kinds carried by every application exception.

    The HTTP boundary maps each kind to a status code.
    """

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    INTERNAL = "internal"

    @property
    def http_status(self) -> int:
        return ERROR_KIND_HTTP_STATUS[self]


DEFAULT_PORTS: Final[Dict[MonitorScheme, int]] = {
    MonitorScheme.HTTP: 80,
    MonitorScheme.HTTPS: 443,
}

ERROR_KIND_HTTP_STATUS: Final[Dict[ErrorKind, int]] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.PERSISTENCE_FAILURE: 500,
    ErrorKind.INTERNAL: 500,
}


class Limits:
    """
    Application Limits and Constraints
    """

    MINUTES_PER_DAY: Final[int] = 1440
    MAX_CHECKS_PER_TICK: Final[int] = 200
    MAX_BODY_LENGTH: Final[int] = 5000
    HISTORY_POINTS: Final[int] = 60
    STATUS_PAGE_DAYS: Final[int] = 45
    MAX_LOGS_PAGE: Final[int] = 1000
    MAX_WINDOW_MINUTES: Final[int] = 45 * 1440
    MIN_PORT: Final[int] = 1
    MAX_PORT: Final[int] = 65535


class Defaults:
    """
    Default Values

    Applied when a monitor is created without the corresponding field.
    """

    PATH: Final[str] = "/"
    METHOD: Final[HTTPMethod] = HTTPMethod.GET
    PORT: Final[int] = 443
    SCHEME: Final[MonitorScheme] = MonitorScheme.HTTPS
    EXPECTED_CODE: Final[str] = "200"
    MATCH: Final[MatchMode] = MatchMode.NONE
    TIMEOUT_MS: Final[int] = 5000
    OFFSET: Final[int] = 0
    STATS_WINDOW_MINUTES: Final[int] = 1440
    LOGS_LIMIT: Final[int] = 100
    USER_AGENT: Final[str] = "HealthcheckMonitor/1.0 (Monitoring Service)"

    # Used for charting when an entry carries no latency
    FALLBACK_LATENCY_MS: Final[int] = 100


class Statistics:
    """Constants of the aggregation layer."""

    PERCENTILES: Final[Tuple[int, ...]] = (50, 75, 90, 95, 99)
    UPTIME_WINDOWS: Final[Tuple[int, ...]] = (30, 60, 180)
    OPERATIONAL_THRESHOLD: Final[float] = 99.0
    DEGRADED_THRESHOLD: Final[float] = 95.0

    # Placeholder split of total latency; no phase timing is captured.
    LATENCY_SPLIT: Final[Tuple[Tuple[str, float], ...]] = (
        ("dns", 0.10),
        ("connect", 0.15),
        ("tls", 0.20),
        ("ttfb", 0.35),
        ("transfer", 0.20),
    )
