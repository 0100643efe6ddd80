"""
Configuration Package for Healthcheck Monitor

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants and enums used throughout the application
"""

from config.settings import (
    Settings,
    DatabaseSettings,
    MonitoringSettings,
    RetentionSettings,
    NotificationSettings,
    LoggingSettings,
    ServerSettings,
    get_settings,
)

from config.constants import (
    ProbeStatus,
    MatchMode,
    HTTPMethod,
    MonitorScheme,
    PageStatus,
    ErrorKind,
    Limits,
    Defaults,
    Statistics,
)

__all__ = [
    # Settings
    "Settings",
    "DatabaseSettings",
    "MonitoringSettings",
    "RetentionSettings",
    "NotificationSettings",
    "LoggingSettings",
    "ServerSettings",
    "get_settings",

    # Constants
    "ProbeStatus",
    "MatchMode",
    "HTTPMethod",
    "MonitorScheme",
    "PageStatus",
    "ErrorKind",
    "Limits",
    "Defaults",
    "Statistics",
]
