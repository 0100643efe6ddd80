"""
============================================================================
HEALTHCHECK MONITOR - LOGGING UTILITY
============================================================================
Logging system built on loguru with console, rotating file and error
file sinks.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import sys
from datetime import timedelta
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings, get_settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"

logger.configure(extra={"name": "root"})


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(log_settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure the loguru sinks.

    Args:
        log_settings: Logging section of the settings; the cached
            application settings are used when omitted.
    """
    log_settings = log_settings or get_settings().logging

    # Remove default loguru handler
    logger.remove()

    log_level = log_settings.level.value

    if log_settings.to_console:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=log_settings.colorize,
            backtrace=True,
            diagnose=False,
        )

    if log_settings.to_file:
        log_settings.directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_settings.directory / log_settings.file_name,
            format=FILE_FORMAT,
            level=log_level,
            rotation=log_settings.rotation,
            retention=log_settings.retention,
            compression="zip",
            serialize=log_settings.serialize,
            backtrace=True,
            diagnose=False,
        )

        # Separate file for errors
        logger.add(
            log_settings.directory / "errors.log",
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logger.info("Logging system initialized")
    logger.info(f"Log level: {log_level}")
    logger.info(f"Console logging: {log_settings.to_console}")
    logger.info(f"File logging: {log_settings.to_file}")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Logger name (usually the component name)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger


# ============================================================================
# SPECIALIZED LOGGERS
# ============================================================================

class MonitorLogger:
    """
    Specialized logger for probe results and transitions.
    """

    def __init__(self):
        self.logger = get_logger("Monitor")

    def log_check(self, monitor_slug: str, address: str, healthy: bool, latency_ms: int, error: Optional[str] = None):
        """Log a probe result."""
        if healthy:
            self.logger.debug(f"Check healthy for {monitor_slug} ({address}) - latency: {latency_ms}ms")
        else:
            self.logger.warning(f"Check unhealthy for {monitor_slug} ({address}) - latency: {latency_ms}ms, error: {error}")

    def log_downtime(self, monitor_slug: str, error: Optional[str] = None):
        """Log a healthy -> unhealthy transition."""
        self.logger.error(f"🔴 Downtime detected for {monitor_slug}: {error}")

    def log_recovery(self, monitor_slug: str, downtime: Optional[timedelta]):
        """Log an unhealthy -> healthy transition."""
        seconds = int(downtime.total_seconds()) if downtime is not None else None
        self.logger.info(f"🟢 Recovery detected for {monitor_slug} - downtime: {seconds}s")
