"""
Monitoring Exception Classes for Healthcheck Monitor

Probe failures are never raised (they become unhealthy outcomes);
these cover the collaborators around the tick.
"""

from __future__ import annotations

from typing import Any, Optional

from config.constants import ErrorKind
from exceptions.base import HealthcheckException


class MonitoringException(HealthcheckException):
    """Base class for monitoring-related exceptions."""

    default_error_code = 5000
    default_kind = ErrorKind.UPSTREAM_FAILURE


class NotificationError(MonitoringException):
    """
    Notification Error

    Raised when the notification provider rejects or fails a delivery.
    """

    default_error_code = 5001

    def __init__(
        self,
        message: str = "Failed to deliver notification",
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if provider:
            self.details["provider"] = provider

        if status_code is not None:
            self.details["status_code"] = status_code
