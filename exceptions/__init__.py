"""
Exceptions Package for Healthcheck Monitor

Provides the exception hierarchy for error handling throughout the
application. Every exception carries an ``ErrorKind`` tag.
"""

from exceptions.base import (
    HealthcheckException,
    NotFoundError,
)

from exceptions.database import (
    DatabaseException,
    DatabaseConnectionError,
    DatabaseQueryError,
)

from exceptions.validation import (
    ValidationException,
    MissingFieldError,
    InvalidFieldError,
    InvalidScheduleError,
    MultipleValidationErrors,
)

from exceptions.monitoring import (
    MonitoringException,
    NotificationError,
)

__all__ = [
    # Base exceptions
    "HealthcheckException",
    "NotFoundError",

    # Database exceptions
    "DatabaseException",
    "DatabaseConnectionError",
    "DatabaseQueryError",

    # Validation exceptions
    "ValidationException",
    "MissingFieldError",
    "InvalidFieldError",
    "InvalidScheduleError",
    "MultipleValidationErrors",

    # Monitoring exceptions
    "MonitoringException",
    "NotificationError",
]
