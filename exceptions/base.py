"""
Base Exception Classes for Healthcheck Monitor

Provides the foundation exception hierarchy from which all
other exceptions inherit. Every exception carries an ``ErrorKind``
tag which the HTTP boundary maps to a status code.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from datetime import datetime, timezone

from config.constants import ErrorKind


class HealthcheckException(Exception):
    """
    Base Exception Class

    All custom exceptions in the application inherit from this class.

    Attributes:
        message: Human-readable error message
        kind: Tagged error kind (validation, not-found, ...)
        error_code: Numeric error code for categorization
        details: Additional error details as dictionary
        timestamp: When the exception occurred
        cause: The underlying exception, if any
    """

    default_error_code: int = 1000
    default_kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An error occurred",
        error_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        kind: Optional[ErrorKind] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Numeric error code
            details: Additional error details
            cause: The underlying exception that caused this one
            kind: Override of the class error kind
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self.default_error_code
        self.kind = kind or self.default_kind
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    @property
    def http_status(self) -> int:
        """Status code used when the error crosses the HTTP boundary."""
        return self.kind.http_status

    @property
    def full_message(self) -> str:
        """Get full error message with code."""
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def log_format(self) -> str:
        """
        Format exception for logging.

        Returns:
            Formatted string for logging
        """
        parts = [
            f"Exception: {self.__class__.__name__}",
            f"Kind: {self.kind.value}",
            f"Code: {self.error_code}",
            f"Message: {self.message}"
        ]

        if self.details:
            parts.append(f"Details: {self.details}")

        if self.cause:
            parts.append(f"Cause: {self.cause}")

        return " | ".join(parts)

    def user_message(self) -> str:
        """Message suitable for API consumers."""
        return self.message

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        message: Optional[str] = None,
        **kwargs: Any
    ) -> "HealthcheckException":
        """Create from another exception."""
        return cls(
            message=message or str(exception),
            cause=exception,
            **kwargs
        )

    def __str__(self) -> str:
        return self.full_message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"kind={self.kind.value}, "
            f"error_code={self.error_code})"
        )


class NotFoundError(HealthcheckException):
    """
    Not Found Error

    Raised when a requested monitor (or other resource) does not exist.
    """

    default_error_code = 1404
    default_kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "Resource not found",
        resource: Optional[str] = None,
        resource_id: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if resource:
            self.details["resource"] = resource

        if resource_id is not None:
            self.details["resource_id"] = resource_id
