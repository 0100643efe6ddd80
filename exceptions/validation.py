"""
Validation Exception Classes for Healthcheck Monitor

Provides specialized exceptions for monitor definition and query
parameter validation.
"""

from __future__ import annotations

from typing import Any, List, Optional

from config.constants import ErrorKind
from exceptions.base import HealthcheckException


class ValidationException(HealthcheckException):
    """
    Base Validation Exception

    Parent class for all validation-related exceptions.
    """

    default_error_code = 3000
    default_kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: The field that failed validation
            value: The invalid value (sanitized)
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if field:
            self.details["field"] = field

        if value is not None:
            self.details["value"] = self._sanitize_value(value)

    @staticmethod
    def _sanitize_value(value: Any) -> str:
        str_value = str(value)
        if len(str_value) > 100:
            str_value = str_value[:100] + "..."
        return str_value


class MissingFieldError(ValidationException):
    """Raised when a required field is absent."""

    default_error_code = 3001

    def __init__(self, field: str, **kwargs: Any) -> None:
        super().__init__(f"{field} is required", field=field, **kwargs)


class InvalidFieldError(ValidationException):
    """Raised when a field is present but its value is not acceptable."""

    default_error_code = 3002


class InvalidScheduleError(ValidationException):
    """
    Invalid Schedule Error

    Raised when frequency/offset violate ``0 <= offset < frequency``.
    """

    default_error_code = 3003

    def __init__(
        self,
        message: str = "offset must be between 0 and frequency - 1",
        frequency: Optional[int] = None,
        offset: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field="offset", **kwargs)

        if frequency is not None:
            self.details["frequency"] = frequency

        if offset is not None:
            self.details["offset"] = offset


class MultipleValidationErrors(ValidationException):
    """Aggregates several validation failures into one error."""

    default_error_code = 3099

    def __init__(self, errors: List[ValidationException], **kwargs: Any) -> None:
        self.errors = errors
        message = "; ".join(e.message for e in errors) or "Validation failed"
        super().__init__(message, **kwargs)
        self.details["errors"] = [e.to_dict() for e in errors]
