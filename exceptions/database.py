"""
Database Exception Classes for Healthcheck Monitor

Provides specialized exceptions for persistence errors. All of them
are tagged ``persistence_failure``.
"""

from __future__ import annotations

from typing import Any, Optional

from config.constants import ErrorKind
from exceptions.base import HealthcheckException


class DatabaseException(HealthcheckException):
    """
    Base Database Exception

    Parent class for all database-related exceptions.
    """

    default_error_code = 2000
    default_kind = ErrorKind.PERSISTENCE_FAILURE


class DatabaseConnectionError(DatabaseException):
    """
    Database Connection Error

    Raised when unable to establish or maintain database connection.
    """

    default_error_code = 2001

    def __init__(
        self,
        message: str = "Unable to connect to database",
        url: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if url:
            self.details["url"] = url

    def user_message(self) -> str:
        return "Unable to access the database. Please try again later."


class DatabaseQueryError(DatabaseException):
    """
    Database Query Error

    Raised when a statement fails while the store is reachable, or when
    the store becomes unavailable mid-operation.
    """

    default_error_code = 2002

    def user_message(self) -> str:
        return "A database error occurred. Please try again later."
