"""Tests for the tagged exception hierarchy."""

from __future__ import annotations

import pytest

from config.constants import ErrorKind
from exceptions import (
    DatabaseConnectionError,
    DatabaseQueryError,
    HealthcheckException,
    InvalidFieldError,
    NotFoundError,
    NotificationError,
)


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("error", "kind", "status"),
        [
            (InvalidFieldError("bad", field="minutes"), ErrorKind.VALIDATION, 400),
            (NotFoundError("monitor not found"), ErrorKind.NOT_FOUND, 404),
            (NotificationError("provider down"), ErrorKind.UPSTREAM_FAILURE, 502),
            (DatabaseQueryError("insert failed"), ErrorKind.PERSISTENCE_FAILURE, 500),
            (DatabaseConnectionError("refused"), ErrorKind.PERSISTENCE_FAILURE, 500),
            (HealthcheckException("boom"), ErrorKind.INTERNAL, 500),
        ],
    )
    def test_kind_maps_to_http_status(self, error: HealthcheckException, kind: ErrorKind, status: int) -> None:
        assert error.kind == kind
        assert error.http_status == status

    def test_kind_override(self) -> None:
        error = HealthcheckException("gone", kind=ErrorKind.NOT_FOUND)
        assert error.http_status == 404


class TestSerialization:
    def test_to_dict(self) -> None:
        error = NotFoundError("monitor not found", resource="monitor", resource_id="abc")

        data = error.to_dict()

        assert data["type"] == "NotFoundError"
        assert data["kind"] == "not_found"
        assert data["details"] == {"resource": "monitor", "resource_id": "abc"}

    def test_log_format_includes_cause(self) -> None:
        cause = ValueError("low level")
        error = DatabaseQueryError.from_exception(cause, message="query failed")

        assert "Cause: low level" in error.log_format()
        assert error.message == "query failed"
        assert error.user_message() == "A database error occurred. Please try again later."
