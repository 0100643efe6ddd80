"""
============================================================================
HEALTHCHECK MONITOR - VALIDATORS UTILITY
============================================================================
Validation of monitor definitions and API query parameters.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import ipaddress
from typing import Any, Dict, List, Optional

import validators as external_validators

from config.constants import Defaults, HTTPMethod, Limits, MatchMode, MonitorScheme
from exceptions import (
    InvalidFieldError,
    InvalidScheduleError,
    MissingFieldError,
    MultipleValidationErrors,
    ValidationException,
)
from utils.logger import get_logger


logger = get_logger(__name__)


# ============================================================================
# TARGET VALIDATORS
# ============================================================================

class HostValidator:
    """
    Validation of monitor target addresses.

    An address is a bare host: a domain name, an IP address or
    ``localhost``. Scheme, port and path are separate monitor fields.
    """

    @staticmethod
    def is_valid_domain(domain: str) -> bool:
        result = external_validators.domain(domain)
        return result is True

    @staticmethod
    def is_valid_ip(ip: str) -> bool:
        try:
            ipaddress.ip_address(ip)
            return True
        except ValueError:
            return False

    @classmethod
    def is_valid_address(cls, address: str) -> bool:
        """
        Check if address is a usable probe host.

        Args:
            address: Host to validate

        Returns:
            True if valid, False otherwise
        """
        if not address or "/" in address or " " in address:
            return False

        if address == "localhost":
            return True

        return cls.is_valid_ip(address) or cls.is_valid_domain(address)


class DataValidator:
    """
    Validation of scalar fields.
    """

    @staticmethod
    def is_int(value: Any) -> bool:
        """bool is an int subclass but never a valid number here."""
        return isinstance(value, int) and not isinstance(value, bool)

    @classmethod
    def is_valid_port(cls, port: Any) -> bool:
        return cls.is_int(port) and Limits.MIN_PORT <= port <= Limits.MAX_PORT

    @classmethod
    def is_positive_int(cls, value: Any) -> bool:
        return cls.is_int(value) and value >= 1

    @staticmethod
    def is_valid_headers(headers: Any) -> bool:
        if not isinstance(headers, dict):
            return False
        return all(isinstance(k, str) and isinstance(v, str) for k, v in headers.items())


# ============================================================================
# VALIDATION RESULT
# ============================================================================

class ValidationResult:
    """
    Class to hold validation results with detailed information.
    """

    def __init__(self, errors: Optional[List[ValidationException]] = None):
        self.errors = errors or []

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, error: ValidationException) -> None:
        self.errors.append(error)

    def raise_if_invalid(self) -> None:
        """Raise the single error, or all of them aggregated."""
        if not self.errors:
            return
        if len(self.errors) == 1:
            raise self.errors[0]
        raise MultipleValidationErrors(self.errors)

    def __bool__(self):
        """Allow using result as boolean."""
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Valid"
        return "Invalid: " + ", ".join(e.message for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


# ============================================================================
# MONITOR VALIDATOR
# ============================================================================

class MonitorValidator:
    """
    Validation and normalization of monitor definitions.
    """

    @staticmethod
    def check_new_monitor(data: Dict[str, Any]) -> ValidationResult:
        """
        Validate all aspects of a new monitor definition.

        ``name`` is accepted as an alias of ``slug``.

        Args:
            data: Raw monitor definition

        Returns:
            ValidationResult instance
        """
        result = ValidationResult()

        slug = data.get("slug", data.get("name"))
        if not slug or not isinstance(slug, str):
            result.add(MissingFieldError("slug"))

        address = data.get("address")
        if not address or not isinstance(address, str):
            result.add(MissingFieldError("address"))
        elif not HostValidator.is_valid_address(address):
            result.add(InvalidFieldError("address must be a host name or IP address", field="address", value=address))

        frequency = data.get("frequency")
        frequency_ok = DataValidator.is_positive_int(frequency)
        if not frequency_ok:
            result.add(InvalidFieldError("frequency must be a positive integer", field="frequency", value=frequency))

        offset = data.get("offset")
        if offset is not None:
            if not DataValidator.is_int(offset) or offset < 0 or (frequency_ok and offset >= frequency):
                result.add(InvalidScheduleError(frequency=frequency, offset=offset))

        scheme = data.get("type", data.get("scheme"))
        if scheme is not None and scheme not in [s.value for s in MonitorScheme]:
            result.add(InvalidFieldError("type must be HTTP or HTTPS", field="type", value=scheme))

        method = data.get("method")
        if method is not None and method not in [m.value for m in HTTPMethod]:
            result.add(InvalidFieldError("method must be GET, POST, HEAD, PUT, or DELETE", field="method", value=method))

        match = data.get("match")
        if match is not None and match not in [m.value for m in MatchMode]:
            result.add(InvalidFieldError("match must be none, exact, regex, or contains", field="match", value=match))

        port = data.get("port")
        if port is not None and not DataValidator.is_valid_port(port):
            result.add(InvalidFieldError("port must be between 1 and 65535", field="port", value=port))

        timeout = data.get("timeout")
        if timeout is not None and not DataValidator.is_positive_int(timeout):
            result.add(InvalidFieldError("timeout must be a positive number of milliseconds", field="timeout", value=timeout))

        headers = data.get("headers")
        if headers is not None and not DataValidator.is_valid_headers(headers):
            result.add(InvalidFieldError("headers must map strings to strings", field="headers"))

        expected_code = data.get("expected_code")
        if expected_code is not None and not str(expected_code).isdigit():
            result.add(InvalidFieldError("expected_code must be a numeric status", field="expected_code", value=expected_code))

        if not result.is_valid:
            logger.debug(f"[Validator] Rejected monitor definition: {result}")

        return result

    @classmethod
    def validate_new_monitor(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a definition and fill in defaults.

        The port defaults to the scheme's default port, which is 443
        for the default scheme.

        Returns:
            Normalized field dictionary ready for the ``Monitor`` model

        Raises:
            ValidationException: On the first invalid field, or
                MultipleValidationErrors when several are invalid
        """
        cls.check_new_monitor(data).raise_if_invalid()

        scheme = MonitorScheme(data.get("type", data.get("scheme")) or Defaults.SCHEME.value)
        port = data.get("port")

        return {
            "slug": data.get("slug", data.get("name")),
            "description": data.get("description"),
            "address": data["address"],
            "path": data.get("path") or Defaults.PATH,
            "method": data.get("method") or Defaults.METHOD.value,
            "port": port if port is not None else scheme.default_port,
            "type": scheme.value,
            "headers": data.get("headers"),
            "body": data.get("body"),
            "expected_code": str(data.get("expected_code") or Defaults.EXPECTED_CODE),
            "expected_body": data.get("expected_body"),
            "match": data.get("match") or Defaults.MATCH.value,
            "timeout": data.get("timeout") or Defaults.TIMEOUT_MS,
            "frequency": data["frequency"],
            "offset": data.get("offset") if data.get("offset") is not None else Defaults.OFFSET,
            "active": bool(data.get("active", True)),
        }

    @staticmethod
    def validate_window(minutes: Any, allowed: Optional[tuple] = None, maximum: int = Limits.MAX_WINDOW_MINUTES) -> int:
        """
        Parse and validate a lookback window given in minutes.

        Args:
            minutes: Raw value (query strings arrive as str)
            allowed: Optional closed set of accepted values
            maximum: Longest accepted window

        Returns:
            The window as int
        """
        try:
            value = int(minutes)
        except (TypeError, ValueError):
            raise InvalidFieldError("minutes must be an integer", field="minutes", value=minutes)

        if value < 1:
            raise InvalidFieldError("minutes must be positive", field="minutes", value=value)

        if value > maximum:
            raise InvalidFieldError(f"minutes must be at most {maximum}", field="minutes", value=value)

        if allowed is not None and value not in allowed:
            options = ", ".join(str(a) for a in allowed)
            raise InvalidFieldError(f"minutes must be one of {options}", field="minutes", value=value)

        return value

    @staticmethod
    def validate_limit(limit: Any, maximum: int = Limits.MAX_LOGS_PAGE) -> int:
        try:
            value = int(limit)
        except (TypeError, ValueError):
            raise InvalidFieldError("limit must be an integer", field="limit", value=limit)

        if not 1 <= value <= maximum:
            raise InvalidFieldError(f"limit must be between 1 and {maximum}", field="limit", value=value)

        return value
