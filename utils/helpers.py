"""
============================================================================
HEALTHCHECK MONITOR - HELPERS UTILITY
============================================================================
Collection of helper functions and utilities.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import os
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from config.constants import Limits


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.

    All timestamps handled by the application are naive datetimes in UTC,
    which is also how they are stored.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC datetime (naive)."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def minute_of_day(dt: datetime) -> int:
        """
        Minutes elapsed since 00:00 UTC of *dt*'s day (0-1439).

        Aware datetimes are converted to UTC first.
        """
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)
        return (dt.hour * 60 + dt.minute) % Limits.MINUTES_PER_DAY

    @staticmethod
    def floor_to_minute(dt: datetime) -> datetime:
        return dt.replace(second=0, microsecond=0)

    @staticmethod
    def parse_datetime(value: str) -> Optional[datetime]:
        """
        Parse an ISO-8601 string into a naive UTC datetime.

        Args:
            value: String such as ``2024-05-01T10:00:00Z``

        Returns:
            Datetime or None if parsing fails
        """
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @staticmethod
    def format_duration(duration: Optional[timedelta]) -> str:
        """
        Convert a duration to the two most significant units.

        Returns:
            ``"N/A"`` for no duration, else e.g. ``"1d 4h"``, ``"2h 10m"``,
            ``"3m 5s"`` or ``"45s"``
        """
        if not duration:
            return "N/A"

        seconds = int(duration.total_seconds())
        minutes, secs = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        days, hours = divmod(hours, 24)

        if days > 0:
            return f"{days}d {hours}h"
        if hours > 0:
            return f"{hours}h {minutes}m"
        if minutes > 0:
            return f"{minutes}m {secs}s"
        return f"{secs}s"


# ============================================================================
# IDENTIFIERS
# ============================================================================

def generate_uuid_v7() -> str:
    """
    Generate a time-sortable UUID (version 7) string.

    48 bits of millisecond timestamp followed by random bits, with the
    version and variant fields set.
    """
    timestamp_ms = time.time_ns() // 1_000_000
    raw = bytearray(timestamp_ms.to_bytes(6, "big") + os.urandom(10))

    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80

    return str(uuid.UUID(bytes=bytes(raw)))
