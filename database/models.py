"""
============================================================================
HEALTHCHECK MONITOR - DATABASE MODELS
============================================================================
SQLAlchemy ORM models for monitors and their transition log.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

from config.constants import Defaults
from utils.helpers import TimeHelper, generate_uuid_v7


# ============================================================================
# BASE MODEL CONFIGURATION
# ============================================================================

Base = declarative_base()


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    Values are naive UTC datetimes.
    """
    created_at = Column(
        DateTime,
        nullable=False,
        default=TimeHelper.get_utc_now,
        index=True
    )
    updated_at = Column(
        DateTime,
        nullable=False,
        default=TimeHelper.get_utc_now,
        onupdate=TimeHelper.get_utc_now
    )


# ============================================================================
# MONITOR MODEL
# ============================================================================

class Monitor(Base, TimestampMixin):
    """
    Model representing a monitored HTTP endpoint and its schedule.

    The monitor runs at every minute of the UTC day for which
    ``minute % frequency == offset``.
    """
    __tablename__ = "monitors"

    # Primary Key
    id = Column(String(36), primary_key=True, default=generate_uuid_v7)

    # Identity
    slug = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Target
    address = Column(String(255), nullable=False)
    path = Column(String(2048), nullable=False, default=Defaults.PATH)
    method = Column(String(10), nullable=False, default=Defaults.METHOD.value)
    port = Column(Integer, nullable=False, default=Defaults.PORT)
    type = Column(String(10), nullable=False, default=Defaults.SCHEME.value)
    headers = Column(JSON, nullable=True)
    body = Column(Text, nullable=True)

    # Expected Response
    expected_code = Column(String(3), nullable=False, default=Defaults.EXPECTED_CODE)
    expected_body = Column(Text, nullable=True)
    match = Column(String(10), nullable=False, default=Defaults.MATCH.value)

    # Timing
    timeout = Column(Integer, nullable=False, default=Defaults.TIMEOUT_MS)
    frequency = Column(Integer, nullable=False)
    offset = Column(Integer, nullable=False, default=Defaults.OFFSET)

    active = Column(Boolean, nullable=False, default=True, index=True)

    # Relationships
    logs = relationship(
        "Log",
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Monitor(id={self.id}, slug={self.slug}, frequency={self.frequency}, offset={self.offset})>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert monitor to dictionary"""
        return {
            "id": self.id,
            "slug": self.slug,
            "description": self.description,
            "address": self.address,
            "path": self.path,
            "method": self.method,
            "port": self.port,
            "type": self.type,
            "headers": self.headers,
            "body": self.body,
            "expected_code": self.expected_code,
            "expected_body": self.expected_body,
            "match": self.match,
            "timeout": self.timeout,
            "frequency": self.frequency,
            "offset": self.offset,
            "active": self.active,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


# ============================================================================
# LOG MODEL
# ============================================================================

class Log(Base):
    """
    Transition record of a monitor.

    Rows are only written when a probe's classification differs from
    the previous row of the same monitor, and are never updated.
    """
    __tablename__ = "logs"

    # Primary Key
    id = Column(String(36), primary_key=True, default=generate_uuid_v7)

    # Foreign Key
    monitor_id = Column(
        String(36),
        ForeignKey("monitors.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Outcome
    status = Column(String(16), nullable=False)
    status_code = Column(Integer, nullable=True)
    latency = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    response_body = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=TimeHelper.get_utc_now)

    # Relationships
    monitor = relationship("Monitor", back_populates="logs", lazy="noload")

    # Indexes
    __table_args__ = (
        Index("idx_logs_monitor_created", "monitor_id", "created_at"),
        Index("idx_logs_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Log(monitor_id={self.monitor_id}, status={self.status}, created_at={self.created_at})>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary"""
        return {
            "id": self.id,
            "monitor_id": self.monitor_id,
            "status": self.status,
            "status_code": self.status_code,
            "latency": self.latency,
            "error": self.error,
            "response_body": self.response_body,
            "created_at": _isoformat(self.created_at),
        }
