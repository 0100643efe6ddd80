"""
Database Package for Healthcheck Monitor

Provides database connectivity, models, and repository patterns
for data persistence using SQLAlchemy with async support.
"""

from database.manager import DatabaseManager

from database.models import (
    Base,
    Monitor,
    Log,
)

from database.repositories import (
    BaseRepository,
    MonitorRepository,
    LogRepository,
)

__all__ = [
    # Manager
    "DatabaseManager",

    # Models
    "Base",
    "Monitor",
    "Log",

    # Repositories
    "BaseRepository",
    "MonitorRepository",
    "LogRepository",
]
