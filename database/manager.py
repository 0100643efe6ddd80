"""
============================================================================
HEALTHCHECK MONITOR - DATABASE MANAGER
============================================================================
Database management with connection pooling, session management and
transaction handling.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool

from config.settings import DatabaseSettings, get_settings
from database.models import Base
from exceptions import DatabaseConnectionError, DatabaseQueryError
from utils.logger import get_logger


logger = get_logger(__name__)


# ============================================================================
# DATABASE MANAGER CLASS
# ============================================================================

class DatabaseManager:
    """
    Database manager handling engine creation, sessions and schema.

    Every failure raised by SQLAlchemy inside ``session()`` surfaces as
    ``DatabaseQueryError``.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None, url: Optional[str] = None):
        """
        Initialize database manager.

        Args:
            settings: Database section of the settings
            url: Explicit SQLAlchemy URL, wins over ``settings``
        """
        self.settings = settings or get_settings().database
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._is_initialized = False
        self._lock = asyncio.Lock()

        self.database_url = url or self.settings.url

        logger.info(f"DatabaseManager initialized with URL: {self._mask_password(self.database_url)}")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @staticmethod
    def _mask_password(url: str) -> str:
        """
        Mask password in database URL for logging.

        Args:
            url: Database URL

        Returns:
            Masked URL
        """
        if "://" not in url:
            return url

        protocol, rest = url.split("://", 1)
        if "@" not in rest:
            return url

        credentials, host_part = rest.split("@", 1)
        if ":" in credentials:
            user, _ = credentials.split(":", 1)
            return f"{protocol}://{user}:****@{host_part}"

        return url

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        """
        Get engine configuration kwargs based on settings.

        Returns:
            Dictionary of engine configuration options
        """
        kwargs: Dict[str, Any] = {"echo": self.settings.echo}

        # Use NullPool for SQLite, the default queue pool for others
        if self.is_sqlite:
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_size"] = self.settings.pool_size
            kwargs["max_overflow"] = self.settings.max_overflow
            kwargs["pool_timeout"] = self.settings.pool_timeout
            kwargs["pool_recycle"] = self.settings.pool_recycle
            kwargs["pool_pre_ping"] = True

        return kwargs

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.
        Creates all tables if they don't exist.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        async with self._lock:
            if self._is_initialized:
                logger.warning("Database already initialized")
                return

            try:
                self.engine = create_async_engine(self.database_url, **self._get_engine_kwargs())

                self._register_event_listeners()

                self.session_factory = async_sessionmaker(
                    self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False
                )

                await self.create_tables()

                self._is_initialized = True
                logger.info("Database initialized successfully")

            except SQLAlchemyError as e:
                logger.error(f"Failed to initialize database: {e}")
                raise DatabaseConnectionError(
                    message=f"Failed to initialize database: {e}",
                    url=self._mask_password(self.database_url),
                    cause=e
                )

    def _register_event_listeners(self) -> None:
        """Register SQLAlchemy event listeners for connection management."""

        is_sqlite = self.is_sqlite

        @event.listens_for(self.engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            """Handle new database connections."""
            if is_sqlite:
                # Log rows are removed with their monitor
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
            logger.debug("New database connection established")

    async def create_tables(self) -> None:
        """
        Create all database tables.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope for database operations.

        The session is committed on success and rolled back on failure.

        Yields:
            AsyncSession instance

        Raises:
            DatabaseQueryError: If a statement or the commit fails

        Example:
            async with db_manager.session() as session:
                monitor = await session.get(Monitor, monitor_id)
        """
        if not self._is_initialized:
            await self.initialize()

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Session error: {e}")
            raise DatabaseQueryError(message=str(e), cause=e)
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def check_connection(self) -> bool:
        """
        Check if database connection is alive.

        Returns:
            True if connection is alive, False otherwise
        """
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (DatabaseQueryError, DatabaseConnectionError) as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def close(self) -> None:
        """
        Close database connections and cleanup resources.
        """
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            logger.info("Database connections closed")
        self._is_initialized = False
