"""
============================================================================
HEALTHCHECK MONITOR - MAIN APPLICATION
============================================================================
Integrates every layer of the service:

    Layer 1 — Core & Database
        • Settings (Pydantic)
        • SQLAlchemy async engine + models
        • DatabaseManager + Repositories
        • Logging, Validators, Helpers

    Layer 2 — Monitoring
        • MonitoringEngine   — due-set selection, HTTP probes, transitions
        • StatsService       — uptime, latency percentiles, status page
        • AlertManager       — SendGrid delivery of status changes
        • Scheduler          — minute tick + daily log cleanup

    Layer 3 — HTTP
        • HealthServer       — read-only aiohttp API

Startup Order
-------------
1.  Load settings & configure logging
2.  Initialize DatabaseManager (create tables if needed)
3.  Wire up repositories, MonitoringEngine, StatsService, AlertManager
4.  Wire up Scheduler (needs engine + AlertManager + log repository)
5.  Start HealthServer (aiohttp, non-blocking)
6.  Start Scheduler
7.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
    stop scheduler → stop health server → close DB → exit

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import signal
import sys
from typing import Optional

from config.settings import get_settings
from database.manager import DatabaseManager
from database.repositories import LogRepository, MonitorRepository
from exceptions import HealthcheckException
from monitoring.alerts import AlertManager
from monitoring.monitor import MonitoringEngine
from monitoring.scheduler import Scheduler
from monitoring.server import HealthServer
from monitoring.stats import StatsService
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class HealthcheckApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order. Subsystems receive their collaborators from here; the
    only cached global is the Settings instance.
    """

    def __init__(self):
        self.settings = get_settings()

        # --- subsystems (populated during startup) ---
        self.db_manager: Optional[DatabaseManager] = None
        self.monitor_repository: Optional[MonitorRepository] = None
        self.log_repository: Optional[LogRepository] = None
        self.monitoring_engine: Optional[MonitoringEngine] = None
        self.stats_service: Optional[StatsService] = None
        self.alert_manager: Optional[AlertManager] = None
        self.scheduler: Optional[Scheduler] = None
        self.health_server: Optional[HealthServer] = None

        # --- lifecycle ---
        self._is_running = False
        self._shutdown_event = asyncio.Event()

    def _print_banner(self) -> None:
        logger.info("=" * 74)
        logger.info(f"  {self.settings.app_name} v{self.settings.app_version} ({self.settings.environment.value})")
        logger.info(f"  Database : {self.settings.database.type.value}")
        logger.info(f"  Server   : {'enabled' if self.settings.server.enabled else 'disabled'} (port {self.settings.server.port})")
        logger.info("=" * 74)

    # ==================================================================
    # PHASE 1: DATABASE
    # ==================================================================

    async def _init_database(self) -> bool:
        """Initialize the database manager and verify connectivity."""
        logger.info("── Phase 1: Database ─────────────────────────────")
        try:
            self.db_manager = DatabaseManager(self.settings.database)
            await self.db_manager.initialize()
        except HealthcheckException as e:
            logger.error(f"  ✗ Database init failed: {e.log_format()}")
            return False

        if not await self.db_manager.check_connection():
            logger.error("  ✗ Database connection check failed")
            return False

        self.monitor_repository = MonitorRepository(self.db_manager)
        self.log_repository = LogRepository(self.db_manager)
        logger.info(f"  ✓ Connected to {self.settings.database.type.value}")
        return True

    # ==================================================================
    # PHASE 2: MONITORING
    # ==================================================================

    def _init_monitoring(self) -> None:
        """Wire up MonitoringEngine, StatsService, AlertManager, Scheduler."""
        logger.info("── Phase 2: Monitoring ───────────────────────────")

        self.monitoring_engine = MonitoringEngine(
            monitor_store=self.monitor_repository,
            log_store=self.log_repository,
            settings=self.settings.monitoring,
        )
        self.stats_service = StatsService(
            monitor_store=self.monitor_repository,
            log_store=self.log_repository,
            settings=self.settings.monitoring,
        )
        self.alert_manager = AlertManager(self.settings.notifications)
        self.scheduler = Scheduler(
            engine=self.monitoring_engine,
            notifier=self.alert_manager,
            log_store=self.log_repository,
            settings=self.settings,
        )

        logger.info("  ✓ MonitoringEngine, StatsService, AlertManager, Scheduler created")

    # ==================================================================
    # PHASE 3: HTTP
    # ==================================================================

    def _init_server(self) -> None:
        logger.info("── Phase 3: HTTP Server ──────────────────────────")
        if not self.settings.server.enabled:
            logger.info("  HealthServer disabled (SERVER_ENABLED=False)")
            return

        self.health_server = HealthServer(
            stats_service=self.stats_service,
            log_store=self.log_repository,
            settings=self.settings.server,
            db_check=self.db_manager.check_connection,
            diagnostics=self._diagnostics,
        )
        logger.info("  ✓ HealthServer created")

    def _diagnostics(self) -> dict:
        return {
            "engine": self.monitoring_engine.get_stats() if self.monitoring_engine else None,
            "jobs": self.scheduler.get_job_stats() if self.scheduler else [],
            "alerts": self.alert_manager.get_stats() if self.alert_manager else None,
        }

    # ==================================================================
    # FULL STARTUP SEQUENCE
    # ==================================================================

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if any critical phase fails.
        """
        self._print_banner()

        # Phase 1: DB (critical)
        if not await self._init_database():
            return False

        # Phase 2: Monitoring
        self._init_monitoring()

        # Phase 3: HTTP
        self._init_server()

        # --- START background services ---
        logger.info("── Starting background services ───────────────────")

        if self.health_server:
            await self.health_server.start()

        await self.scheduler.start()

        self._is_running = True

        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)
        return True

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is guarded so a failure in one subsystem doesn't prevent
        the others from cleaning up.
        """
        if not self._is_running and self.db_manager is None:
            return

        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)

        self._is_running = False

        # 1. Stop scheduler (in-flight probes are abandoned)
        if self.scheduler:
            try:
                await self.scheduler.stop()
            except Exception as e:
                logger.error(f"  ✗ Scheduler stop error: {e}")

        # 2. Stop health server
        if self.health_server:
            try:
                await self.health_server.stop()
            except Exception as e:
                logger.error(f"  ✗ HealthServer stop error: {e}")

        # 3. Close database connections
        if self.db_manager:
            try:
                await self.db_manager.close()
            except Exception as e:
                logger.error(f"  ✗ Database close error: {e}")
            self.db_manager = None

        logger.info("  ✓ SHUTDOWN COMPLETE")

    def request_shutdown(self) -> None:
        logger.info("  ⚡ Signal received — initiating graceful shutdown…")
        self._shutdown_event.set()

    # ==================================================================
    # RUN
    # ==================================================================

    async def run(self) -> None:
        """Block until a shutdown is requested."""
        await self._shutdown_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: HealthcheckApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so that the service shuts down
    gracefully even when killed by the OS.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.request_shutdown)
        except (NotImplementedError, OSError):
            # Signal handlers aren't supported on Windows; fall back to KeyboardInterrupt
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main() -> None:
    """
    Async main — creates the app, starts it, and runs until shutdown.
    """
    setup_logging(get_settings().logging)

    app = HealthcheckApplication()
    _install_signal_handlers(app)

    try:
        if not await app.startup():
            logger.error("  ✗ Startup failed — exiting")
            sys.exit(1)
        await app.run()
    finally:
        await app.shutdown()


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
