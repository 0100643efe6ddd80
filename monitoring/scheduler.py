"""
============================================================================
HEALTHCHECK MONITOR - MINUTE SCHEDULER
============================================================================
An asyncio-native scheduler that wakes at every UTC minute boundary and
launches the jobs registered for that minute. All jobs run as coroutines
in the same event loop.

Registered Jobs
---------------
1.  healthcheck_tick        (every minute)
    Runs ``MonitoringEngine.run_tick()`` and hands the status changes to
    the notification sink.

2.  log_cleanup             (daily, at RETENTION_RUN_HOUR_UTC:RETENTION_RUN_MINUTE_UTC)
    Deletes log entries older than RETENTION_DAYS.

Jobs of one minute run as independent tasks; a slow tick does not delay
the next one, so ticks may overlap.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from config.settings import Settings, get_settings
from exceptions import HealthcheckException
from monitoring.monitor import MonitoringEngine
from monitoring.ports import LogStore, NotificationSink
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Scheduler")


def every_minute(now: datetime) -> bool:
    return True


def daily_at(hour: int, minute: int) -> Callable[[datetime], bool]:
    """Predicate matching one minute of every UTC day."""
    def matches(now: datetime) -> bool:
        return now.hour == hour and now.minute == minute
    return matches


# ============================================================================
# JOB DEFINITION
# ============================================================================

@dataclass
class ScheduledJob:
    """
    Describes a single minute-aligned background job.

    Attributes
    ----------
    name : str
        Human-readable identifier (used in logs).
    should_run : Callable
        Receives the minute being dispatched and tells whether the job
        runs at that minute.
    coroutine_factory : Callable
        An async callable taking the minute being dispatched.
    enabled : bool
        Can be toggled at runtime.
    last_run : Optional[datetime]
        Minute of the last successful execution.
    run_count : int
        Total number of successful executions since startup.
    error_count : int
        Total number of failed executions since startup.
    """
    name: str
    should_run: Callable[[datetime], bool]
    coroutine_factory: Callable[[datetime], Awaitable[Any]]
    enabled: bool = True
    last_run: Optional[datetime] = None
    last_duration: Optional[float] = None
    run_count: int = 0
    error_count: int = 0


# ============================================================================
# SCHEDULER
# ============================================================================

class Scheduler:
    """
    Minute-boundary job scheduler.

    Usage
    -----
        scheduler = Scheduler(engine, alert_manager, log_repository)
        await scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: MonitoringEngine,
        notifier: Optional[NotificationSink],
        log_store: LogStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = TimeHelper.get_utc_now,
    ):
        self.settings = settings or get_settings()
        self.engine = engine
        self.notifier = notifier
        self.log_store = log_store
        self.clock = clock

        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._job_tasks: Set[asyncio.Task] = set()
        self._last_minute: Optional[datetime] = None
        self._sleep = asyncio.sleep

        # Register built-in jobs
        self._register_builtin_jobs()

        logger.info(f"Scheduler created with {len(self._jobs)} built-in jobs")

    # ------------------------------------------------------------------
    # JOB REGISTRATION
    # ------------------------------------------------------------------

    def register_job(
        self,
        name: str,
        should_run: Callable[[datetime], bool],
        coroutine_factory: Callable[[datetime], Awaitable[Any]],
        enabled: bool = True,
    ) -> None:
        """
        Register a job.

        Parameters
        ----------
        name : str
            Unique job name.
        should_run : Callable
            Minute predicate, see ``every_minute`` and ``daily_at``.
        coroutine_factory : Callable
            An async callable receiving the dispatched minute.
        enabled : bool
            Whether the job starts enabled.
        """
        if name in self._jobs:
            logger.warning(f"[Scheduler] Job '{name}' already registered, overwriting")

        self._jobs[name] = ScheduledJob(
            name=name,
            should_run=should_run,
            coroutine_factory=coroutine_factory,
            enabled=enabled,
        )
        logger.debug(f"[Scheduler] Registered job '{name}'")

    def disable_job(self, name: str) -> bool:
        """Disable a job by name. Returns True if found."""
        if name in self._jobs:
            self._jobs[name].enabled = False
            return True
        return False

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self._running:
            logger.warning("Scheduler is already running")
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._main_loop())
        logger.info("✓ Scheduler started")

    async def stop(self) -> None:
        """
        Stop the scheduler loop. Jobs already launched are cancelled;
        in-flight probes are abandoned.
        """
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        for task in list(self._job_tasks):
            task.cancel()
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)
        logger.info("✓ Scheduler stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _main_loop(self) -> None:
        """
        Sleep until the minute after the last dispatched one, then
        dispatch the jobs of that minute. Each minute is dispatched at
        most once, even when the sleep ends slightly early.
        """
        logger.info("[Scheduler] Main loop started")
        while self._running:
            now = self.clock()
            if self._last_minute is None:
                target = TimeHelper.floor_to_minute(now) + timedelta(minutes=1)
            else:
                target = self._last_minute + timedelta(minutes=1)

            try:
                await self._sleep(max(0.0, (target - now).total_seconds()))
            except asyncio.CancelledError:
                break

            # An early wake-up still belongs to the target minute
            minute = max(TimeHelper.floor_to_minute(self.clock()), target)
            if self._last_minute is not None and minute <= self._last_minute:
                continue

            self._last_minute = minute
            self.dispatch(minute)

        logger.info("[Scheduler] Main loop exited")

    def dispatch(self, minute: datetime) -> List[asyncio.Task]:
        """
        Launch every enabled job whose predicate matches *minute*.

        Returns
        -------
        list of asyncio.Task
            The launched job tasks.
        """
        launched = []
        for job in self._jobs.values():
            if job.enabled and job.should_run(minute):
                task = asyncio.create_task(self._execute_job(job, minute))
                self._job_tasks.add(task)
                task.add_done_callback(self._job_tasks.discard)
                launched.append(task)
        return launched

    # ------------------------------------------------------------------
    # JOB EXECUTION
    # ------------------------------------------------------------------

    async def _execute_job(self, job: ScheduledJob, minute: datetime) -> None:
        """
        Run a single job, capture timing and errors.
        """
        start_time = time.perf_counter()
        try:
            logger.debug(f"[Scheduler] Running job '{job.name}'…")
            await job.coroutine_factory(minute)
            elapsed = time.perf_counter() - start_time

            job.run_count += 1
            job.last_run = minute
            job.last_duration = round(elapsed, 3)
            logger.debug(f"[Scheduler] Job '{job.name}' completed in {elapsed:.2f}s (run #{job.run_count})")

        except Exception as e:
            job.error_count += 1
            elapsed = time.perf_counter() - start_time
            logger.error(f"[Scheduler] Job '{job.name}' FAILED after {elapsed:.2f}s: {e}")

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_job_stats(self) -> List[Dict[str, Any]]:
        """Return status of all registered jobs."""
        return [
            {
                "name": job.name,
                "enabled": job.enabled,
                "run_count": job.run_count,
                "error_count": job.error_count,
                "last_run": job.last_run.isoformat() if job.last_run else None,
                "last_duration": job.last_duration,
            }
            for job in self._jobs.values()
        ]

    # ==================================================================
    # BUILT-IN JOBS
    # ==================================================================

    def _register_builtin_jobs(self) -> None:
        """Register all built-in jobs."""
        retention = self.settings.retention

        self.register_job(
            "healthcheck_tick",
            should_run=every_minute,
            coroutine_factory=self._job_healthcheck_tick,
        )

        self.register_job(
            "log_cleanup",
            should_run=daily_at(retention.run_hour_utc, retention.run_minute_utc),
            coroutine_factory=self._job_log_cleanup,
            enabled=retention.enabled,
        )

    # ------------------------------------------------------------------
    # JOB: Healthcheck Tick
    # ------------------------------------------------------------------

    async def _job_healthcheck_tick(self, minute: datetime) -> None:
        """
        Run one engine tick and forward its status changes.

        A failed notification is logged; the tick itself still succeeded.
        """
        events = await self.engine.run_tick(minute)
        if not events or self.notifier is None:
            return

        try:
            await self.notifier.notify(events)
        except HealthcheckException as e:
            logger.error(f"[Tick] Failed to send status change notification: {e.log_format()}")

    # ------------------------------------------------------------------
    # JOB: Log Cleanup
    # ------------------------------------------------------------------

    async def _job_log_cleanup(self, minute: datetime) -> None:
        """
        Delete log entries beyond the retention window.
        """
        retention_days = self.settings.retention.days
        cutoff = minute - timedelta(days=retention_days)
        deleted = await self.log_store.delete_logs_before(cutoff)
        logger.info(f"[LogCleanup] Deleted {deleted} log entries older than {retention_days} days")
