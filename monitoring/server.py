"""
============================================================================
HEALTHCHECK MONITOR - HTTP SERVER
============================================================================
A lightweight, read-only aiohttp server exposing the service's own health
and the aggregates computed from the transition log.

    GET /health                       → liveness, database and job state
    GET /api/status                   → public status page
    GET /api/monitors/{id}/stats      → per-monitor stats (?minutes=1440)
    GET /api/uptime                   → counts per monitor (?minutes=30|60|180)
    GET /api/logs                     → newest entries (?monitor_id&since&limit)

Every response uses the envelope ``{status: 1|0, message, data}``.
Application errors map to HTTP codes through their ``ErrorKind``.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import time
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from config.constants import Defaults, ErrorKind
from config.settings import ServerSettings, get_settings
from exceptions import HealthcheckException, InvalidFieldError, NotFoundError
from monitoring.stats import StatsService
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import MonitorValidator


logger = get_logger("HealthServer")


def envelope(data: Any = None, message: str = "ok", status: int = 1) -> Dict[str, Any]:
    return {"status": status, "message": message, "data": data}


def json_response(data: Any = None, message: str = "ok", code: int = 200) -> web.Response:
    return web.json_response(envelope(data, message, 1 if code < 400 else 0), status=code)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Convert application errors to enveloped JSON responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except HealthcheckException as e:
        if e.http_status >= 500:
            logger.error(f"[HTTP] {request.method} {request.path} failed: {e.log_format()}")
        return json_response(message=e.user_message(), code=e.http_status)
    except Exception as e:
        logger.exception(f"[HTTP] Unhandled error on {request.method} {request.path}: {e}")
        return json_response(message="Internal server error", code=ErrorKind.INTERNAL.http_status)


# ============================================================================
# HEALTH SERVER
# ============================================================================

class HealthServer:
    """
    aiohttp server in front of the stats service and the log store.

    Attributes
    ----------
    app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _start_time : float          — monotonic seconds when the server started
    _request_count : int         — total requests served
    """

    def __init__(
        self,
        stats_service: StatsService,
        log_store: Any,
        settings: Optional[ServerSettings] = None,
        db_check: Optional[Callable[[], Awaitable[bool]]] = None,
        diagnostics: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        """
        Args:
            stats_service: Aggregation service
            log_store: Log repository used by ``/api/logs``
            settings: Server section of the settings
            db_check: Coroutine telling whether the database is reachable
            diagnostics: Extra state (engine, jobs, alerts) shown on /health
        """
        self.settings = settings or get_settings().server
        self.stats_service = stats_service
        self.log_store = log_store
        self.db_check = db_check
        self.diagnostics = diagnostics

        self.app = web.Application(middlewares=[error_middleware])
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = time.monotonic()
        self._request_count: int = 0

        # Register routes
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/api/status", self._handle_status_page)
        self.app.router.add_get("/api/monitors/{monitor_id}/stats", self._handle_monitor_stats)
        self.app.router.add_get("/api/uptime", self._handle_uptime)
        self.app.router.add_get("/api/logs", self._handle_logs)

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.monotonic()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.settings.host, self.settings.port)
        await self._site.start()
        logger.info(f"✓ HealthServer listening on {self.settings.host}:{self.settings.port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ HealthServer stopped")

    # ------------------------------------------------------------------
    # ROUTE HANDLERS
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health — service health JSON."""
        self._request_count += 1

        database_ok = await self.db_check() if self.db_check else True
        uptime_seconds = time.monotonic() - self._start_time

        health = {
            "status": "healthy" if database_ok else "degraded",
            "database": database_ok,
            "uptime_seconds": round(uptime_seconds, 1),
            "requests_served": self._request_count,
            "timestamp": TimeHelper.get_utc_now().isoformat(),
        }
        if self.diagnostics:
            health.update(self.diagnostics())

        return json_response(health, code=200 if database_ok else 503)

    async def _handle_status_page(self, request: web.Request) -> web.Response:
        """GET /api/status — public status page data."""
        self._request_count += 1
        view = await self.stats_service.get_status_page()
        return json_response(view.to_dict())

    async def _handle_monitor_stats(self, request: web.Request) -> web.Response:
        """GET /api/monitors/{id}/stats — aggregates of one monitor."""
        self._request_count += 1
        monitor_id = request.match_info["monitor_id"]

        minutes = request.query.get("minutes")
        window = MonitorValidator.validate_window(minutes) if minutes is not None else None

        stats = await self.stats_service.get_monitor_stats(monitor_id, window)
        if stats is None:
            raise NotFoundError("monitor not found", resource="monitor", resource_id=monitor_id)

        return json_response(stats.to_dict())

    async def _handle_uptime(self, request: web.Request) -> web.Response:
        """GET /api/uptime — healthy/unhealthy counts per active monitor."""
        self._request_count += 1
        minutes = request.query.get("minutes", "30")
        overview = await self.stats_service.get_uptime_overview(minutes)
        return json_response(overview)

    async def _handle_logs(self, request: web.Request) -> web.Response:
        """GET /api/logs — newest log entries."""
        self._request_count += 1

        since = None
        raw_since = request.query.get("since")
        if raw_since:
            since = TimeHelper.parse_datetime(raw_since)
            if since is None:
                raise InvalidFieldError("since must be an ISO-8601 timestamp", field="since", value=raw_since)

        limit = MonitorValidator.validate_limit(request.query.get("limit", Defaults.LOGS_LIMIT))

        logs = await self.log_store.list_logs(
            monitor_id=request.query.get("monitor_id") or None,
            since=since,
            limit=limit,
        )
        return json_response(logs)
