"""
============================================================================
HEALTHCHECK MONITOR - ALERT MANAGER
============================================================================
Delivers the status changes of a tick. Every change is logged; when a
SendGrid API key is configured the whole batch is also sent as a single
HTML email through the SendGrid v3 mail API.

Delivery is best effort and at most once per tick: a failed send raises
``NotificationError`` to the caller, which logs it. The log entries of
the tick are already persisted at that point and are not rolled back.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import html
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from config.constants import ProbeStatus
from config.settings import NotificationSettings, get_settings
from exceptions import NotificationError
from monitoring.monitor import StatusChangeEvent
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("AlertManager")

CELL_STYLE = "border: 1px solid #ddd; padding: 12px;"
HEADER_STYLE = "border: 1px solid #ddd; padding: 12px; text-align: left;"


def format_downtime(downtime: Optional[timedelta]) -> str:
    """``"N/A"`` when unknown, else the two most significant units."""
    return TimeHelper.format_duration(downtime)


# ============================================================================
# ALERT MANAGER
# ============================================================================

class AlertManager:
    """
    Notification sink for status change events.

    Parameters
    ----------
    settings : NotificationSettings | None
        Notification section of the settings.
    transport : httpx.AsyncBaseTransport | None
        Custom httpx transport, used by tests.
    """

    PROVIDER = "sendgrid"

    def __init__(
        self,
        settings: Optional[NotificationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().notifications
        self._transport = transport
        self._tz = self._resolve_timezone(self.settings.timezone)

        self._stats = {
            "events": 0,
            "emails_sent": 0,
            "emails_failed": 0,
        }

        logger.info(
            f"AlertManager created — email={'enabled' if self.settings.is_configured else 'disabled'}, "
            f"recipient={self.settings.recipient}"
        )

    @staticmethod
    def _resolve_timezone(name: str):
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"[AlertManager] Unknown timezone {name!r}, using UTC")
            return timezone.utc

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def notify(self, events: Sequence[StatusChangeEvent]) -> None:
        """
        Log every event and email the batch when configured.

        Raises
        ------
        NotificationError
            If the provider cannot be reached or rejects the request.
        """
        events = list(events)
        if not events:
            return

        self._stats["events"] += len(events)
        for event in events:
            emoji = ProbeStatus.get_emoji(event.new_status)
            logger.info(
                f"[ALERT] {emoji} {event.monitor_name}: {event.old_status.value} → {event.new_status.value} "
                f"(downtime: {format_downtime(event.downtime)}, error: {event.error or '-'})"
            )

        if not self.settings.is_configured:
            logger.debug("[AlertManager] Email delivery not configured, skipping send")
            return

        await self._send_email(events)

    def get_stats(self) -> Dict[str, Any]:
        """Return current state of the alert manager for diagnostics."""
        return {
            **self._stats,
            "email_configured": self.settings.is_configured,
        }

    # ------------------------------------------------------------------
    # EMAIL RENDERING
    # ------------------------------------------------------------------

    def _format_timestamp(self, value: datetime) -> str:
        aware = value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
        local = aware.astimezone(self._tz)
        return f"{local.strftime('%Y-%m-%d %H:%M:%S')} {local.tzname()}"

    def _render_row(self, event: StatusChangeEvent) -> str:
        if event.new_status == ProbeStatus.HEALTHY:
            color, text = "#4CAF50", "🟢 Unhealthy → Healthy"
        else:
            color, text = "#f44336", "🔴 Healthy → Unhealthy"

        cells = [
            f'<td style="{CELL_STYLE}">{html.escape(event.monitor_name)}</td>',
            f'<td style="{CELL_STYLE} color: {color}; font-weight: bold;">{text}</td>',
            f'<td style="{CELL_STYLE}">{format_downtime(event.downtime)}</td>',
            f'<td style="{CELL_STYLE}">{html.escape(event.error or "-")}</td>',
            f'<td style="{CELL_STYLE}">{self._format_timestamp(event.timestamp)}</td>',
        ]
        return "<tr>" + "".join(cells) + "</tr>"

    def render_email(self, events: Sequence[StatusChangeEvent]) -> str:
        """HTML body listing every status change in a table."""
        headers = "".join(
            f'<th style="{HEADER_STYLE}">{title}</th>'
            for title in ("Monitor", "Status Change", "Downtime", "Error", "Timestamp")
        )
        rows = "".join(self._render_row(e) for e in events)

        return (
            "<html><body style=\"font-family: Arial, sans-serif;\">"
            "<h2>Health Check Status Changes</h2>"
            "<p>The following monitors experienced status changes:</p>"
            "<table style=\"border-collapse: collapse; width: 100%;\">"
            f"<thead><tr style=\"background-color: #f2f2f2;\">{headers}</tr></thead>"
            f"<tbody>{rows}</tbody>"
            "</table><br>"
            "<p style=\"color: #666; font-size: 12px;\">"
            "This is an automated notification from the Healthcheck Monitoring System."
            "</p></body></html>"
        )

    def build_payload(self, events: Sequence[StatusChangeEvent]) -> Dict[str, Any]:
        """SendGrid v3 mail/send request body."""
        return {
            "personalizations": [
                {
                    "to": [{"email": self.settings.recipient}],
                    "subject": f"Health Check Status Changes - {len(events)} monitor(s) affected",
                }
            ],
            "from": {"email": self.settings.sender_email, "name": self.settings.sender_name},
            "content": [{"type": "text/html", "value": self.render_email(events)}],
        }

    # ------------------------------------------------------------------
    # SENDGRID SEND
    # ------------------------------------------------------------------

    async def _send_email(self, events: List[StatusChangeEvent]) -> None:
        api_key = self.settings.sendgrid_api_key.get_secret_value()

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.settings.api_url,
                    json=self.build_payload(events),
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.HTTPError as e:
            self._stats["emails_failed"] += 1
            raise NotificationError(
                f"Failed to reach SendGrid: {e}",
                provider=self.PROVIDER,
                cause=e,
            )

        if not response.is_success:
            self._stats["emails_failed"] += 1
            logger.error(f"[AlertManager] SendGrid API error: {response.status_code} {response.text[:500]}")
            raise NotificationError(
                f"SendGrid API error: {response.status_code}",
                provider=self.PROVIDER,
                status_code=response.status_code,
            )

        self._stats["emails_sent"] += 1
        logger.info(
            f"[AlertManager] ✓ Status change email sent to {self.settings.recipient} ({len(events)} changes)"
        )
