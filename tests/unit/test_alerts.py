"""Tests for status change notifications."""

from __future__ import annotations

import json
from datetime import datetime, timedelta

import httpx
import pytest

from config.constants import ProbeStatus
from config.settings import NotificationSettings
from exceptions import NotificationError
from monitoring.alerts import AlertManager, format_downtime
from monitoring.monitor import StatusChangeEvent


def make_event(new_status: ProbeStatus = ProbeStatus.UNHEALTHY, downtime=None, name: str = "api") -> StatusChangeEvent:
    old_status = ProbeStatus.HEALTHY if new_status == ProbeStatus.UNHEALTHY else ProbeStatus.UNHEALTHY
    return StatusChangeEvent(
        monitor_id=f"id-{name}",
        monitor_name=name,
        old_status=old_status,
        new_status=new_status,
        downtime=downtime,
        error="expected status 200, got 500" if new_status == ProbeStatus.UNHEALTHY else None,
        timestamp=datetime(2024, 5, 1, 12, 30),
    )


class TestFormatDowntime:
    @pytest.mark.parametrize(
        ("downtime", "expected"),
        [
            (None, "N/A"),
            (timedelta(seconds=45), "45s"),
            (timedelta(minutes=3, seconds=5), "3m 5s"),
            (timedelta(hours=2, minutes=10, seconds=9), "2h 10m"),
            (timedelta(days=1, hours=4, minutes=30), "1d 4h"),
        ],
    )
    def test_two_most_significant_units(self, downtime, expected: str) -> None:
        assert format_downtime(downtime) == expected


class TestAlertManager:
    async def test_not_configured_sends_nothing(self) -> None:
        requests = []
        manager = AlertManager(
            NotificationSettings(sendgrid_api_key=""),
            transport=httpx.MockTransport(lambda r: requests.append(r) or httpx.Response(202)),
        )

        await manager.notify([make_event()])

        assert requests == []
        assert manager.get_stats()["events"] == 1
        assert manager.get_stats()["email_configured"] is False

    async def test_empty_batch_is_ignored(self, notification_settings: NotificationSettings) -> None:
        requests = []
        manager = AlertManager(
            notification_settings,
            transport=httpx.MockTransport(lambda r: requests.append(r) or httpx.Response(202)),
        )

        await manager.notify([])

        assert requests == []

    async def test_batch_sent_as_one_email(self, notification_settings: NotificationSettings) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        manager = AlertManager(notification_settings, transport=httpx.MockTransport(handler))
        events = [
            make_event(),
            make_event(ProbeStatus.HEALTHY, downtime=timedelta(minutes=10), name="web"),
        ]

        await manager.notify(events)

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == notification_settings.api_url
        assert request.headers["authorization"] == "Bearer SG.test-key"

        payload = json.loads(request.content)
        personalization = payload["personalizations"][0]
        assert personalization["to"] == [{"email": "ops@example.com"}]
        assert personalization["subject"] == "Health Check Status Changes - 2 monitor(s) affected"
        assert payload["from"]["email"] == "monitor@example.com"

        body = payload["content"][0]["value"]
        assert "api" in body
        assert "10m 0s" in body
        assert "2024-05-01 12:30:00 UTC" in body
        assert manager.get_stats()["emails_sent"] == 1

    async def test_html_is_escaped(self, notification_settings: NotificationSettings) -> None:
        manager = AlertManager(notification_settings)

        body = manager.render_email([make_event(name="<script>")])

        assert "&lt;script&gt;" in body
        assert "<script>" not in body

    async def test_provider_rejection_raises(self, notification_settings: NotificationSettings) -> None:
        manager = AlertManager(
            notification_settings,
            transport=httpx.MockTransport(lambda r: httpx.Response(401, text="unauthorized")),
        )

        with pytest.raises(NotificationError) as exc_info:
            await manager.notify([make_event()])

        assert exc_info.value.details["status_code"] == 401
        assert exc_info.value.http_status == 502
        assert manager.get_stats()["emails_failed"] == 1

    async def test_unreachable_provider_raises(self, notification_settings: NotificationSettings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        manager = AlertManager(notification_settings, transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationError) as exc_info:
            await manager.notify([make_event()])

        assert exc_info.value.details["provider"] == "sendgrid"

    def test_unknown_timezone_falls_back_to_utc(self) -> None:
        manager = AlertManager(NotificationSettings(timezone="Mars/Olympus"))

        assert manager._format_timestamp(datetime(2024, 5, 1, 8, 0)) == "2024-05-01 08:00:00 UTC"
