"""
Tests for apkwatch.notify package.

Tests notifications including:
- Timestamp localization
- Unchanged, updated and failure message content
- Discord webhook payloads (mention then embed)
- Delivery failures reported as False
"""

from __future__ import annotations

from datetime import UTC, datetime

import requests
import requests_mock

from apkwatch.notify import (
    DiscordNotifier,
    NotificationField,
    format_failure,
    format_timestamp,
    format_unchanged,
    format_updated,
)
from apkwatch.results import FailureKind
from apkwatch.state import VersionRecord

from conftest import SOURCE_ID

WEBHOOK = "https://discord.test/api/webhooks/1/abc"


def _fields(notification) -> dict[str, str]:
    return {f.name: f.value for f in notification.fields}


class TestFormatTimestamp:
    """Tests for format_timestamp()."""

    def test_default_zone_and_format(self):
        """Test pt-BR style rendering in America/Sao_Paulo (UTC-3)."""
        value = datetime(2026, 10, 17, 12, 5, 9, tzinfo=UTC)

        assert format_timestamp(value) == "17/10/2026, 09:05:09"

    def test_naive_is_utc(self):
        assert format_timestamp(datetime(2026, 1, 2, 3, 0, 0), "UTC") == "02/01/2026, 03:00:00"

    def test_custom_format(self):
        value = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)

        assert format_timestamp(value, "UTC", "%Y-%m-%d %H:%M") == "2026-10-17 12:00"

    def test_none(self):
        assert format_timestamp(None) == "None"


class TestFormatters:
    """Tests for the message builders."""

    def test_unchanged_message(self, stored_record):
        notification = format_unchanged(stored_record, "1.0.6 (build 106)")

        assert notification.title == "PGSharp Update"
        assert "1.0.6 (build 106)" in notification.body
        assert _fields(notification) == {
            "Last check": "01/10/2026, 05:00:05",
            "Scraped version": "1.0.6",
            "Manifest version": "1.0.6",
        }

    def test_unchanged_without_values_uses_none(self):
        """Test that missing values render as the string None."""
        notification = format_unchanged(VersionRecord(SOURCE_ID), "1.0.6")

        assert set(_fields(notification).values()) == {"None"}

    def test_updated_message(self):
        record = VersionRecord(
            SOURCE_ID,
            scraped_version="2.99.1-beta-display",
            manifest_version_name="2.99.1",
            manifest_version_code="299",
            filename="2.99.1.apk",
            downloaded_at=datetime(2026, 10, 17, 12, 0, tzinfo=UTC),
        )

        notification = format_updated(record, title="Custom", timezone="UTC")

        assert notification.title == "Custom"
        assert "2.99.1.apk" in notification.body
        assert "17/10/2026, 12:00:00" in notification.body
        assert _fields(notification) == {
            "Scraped version": "2.99.1-beta-display",
            "Manifest version": "2.99.1",
            "Manifest version code": "299",
            "Downloaded file": "2.99.1.apk",
        }

    def test_updated_with_degraded_manifest(self):
        record = VersionRecord(SOURCE_ID, scraped_version="1.0.7", filename="1.0.7.apk")

        fields = _fields(format_updated(record))

        assert fields["Manifest version"] == "None"
        assert fields["Manifest version code"] == "None"

    def test_failure_message(self):
        notification = format_failure(FailureKind.DOWNLOAD, "HTTP 500")

        assert "download" in notification.body
        assert _fields(notification)["Detail"] == "HTTP 500"


class TestDiscordNotifier:
    """Tests for DiscordNotifier against a mocked webhook."""

    def test_sends_mention_then_embed(self):
        notifier = DiscordNotifier(WEBHOOK, mention_user_id="1234")
        fields = [NotificationField("Scraped version", "1.0.7", inline=True)]

        with requests_mock.Mocker() as m:
            m.post(WEBHOOK, status_code=204)
            ok = notifier.send("PGSharp Update", "New APK version available", fields)

        assert ok is True
        assert m.call_count == 2
        assert m.request_history[0].json() == {"content": "<@1234>"}
        embed = m.request_history[1].json()["embeds"][0]
        assert embed["title"] == "PGSharp Update"
        assert embed["description"] == "New APK version available"
        assert embed["color"] == 0x00FF00
        assert embed["fields"] == [
            {"name": "Scraped version", "value": "1.0.7", "inline": True}
        ]

    def test_no_mention_without_user(self):
        notifier = DiscordNotifier(WEBHOOK)

        with requests_mock.Mocker() as m:
            m.post(WEBHOOK, status_code=204)
            assert notifier.send("t", "b") is True

        assert m.call_count == 1
        assert "embeds" in m.last_request.json()

    def test_http_error_returns_false(self):
        """Test that a rejected webhook is reported, not raised."""
        notifier = DiscordNotifier(WEBHOOK, mention_user_id="1234")

        with requests_mock.Mocker() as m:
            m.post(WEBHOOK, status_code=400, json={"message": "Invalid Form Body"})
            assert notifier.send("t", "b") is False

    def test_transport_error_returns_false(self):
        notifier = DiscordNotifier(WEBHOOK)

        with requests_mock.Mocker() as m:
            m.post(WEBHOOK, exc=requests.exceptions.ConnectTimeout)
            assert notifier.send("t", "b") is False

    def test_long_values_are_clipped(self):
        notifier = DiscordNotifier(WEBHOOK)

        embed = notifier.build_embed(
            "t", "x" * 5000, [NotificationField("Detail", "y" * 2000)]
        )

        assert len(embed["description"]) == 4096
        assert len(embed["fields"][0]["value"]) == 1024
        assert embed["fields"][0]["value"].endswith("...")
