"""
Tests for apkwatch.core module.

Tests that run_check() wires the configured collaborators and state store
into the pipeline. External collaborators are swapped for fakes.
"""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import patch

import pytest

from apkwatch.core import load_record, run_check
from apkwatch.exceptions import ConfigError
from apkwatch.results import RunStatus

from conftest import (
    SOURCE_ID,
    FakeFetcher,
    FakeManifestReader,
    FakeNotifier,
    FakeScraper,
)


@pytest.fixture
def fakes():
    scraper = FakeScraper("1.0.7")
    fetcher = FakeFetcher()
    reader = FakeManifestReader("1.0.7", "107")
    notifier = FakeNotifier()
    with (
        patch("apkwatch.core.get_scraper", return_value=scraper) as get_scraper,
        patch("apkwatch.core.HttpArtifactFetcher", return_value=fetcher),
        patch("apkwatch.core.ApkManifestReader", return_value=reader),
        patch("apkwatch.core.DiscordNotifier", return_value=notifier) as discord,
    ):
        yield {
            "scraper": scraper,
            "fetcher": fetcher,
            "notifier": notifier,
            "get_scraper": get_scraper,
            "discord": discord,
        }


class TestRunCheck:
    """Tests for run_check()."""

    def test_first_run_writes_json_state(self, settings, fakes):
        outcome = run_check(settings)

        assert outcome.status is RunStatus.UPDATED
        assert settings.state_file.exists()
        record = load_record(settings)
        assert record.source_identifier == SOURCE_ID
        assert record.filename == "1.0.7.apk"

    def test_second_run_is_unchanged(self, settings, fakes):
        run_check(settings)

        outcome = run_check(settings)

        assert outcome.status is RunStatus.UNCHANGED
        assert len(fakes["notifier"].sent) == 2

    def test_uses_configured_scraper_and_notifier(self, settings, fakes):
        configured = replace(settings, scraper="static", mention_user_id="42")

        run_check(configured)

        assert fakes["get_scraper"].call_args.args == ("static",)
        assert fakes["discord"].call_args.args == (settings.webhook_url,)
        assert fakes["discord"].call_args.kwargs["mention_user_id"] == "42"
        assert fakes["scraper"].calls == [
            (settings.page_url, settings.selector, settings.timeout_ms)
        ]

    def test_unknown_backend_raises(self, settings, fakes):
        with pytest.raises(ConfigError):
            run_check(replace(settings, state_backend="redis"))
