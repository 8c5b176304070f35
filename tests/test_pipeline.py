"""
Tests for apkwatch.pipeline module.

Drives ReconciliationPipeline with in-memory collaborators from conftest:
- Cold start and update paths
- Unchanged path (no persistence write)
- Abort paths (scrape and download failures)
- Degraded steps (manifest, save, notify, cleanup)
- Repeated runs keep a single record
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

from apkwatch.pipeline import ReconciliationPipeline
from apkwatch.results import FailureKind, PipelineState, RunStatus
from apkwatch.state import JsonStateStore, VersionRecord

from conftest import (
    SOURCE_ID,
    FakeFetcher,
    FakeManifestReader,
    FakeNotifier,
    FakeScraper,
    FixedClock,
    InMemoryStore,
)

S = PipelineState

UPDATED_STATES = (
    S.IDLE,
    S.SCRAPING,
    S.COMPARING,
    S.ACQUIRING,
    S.PERSISTED,
    S.NOTIFIED,
    S.DONE,
)
UNCHANGED_STATES = (S.IDLE, S.SCRAPING, S.COMPARING, S.NO_CHANGE_NOTIFY, S.NOTIFIED, S.DONE)


def _pipeline(
    settings,
    *,
    store=None,
    scraped="1.0.6",
    manifest=("1.0.6", "106"),
    fetcher=None,
    notifier=None,
):
    return ReconciliationPipeline(
        settings,
        store=store if store is not None else InMemoryStore(),
        scraper=FakeScraper(scraped),
        fetcher=fetcher or FakeFetcher(),
        manifest_reader=FakeManifestReader(*manifest),
        notifier=notifier or FakeNotifier(),
        clock=FixedClock(),
    )


def _artifacts(settings) -> list[Path]:
    if not settings.download_dir.exists():
        return []
    return sorted(settings.download_dir.iterdir())


class TestUpdatePath:
    """Tests for runs that find a new version."""

    def test_cold_start_processes_version(self, settings):
        store = InMemoryStore()
        notifier = FakeNotifier()

        outcome = _pipeline(settings, store=store, notifier=notifier).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.states == UPDATED_STATES
        assert outcome.final_state is S.DONE
        assert outcome.previous is None
        assert outcome.record.filename == "1.0.6.apk"
        assert len(store.saves) == 1
        assert len(notifier.sent) == 1
        assert outcome.notified is True

    def test_new_version_replaces_record(self, settings):
        """Test the 1.0.5 -> 1.0.6 update scenario end to end."""
        previous = VersionRecord(
            SOURCE_ID,
            scraped_version="1.0.5",
            manifest_version_name="1.0.5",
            manifest_version_code="105",
            filename="1.0.5.apk",
        )
        store = InMemoryStore({SOURCE_ID: previous})
        notifier = FakeNotifier()

        outcome = _pipeline(
            settings, store=store, scraped="1.0.6", manifest=("1.0.6", "106"),
            notifier=notifier,
        ).run()

        record = store.records[SOURCE_ID]
        assert outcome.status is RunStatus.UPDATED
        assert (
            record.scraped_version,
            record.manifest_version_name,
            record.manifest_version_code,
            record.filename,
        ) == ("1.0.6", "1.0.6", "106", "1.0.6.apk")
        assert outcome.previous == previous
        title, body, fields = notifier.sent[0]
        assert "1.0.6.apk" in body
        assert {f.name: f.value for f in fields}["Manifest version code"] == "106"
        assert _artifacts(settings) == []

    def test_saved_changes_are_complete(self, settings):
        store = InMemoryStore()

        _pipeline(settings, store=store, scraped="1.0.7", manifest=("1.0.7", "107")).run()

        _, changes = store.saves[0]
        assert set(changes) == {
            "scraped_version",
            "manifest_version_name",
            "manifest_version_code",
            "filename",
            "downloaded_at",
        }

    def test_manifest_name_wins_for_filename(self, settings):
        """Test that a display version is reconciled to the manifest name."""
        store = InMemoryStore()

        outcome = _pipeline(
            settings,
            store=store,
            scraped="2.99.1-beta-display",
            manifest=("2.99.1", "299"),
        ).run()

        assert outcome.record.filename == "2.99.1.apk"
        assert outcome.record.scraped_version == "2.99.1-beta-display"
        assert outcome.record.manifest_version_name == "2.99.1"

    def test_keep_artifact(self, settings):
        keep = replace(settings, keep_artifact=True)

        outcome = _pipeline(keep).run()

        assert outcome.artifact.file_path.exists()
        assert _artifacts(keep) == [outcome.artifact.file_path]

    def test_manifest_failure_saves_none_fields(self, settings):
        store = InMemoryStore(
            {SOURCE_ID: VersionRecord(SOURCE_ID, manifest_version_name="1.0.5")}
        )

        outcome = _pipeline(settings, store=store, scraped="1.0.6", manifest=(None, None)).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.record.manifest_version_name is None
        assert outcome.record.manifest_version_code is None
        assert outcome.record.filename == "1.0.6.apk"
        assert FailureKind.MANIFEST_PARSE in outcome.degraded

    def test_save_failure_still_notifies(self, settings):
        """Test that a persistence error is logged and the run continues."""
        store = InMemoryStore(fail_save=True)
        notifier = FakeNotifier()

        outcome = _pipeline(settings, store=store, notifier=notifier).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.states == UPDATED_STATES
        assert outcome.record is None
        assert outcome.degraded == (FailureKind.PERSISTENCE,)
        assert len(notifier.sent) == 1
        assert "1.0.6.apk" in notifier.sent[0][1]

    def test_notification_failure_is_degraded(self, settings):
        outcome = _pipeline(settings, notifier=FakeNotifier(ok=False)).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.notified is False
        assert outcome.degraded == (FailureKind.NOTIFICATION,)

    def test_cleanup_failure_is_degraded(self, settings):
        real_unlink = Path.unlink

        def failing_unlink(self, missing_ok=False):
            if self.name == "1.0.6.apk":
                raise PermissionError("in use")
            return real_unlink(self, missing_ok=missing_ok)

        with patch.object(Path, "unlink", failing_unlink):
            outcome = _pipeline(settings).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.final_state is S.DONE
        assert outcome.degraded == (FailureKind.CLEANUP,)

    def test_load_failure_is_cold_start(self, settings):
        store = InMemoryStore(fail_load=True)

        outcome = _pipeline(settings, store=store).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.previous is None

    def test_non_object_state_file_is_cold_start(self, settings):
        """Test that a state file holding a JSON list does not stop the run."""
        settings.state_file.parent.mkdir(parents=True)
        settings.state_file.write_text("[]", encoding="utf-8")
        store = JsonStateStore(settings.state_file, clock=FixedClock())
        notifier = FakeNotifier()

        outcome = _pipeline(settings, store=store, notifier=notifier).run()

        assert outcome.status is RunStatus.UPDATED
        assert outcome.previous is None
        assert outcome.degraded == ()
        assert len(notifier.sent) == 1
        assert store.load(SOURCE_ID) == outcome.record
        assert _artifacts(settings) == []

    def test_repeated_runs_keep_one_record(self, settings):
        """Test that sequential changed runs leave one record with the last values."""
        store = JsonStateStore(settings.state_file, clock=FixedClock())

        for n in range(7, 11):
            version = f"1.0.{n}"
            outcome = _pipeline(
                settings, store=store, scraped=version, manifest=(version, str(100 + n))
            ).run()
            assert outcome.status is RunStatus.UPDATED

        record = store.load(SOURCE_ID)
        assert record.scraped_version == "1.0.10"
        assert record.filename == "1.0.10.apk"
        assert record.manifest_version_code == "110"


class TestUnchangedPath:
    """Tests for runs that find the stored version."""

    def test_substring_match_is_unchanged(self, settings, stored_record):
        """Test the '1.0.6 (build 106)' unchanged scenario."""
        store = InMemoryStore({SOURCE_ID: stored_record})
        notifier = FakeNotifier()
        fetcher = FakeFetcher()

        outcome = _pipeline(
            settings,
            store=store,
            scraped="1.0.6 (build 106)",
            fetcher=fetcher,
            notifier=notifier,
        ).run()

        assert outcome.status is RunStatus.UNCHANGED
        assert outcome.states == UNCHANGED_STATES
        assert store.saves == []
        assert fetcher.calls == []
        assert len(notifier.sent) == 1
        title, body, fields = notifier.sent[0]
        assert "1.0.6 (build 106)" in body
        assert {f.name for f in fields} == {
            "Last check",
            "Scraped version",
            "Manifest version",
        }

    def test_unchanged_never_touches_updated_at(self, settings, stored_record):
        store = InMemoryStore({SOURCE_ID: stored_record})

        _pipeline(settings, store=store, scraped="1.0.6").run()

        assert store.records[SOURCE_ID] == stored_record


class TestAbortPaths:
    """Tests for runs that stop early."""

    @pytest.mark.parametrize("scraped", [None, ""])
    def test_scrape_failure_aborts(self, settings, stored_record, scraped):
        store = InMemoryStore({SOURCE_ID: stored_record})
        notifier = FakeNotifier()
        fetcher = FakeFetcher()

        outcome = _pipeline(
            settings, store=store, scraped=scraped, fetcher=fetcher, notifier=notifier
        ).run()

        assert outcome.status is RunStatus.ABORTED
        assert outcome.states == (S.IDLE, S.SCRAPING, S.ABORTED)
        assert outcome.failure is FailureKind.SCRAPE
        assert store.saves == []
        assert fetcher.calls == []
        assert notifier.sent == []

    def test_download_failure_aborts_without_leftovers(self, settings, stored_record):
        store = InMemoryStore({SOURCE_ID: stored_record})
        notifier = FakeNotifier()

        outcome = _pipeline(
            settings,
            store=store,
            scraped="1.0.7",
            fetcher=FakeFetcher(fail=True),
            notifier=notifier,
        ).run()

        assert outcome.status is RunStatus.ABORTED
        assert outcome.states == (S.IDLE, S.SCRAPING, S.COMPARING, S.ACQUIRING, S.ABORTED)
        assert outcome.failure is FailureKind.DOWNLOAD
        assert outcome.scraped_version == "1.0.7"
        assert store.saves == []
        assert store.records[SOURCE_ID] == stored_record
        assert notifier.sent == []
        assert not list(settings.download_dir.glob("temp_*"))

    def test_failure_notification_when_enabled(self, settings):
        notify_settings = replace(settings, notify_on_failure=True)
        notifier = FakeNotifier()

        outcome = _pipeline(
            notify_settings, fetcher=FakeFetcher(fail=True), notifier=notifier
        ).run()

        assert outcome.status is RunStatus.ABORTED
        assert outcome.notified is True
        title, body, fields = notifier.sent[0]
        assert "download" in body
