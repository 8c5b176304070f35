"""
Pytest configuration and shared fixtures for apkwatch tests.

This module provides reusable fixtures and in-memory stand-ins for the
pipeline's collaborators (scraper, fetcher, manifest reader, notifier and
state store), so pipeline tests run without a browser, network or database.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import yaml

from apkwatch.config import Settings
from apkwatch.exceptions import DownloadError, StateError
from apkwatch.logging import SilentLogger, set_global_logger
from apkwatch.results import ManifestVersion
from apkwatch.state import VersionRecord
from apkwatch.state.record import check_writable

SOURCE_ID = "pgsharp_apk_check"


class FixedClock:
    """Clock that starts at a fixed instant and advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 17, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


class FakeScraper:
    def __init__(self, text: str | None) -> None:
        self.text = text
        self.calls: list[tuple[str, str, int]] = []

    def fetch_version_text(self, page_url: str, selector: str, timeout_ms: int) -> str | None:
        self.calls.append((page_url, selector, timeout_ms))
        return self.text


class FakeFetcher:
    """Writes ``content`` to the requested path, or fails after a partial write."""

    def __init__(self, content: bytes = b"APK", fail: bool = False) -> None:
        self.content = content
        self.fail = fail
        self.calls: list[tuple[str, Path, str]] = []

    def download_to_file(self, url: str, dest_dir: Path, filename: str) -> Path:
        self.calls.append((url, Path(dest_dir), filename))
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / filename
        if self.fail:
            target.write_bytes(self.content[:1])
            raise DownloadError(f"download failed for {url}: 500 Server Error")
        target.write_bytes(self.content)
        return target


class FakeManifestReader:
    def __init__(self, name: str | None = None, code: str | None = None) -> None:
        self.result = (
            None if name is None and code is None else ManifestVersion(name, code)
        )
        self.paths: list[Path] = []

    def read_version(self, artifact_path: Path) -> ManifestVersion | None:
        self.paths.append(Path(artifact_path))
        return self.result


class FakeNotifier:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str, tuple]] = []

    def send(self, title: str, body: str, fields=()) -> bool:
        self.sent.append((title, body, tuple(fields)))
        return self.ok


class InMemoryStore:
    """Dict-backed state store that records every call."""

    def __init__(
        self,
        records: Mapping[str, VersionRecord] | None = None,
        *,
        clock: FixedClock | None = None,
        fail_load: bool = False,
        fail_save: bool = False,
    ) -> None:
        self.records: dict[str, VersionRecord] = dict(records or {})
        self.clock = clock or FixedClock()
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saves: list[tuple[str, dict[str, Any]]] = []

    def load(self, source_identifier: str) -> VersionRecord | None:
        if self.fail_load:
            raise StateError("store unavailable")
        return self.records.get(source_identifier)

    def save(self, source_identifier: str, changes: Mapping[str, Any]) -> VersionRecord:
        check_writable(changes)
        self.saves.append((source_identifier, dict(changes)))
        if self.fail_save:
            raise StateError("write failed")
        now = self.clock()
        current = self.records.get(source_identifier) or VersionRecord(
            source_identifier, created_at=now
        )
        record = replace(current.merged(changes), updated_at=now)
        self.records[source_identifier] = record
        return record


@pytest.fixture(autouse=True)
def silent_logger():
    """Keep test output quiet and isolated from other tests' loggers."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every path into tmp_path."""
    return Settings(
        webhook_url="https://discord.test/api/webhooks/1/abc",
        page_url="https://vendor.test/download",
        download_api_url="https://vendor.test/api/apk",
        source_identifier=SOURCE_ID,
        selector="span.version",
        download_dir=tmp_path / "downloads",
        artifact_basename="apk_pgsharp",
        state_file=tmp_path / "state" / "apkwatch.json",
    )


@pytest.fixture
def base_env() -> dict[str, str]:
    """Minimal environment with every always-required variable."""
    return {
        "WEBHOOK_URL": "https://discord.test/api/webhooks/1/abc",
        "VERSION_DISPLAY_PAGE_URL": "https://vendor.test/download",
        "APK_DOWNLOAD_API_URL": "https://vendor.test/api/apk",
    }


@pytest.fixture
def stored_record() -> VersionRecord:
    """Record left behind by a previous run that processed 1.0.6."""
    return VersionRecord(
        SOURCE_ID,
        scraped_version="1.0.6",
        manifest_version_name="1.0.6",
        manifest_version_code="106",
        filename="1.0.6.apk",
        downloaded_at=datetime(2026, 10, 1, 8, 0, 0, tzinfo=UTC),
        updated_at=datetime(2026, 10, 1, 8, 0, 5, tzinfo=UTC),
        created_at=datetime(2026, 9, 1, 8, 0, 0, tzinfo=UTC),
    )


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating YAML files in the temp directory.

    Usage:
        path = create_yaml_file("apkwatch.yaml", {"source": {...}})
    """

    def _create(name: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _create
