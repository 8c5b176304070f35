# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Reconciliation pipeline for apkwatch.

One run is a single linear pass through these states:

    IDLE -> SCRAPING -> COMPARING -> NO_CHANGE_NOTIFY -> NOTIFIED -> DONE
                                  -> ACQUIRING -> PERSISTED -> NOTIFIED -> DONE
    SCRAPING  -> ABORTED   (no version text on the page)
    ACQUIRING -> ABORTED   (download failed)

Rules the pipeline enforces:

- The stored record is only written on the ACQUIRING path, after the
  artifact is on disk and reconciled with its manifest. An unchanged run
  never writes, so ``updated_at`` keeps pointing at the last real update.
- An aborted run leaves the stored record untouched.
- A failure to read the stored record is treated as a cold start.
- Failures after the download (manifest, rename, save, notify, cleanup) are
  logged and collected in RunOutcome.degraded; the run still completes.

All collaborators are injected, so tests drive the pipeline with fakes and
no network, browser or database.

Example:
    Wiring by hand:
        ```python
        from apkwatch.pipeline import ReconciliationPipeline

        pipeline = ReconciliationPipeline(
            settings,
            store=store,
            scraper=scraper,
            fetcher=fetcher,
            manifest_reader=reader,
            notifier=notifier,
        )
        outcome = pipeline.run()
        print(outcome.status, [s.value for s in outcome.states])
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from apkwatch.acquisition import ArtifactFetcher, ManifestReader, acquire_artifact
from apkwatch.discovery import VersionScraper
from apkwatch.exceptions import DownloadError, StateError
from apkwatch.logging import Logger, get_global_logger
from apkwatch.notify import Notification, Notifier
from apkwatch.notify.formatter import format_failure, format_unchanged, format_updated
from apkwatch.results import (
    AcquiredArtifact,
    FailureKind,
    PipelineState,
    RunOutcome,
    RunStatus,
)
from apkwatch.state import StateStore, VersionRecord
from apkwatch.versioning import Decision, compare_versions, describe_baseline

if TYPE_CHECKING:
    from apkwatch.config import Settings

TOTAL_STEPS = 4


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class _RunTrace:
    """Mutable bookkeeping for one run."""

    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    degraded: list[FailureKind] = field(default_factory=list)

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)


class ReconciliationPipeline:
    """Scrape, compare, acquire, persist and notify for one artifact.

    Args:
        settings: Resolved settings.
        store: Version record persistence.
        scraper: Reads the version text from the page.
        fetcher: Streams the artifact to disk.
        manifest_reader: Reads the artifact's manifest version.
        notifier: Delivers notifications.
        logger: Optional logger. Defaults to the global logger.
        clock: Returns the current UTC time. Injected by tests.

    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: StateStore,
        scraper: VersionScraper,
        fetcher: ArtifactFetcher,
        manifest_reader: ManifestReader,
        notifier: Notifier,
        logger: Logger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.store = store
        self.scraper = scraper
        self.fetcher = fetcher
        self.manifest_reader = manifest_reader
        self.notifier = notifier
        self._logger = logger
        self.clock = clock

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    # -------------------------------
    # Entry point
    # -------------------------------

    def run(self) -> RunOutcome:
        """Execute one pass of the pipeline.

        Returns:
            The run outcome. Terminal failures are reported as an ABORTED
            outcome rather than raised.

        Raises:
            ValueError: Only on programming errors (unknown record fields).
        """
        settings = self.settings
        logger = self.logger
        trace = _RunTrace()
        source_id = settings.source_identifier

        logger.step(1, TOTAL_STEPS, "Loading stored version...")
        previous = self._load_previous(source_id)

        trace.enter(PipelineState.SCRAPING)
        logger.step(2, TOTAL_STEPS, "Reading version from page...")
        scraped = self.scraper.fetch_version_text(
            settings.page_url, settings.selector, settings.timeout_ms
        )
        if not scraped:
            return self._abort(
                trace,
                FailureKind.SCRAPE,
                f"No version text found at {settings.page_url}",
                previous=previous,
            )
        logger.verbose("PIPELINE", f"Version on page: {scraped}")

        trace.enter(PipelineState.COMPARING)
        decision = compare_versions(previous, scraped)
        logger.verbose(
            "PIPELINE",
            f"Stored version: {describe_baseline(previous)} -> {decision.value}",
        )

        if decision is Decision.UNCHANGED:
            return self._report_unchanged(trace, previous, scraped)
        return self._process_update(trace, previous, scraped)

    # -------------------------------
    # Branches
    # -------------------------------

    def _report_unchanged(
        self, trace: _RunTrace, previous: VersionRecord | None, scraped: str
    ) -> RunOutcome:
        settings = self.settings
        trace.enter(PipelineState.NO_CHANGE_NOTIFY)
        self.logger.step(3, TOTAL_STEPS, "No new version; skipping download")
        self.logger.step(4, TOTAL_STEPS, "Sending notification...")

        notified = self._notify(
            trace,
            format_unchanged(
                previous,
                scraped,
                title=settings.notify_title,
                timezone=settings.timezone,
                fmt=settings.timestamp_format,
            ),
        )
        trace.enter(PipelineState.NOTIFIED)
        trace.enter(PipelineState.DONE)
        return RunOutcome(
            status=RunStatus.UNCHANGED,
            source_identifier=settings.source_identifier,
            states=tuple(trace.states),
            scraped_version=scraped,
            previous=previous,
            degraded=tuple(trace.degraded),
            notified=notified,
        )

    def _process_update(
        self, trace: _RunTrace, previous: VersionRecord | None, scraped: str
    ) -> RunOutcome:
        settings = self.settings
        logger = self.logger

        trace.enter(PipelineState.ACQUIRING)
        logger.step(3, TOTAL_STEPS, "Downloading new version...")
        try:
            artifact = acquire_artifact(
                settings.download_api_url,
                scraped,
                settings.download_dir,
                fetcher=self.fetcher,
                manifest_reader=self.manifest_reader,
                basename=settings.artifact_basename,
                extension=settings.artifact_extension,
                clock=self.clock,
                logger=logger,
            )
        except DownloadError as err:
            return self._abort(
                trace, FailureKind.DOWNLOAD, str(err), previous=previous, scraped=scraped
            )
        trace.degraded.extend(artifact.degraded)

        changes = {
            "scraped_version": scraped,
            "manifest_version_name": artifact.manifest_version_name,
            "manifest_version_code": artifact.manifest_version_code,
            "filename": artifact.filename,
            "downloaded_at": artifact.downloaded_at,
        }
        record: VersionRecord | None
        try:
            record = self.store.save(settings.source_identifier, changes)
            logger.verbose("STATE", f"Saved record {settings.source_identifier!r}")
        except StateError as err:
            logger.error("STATE", f"Failed to save record: {err}")
            trace.degraded.append(FailureKind.PERSISTENCE)
            record = None
        trace.enter(PipelineState.PERSISTED)

        logger.step(4, TOTAL_STEPS, "Sending notification...")
        shown = record or VersionRecord(settings.source_identifier, **changes)
        notified = self._notify(
            trace,
            format_updated(
                shown,
                title=settings.notify_title,
                timezone=settings.timezone,
                fmt=settings.timestamp_format,
            ),
        )
        trace.enter(PipelineState.NOTIFIED)

        if not settings.keep_artifact:
            self._discard_artifact(trace, artifact)
        trace.enter(PipelineState.DONE)

        return RunOutcome(
            status=RunStatus.UPDATED,
            source_identifier=settings.source_identifier,
            states=tuple(trace.states),
            scraped_version=scraped,
            previous=previous,
            record=record,
            artifact=artifact,
            degraded=tuple(trace.degraded),
            notified=notified,
        )

    def _abort(
        self,
        trace: _RunTrace,
        failure: FailureKind,
        detail: str,
        *,
        previous: VersionRecord | None,
        scraped: str | None = None,
    ) -> RunOutcome:
        settings = self.settings
        self.logger.error("PIPELINE", f"Run aborted ({failure.value}): {detail}")
        trace.enter(PipelineState.ABORTED)

        notified = False
        if settings.notify_on_failure:
            notified = self._notify(
                trace,
                format_failure(
                    failure,
                    detail,
                    title=settings.notify_title,
                    occurred_at=self.clock(),
                    timezone=settings.timezone,
                    fmt=settings.timestamp_format,
                ),
            )

        return RunOutcome(
            status=RunStatus.ABORTED,
            source_identifier=settings.source_identifier,
            states=tuple(trace.states),
            scraped_version=scraped,
            previous=previous,
            failure=failure,
            degraded=tuple(trace.degraded),
            notified=notified,
        )

    # -------------------------------
    # Helpers
    # -------------------------------

    def _load_previous(self, source_id: str) -> VersionRecord | None:
        logger = self.logger
        try:
            previous = self.store.load(source_id)
        except StateError as err:
            logger.warning("STATE", f"Failed to load stored record: {err}")
            logger.warning("STATE", "Continuing as a first run")
            return None
        if previous is None:
            logger.verbose("STATE", f"No stored record for {source_id!r}")
        return previous

    def _notify(self, trace: _RunTrace, notification: Notification) -> bool:
        delivered = self.notifier.send(
            notification.title, notification.body, notification.fields
        )
        if not delivered:
            self.logger.warning("NOTIFY", "Notification was not delivered")
            trace.degraded.append(FailureKind.NOTIFICATION)
        return delivered

    def _discard_artifact(self, trace: _RunTrace, artifact: AcquiredArtifact) -> None:
        try:
            artifact.file_path.unlink(missing_ok=True)
            self.logger.verbose("FILE", f"Removed {artifact.filename}")
        except OSError as err:
            self.logger.error("FILE", f"Could not remove {artifact.file_path}: {err}")
            trace.degraded.append(FailureKind.CLEANUP)
