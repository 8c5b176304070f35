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

"""Public API return types for apkwatch.

This module defines dataclasses and enums for return values from public API
functions: the outcome of a pipeline run, the artifact produced by an
acquisition and the version details read from an APK manifest.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from apkwatch.core import run_check
        from apkwatch.results import RunStatus

        outcome = run_check(settings)
        if outcome.status is RunStatus.UPDATED:
            print(outcome.record.filename)
        ```

Note:
    Only public API return types belong in this module. The persisted
    VersionRecord lives with the state stores in apkwatch.state.record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from apkwatch.state.record import VersionRecord


class PipelineState(str, Enum):
    """States visited by a single reconciliation run."""

    IDLE = "idle"
    SCRAPING = "scraping"
    COMPARING = "comparing"
    NO_CHANGE_NOTIFY = "no_change_notify"
    ACQUIRING = "acquiring"
    PERSISTED = "persisted"
    NOTIFIED = "notified"
    DONE = "done"
    ABORTED = "aborted"


class RunStatus(str, Enum):
    """Overall result of a run."""

    UNCHANGED = "unchanged"
    UPDATED = "updated"
    ABORTED = "aborted"


class FailureKind(str, Enum):
    """Failure taxonomy.

    SCRAPE and DOWNLOAD are terminal for a run. The others degrade a field
    or skip a side effect and are reported in RunOutcome.degraded.
    """

    SCRAPE = "scrape"
    DOWNLOAD = "download"
    MANIFEST_PARSE = "manifest_parse"
    RELOCATION = "relocation"
    PERSISTENCE = "persistence"
    NOTIFICATION = "notification"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class ManifestVersion:
    """Version identifiers read from AndroidManifest.xml.

    Attributes:
        version_name: android:versionName (e.g., "1.0.6"), or None.
        version_code: android:versionCode as a string (e.g., "106"), or None.
    """

    version_name: str | None
    version_code: str | None


@dataclass(frozen=True)
class AcquiredArtifact:
    """Result of downloading and reconciling an artifact.

    Attributes:
        file_path: Final location of the artifact on disk.
        filename: Final file name (derived from the manifest version when it
            disagreed with the scraped version and relocation succeeded,
            otherwise from the scraped version).
        manifest_version_name: Version name from the manifest, or None when
            the manifest could not be read.
        manifest_version_code: Version code from the manifest, or None.
        downloaded_at: When the download completed (UTC).
        degraded: Non-fatal failures that happened during acquisition.
    """

    file_path: Path
    filename: str
    manifest_version_name: str | None
    manifest_version_code: str | None
    downloaded_at: datetime
    degraded: tuple[FailureKind, ...] = ()


@dataclass(frozen=True)
class RunOutcome:
    """Result of one reconciliation run.

    Attributes:
        status: UNCHANGED, UPDATED or ABORTED.
        source_identifier: Key of the tracked artifact.
        states: Every pipeline state visited, in order.
        scraped_version: Version text read from the page (None when the
            scrape failed).
        previous: Record loaded at pipeline entry (None on cold start).
        record: Record returned by the store after the exit save, or None
            when no save happened or the save failed.
        artifact: Acquired artifact for UPDATED runs.
        failure: Terminal failure for ABORTED runs.
        degraded: Non-fatal failures, in the order they happened.
        notified: True when the notifier reported a successful delivery.
    """

    status: RunStatus
    source_identifier: str
    states: tuple[PipelineState, ...]
    scraped_version: str | None = None
    previous: VersionRecord | None = None
    record: VersionRecord | None = None
    artifact: AcquiredArtifact | None = None
    failure: FailureKind | None = None
    degraded: tuple[FailureKind, ...] = ()
    notified: bool = False

    @property
    def final_state(self) -> PipelineState:
        """Last state reached by the run."""
        return self.states[-1]
