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

"""The persisted version record and its document mapping.

Documents use camelCase keys (sourceIdentifier, scrapedVersion, ...) so a
collection written by earlier deployments of the checker stays readable.
Python code uses the snake_case attributes of VersionRecord.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

# snake_case attribute -> document key
FIELD_KEYS: dict[str, str] = {
    "source_identifier": "sourceIdentifier",
    "scraped_version": "scrapedVersion",
    "manifest_version_name": "manifestVersionName",
    "manifest_version_code": "manifestVersionCode",
    "filename": "filename",
    "downloaded_at": "downloadedAt",
    "updated_at": "updatedAt",
    "created_at": "createdAt",
}

# Fields a caller may pass to StateStore.save(); timestamps other than
# downloaded_at are stamped by the store.
WRITABLE_FIELDS = frozenset(
    {
        "scraped_version",
        "manifest_version_name",
        "manifest_version_code",
        "filename",
        "downloaded_at",
    }
)

_TIMESTAMP_FIELDS = ("downloaded_at", "updated_at", "created_at")
_TEXT_FIELDS = (
    "scraped_version",
    "manifest_version_name",
    "manifest_version_code",
    "filename",
)


@dataclass(frozen=True)
class VersionRecord:
    """Last fully processed state for one tracked artifact.

    Attributes:
        source_identifier: Stable key; exactly one record per identifier.
        scraped_version: Last version string observed on the source page.
        manifest_version_name: versionName from the downloaded manifest.
        manifest_version_code: versionCode from the downloaded manifest.
        filename: Name the artifact was stored under.
        downloaded_at: When the recorded artifact was fetched.
        updated_at: When the record was last written.
        created_at: When the record was first written.
    """

    source_identifier: str
    scraped_version: str | None = None
    manifest_version_name: str | None = None
    manifest_version_code: str | None = None
    filename: str | None = None
    downloaded_at: datetime | None = None
    updated_at: datetime | None = None
    created_at: datetime | None = None

    def merged(self, changes: Mapping[str, Any]) -> VersionRecord:
        """Return a copy with ``changes`` applied (merge-overwrite)."""
        check_writable(changes)
        return replace(self, **dict(changes))

    def to_document(self, *, timestamps_as_text: bool = False) -> dict[str, Any]:
        """Convert to a camelCase document.

        Args:
            timestamps_as_text: If True, datetimes are rendered as ISO 8601
                strings (JSON state file). Otherwise they are kept as
                datetime objects (document store).
        """
        doc: dict[str, Any] = {}
        for attr, key in FIELD_KEYS.items():
            value = getattr(self, attr)
            if timestamps_as_text and isinstance(value, datetime):
                value = value.isoformat()
            doc[key] = value
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> VersionRecord:
        """Build a record from a camelCase document.

        Unknown keys (for example Mongo's ``_id`` and ``__v``) are ignored.
        Timestamps may be datetimes or ISO 8601 strings; naive values are
        taken as UTC.
        """
        values: dict[str, Any] = {}
        for attr, key in FIELD_KEYS.items():
            if key in doc:
                values[attr] = doc[key]
        for attr in _TIMESTAMP_FIELDS:
            values[attr] = _as_datetime(values.get(attr))
        # Older documents stored versions as numbers
        for attr in _TEXT_FIELDS:
            if values.get(attr) is not None:
                values[attr] = str(values[attr])
        return cls(**values)


def check_writable(changes: Mapping[str, Any]) -> None:
    """Raise ValueError if ``changes`` names a field save() does not accept."""
    unknown = sorted(set(changes) - WRITABLE_FIELDS)
    if unknown:
        raise ValueError(
            f"Unknown record field(s): {', '.join(unknown)}. "
            f"Writable: {', '.join(sorted(WRITABLE_FIELDS))}"
        )


def _as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise ValueError(f"Expected a timestamp, got {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value
