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

"""Notification message building for apkwatch.

Pure functions that turn run data into a Notification (title, body and a
list of fields). Nothing here performs I/O; delivery is the notifier's job.

Timestamps are rendered in a configurable zone and strftime format. The
defaults (America/Sao_Paulo, "%d/%m/%Y, %H:%M:%S") reproduce a pt-BR
locale rendering such as "17/10/2026, 09:15:00".

Missing values render as the literal string "None", because Discord rejects
embed fields with empty values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from apkwatch.results import FailureKind
from apkwatch.state.record import VersionRecord

DEFAULT_TITLE = "PGSharp Update"
DEFAULT_TIMEZONE = "America/Sao_Paulo"
DEFAULT_TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"

MISSING = "None"


@dataclass(frozen=True)
class NotificationField:
    """One name/value row of a notification."""

    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class Notification:
    """A rendered message, independent of the delivery channel."""

    title: str
    body: str
    fields: tuple[NotificationField, ...] = field(default_factory=tuple)


def _text(value: object) -> str:
    if value is None:
        return MISSING
    text = str(value)
    return text if text.strip() else MISSING


def format_timestamp(
    value: datetime | None,
    timezone: str = DEFAULT_TIMEZONE,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> str:
    """Render a timestamp in the given zone.

    Naive datetimes are taken to be UTC. None renders as "None".

    Example:
        >>> format_timestamp(datetime(2026, 10, 17, 12, 0, tzinfo=UTC))
        '17/10/2026, 09:00:00'
    """
    if value is None:
        return MISSING
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(ZoneInfo(timezone)).strftime(fmt)


def format_unchanged(
    previous: VersionRecord | None,
    scraped_version: str,
    *,
    title: str = DEFAULT_TITLE,
    timezone: str = DEFAULT_TIMEZONE,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> Notification:
    """Build the "no new version" message.

    Shows when the record was last written and the stored versions, so the
    reader can tell the page and the manifest apart.
    """
    updated_at = previous.updated_at if previous is not None else None
    stored_scraped = previous.scraped_version if previous is not None else None
    manifest = previous.manifest_version_name if previous is not None else None
    return Notification(
        title=title,
        body=f"No new APK version detected. Current version: {scraped_version}.",
        fields=(
            NotificationField(
                "Last check", format_timestamp(updated_at, timezone, fmt), inline=True
            ),
            NotificationField("Scraped version", _text(stored_scraped), inline=True),
            NotificationField("Manifest version", _text(manifest), inline=True),
        ),
    )


def format_updated(
    record: VersionRecord,
    *,
    title: str = DEFAULT_TITLE,
    timezone: str = DEFAULT_TIMEZONE,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> Notification:
    """Build the "new version available" message from the saved record."""
    downloaded = format_timestamp(record.downloaded_at, timezone, fmt)
    return Notification(
        title=title,
        body=(
            f"New APK version available: {_text(record.filename)}\n"
            f"Downloaded at: {downloaded}"
        ),
        fields=(
            NotificationField(
                "Scraped version", _text(record.scraped_version), inline=True
            ),
            NotificationField(
                "Manifest version", _text(record.manifest_version_name), inline=True
            ),
            NotificationField(
                "Manifest version code",
                _text(record.manifest_version_code),
                inline=True,
            ),
            NotificationField("Downloaded file", _text(record.filename)),
        ),
    )


def format_failure(
    failure: FailureKind,
    detail: str | None = None,
    *,
    title: str = DEFAULT_TITLE,
    occurred_at: datetime | None = None,
    timezone: str = DEFAULT_TIMEZONE,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> Notification:
    """Build the message sent when a run aborts."""
    return Notification(
        title=title,
        body=f"Update check failed at step: {failure.value}.",
        fields=(
            NotificationField("Failure", failure.value, inline=True),
            NotificationField(
                "When", format_timestamp(occurred_at, timezone, fmt), inline=True
            ),
            NotificationField("Detail", _text(detail)),
        ),
    )
