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

"""Scraped-vs-recorded version decision for apkwatch.

This module is pure: it does NOT download, read files or touch state. It
only decides whether a freshly scraped version string means a new release.

The rule:

- UNCHANGED when the previous record has a manifest versionName and the
  scraped text equals it or contains it as a substring. The download page
  often wraps the version in a longer display string such as
  "1.0.6 (build 106)".
- CHANGED otherwise, including a cold start (no previous record) and a
  previous record whose manifest versionName is missing or empty.

The manifest versionName is the only value compared. The previously scraped
string is informational; a page change that still contains the manifest
version is not a release.

Example:
    Comparing against a stored record:
        ```python
        from apkwatch.state import VersionRecord
        from apkwatch.versioning import Decision, compare_versions

        previous = VersionRecord("pgsharp_apk_check", manifest_version_name="1.0.6")
        compare_versions(previous, "1.0.6 (build 106)")  # Decision.UNCHANGED
        compare_versions(previous, "1.0.7")              # Decision.CHANGED
        compare_versions(None, "1.0.7")                  # Decision.CHANGED
        ```
"""

from __future__ import annotations

from enum import Enum

from apkwatch.state.record import VersionRecord


class Decision(str, Enum):
    """Outcome of comparing a scraped version to the stored record."""

    UNCHANGED = "unchanged"
    CHANGED = "changed"


def compare_versions(previous: VersionRecord | None, scraped: str) -> Decision:
    """Decide whether ``scraped`` denotes a new version.

    Args:
        previous: Record from the last successful run, or None.
        scraped: Version text read from the page.

    Returns:
        Decision.UNCHANGED if the manifest versionName of ``previous`` is
        equal to or contained in ``scraped``; Decision.CHANGED otherwise.
    """
    baseline = previous.manifest_version_name if previous is not None else None
    if not baseline:
        return Decision.CHANGED
    if scraped == baseline or baseline in scraped:
        return Decision.UNCHANGED
    return Decision.CHANGED


def describe_baseline(previous: VersionRecord | None) -> str | None:
    """Return the stored version worth showing in logs.

    Prefers the manifest versionName, falls back to the scraped version.
    """
    if previous is None:
        return None
    return previous.manifest_version_name or previous.scraped_version or None
