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

"""JSON file state store for apkwatch.

This module implements the flat-file persistence backend. The state file
holds a metadata block and one record per source identifier:

    {
      "metadata": {
        "apkwatch_version": "0.1.0",
        "last_updated": "2026-10-17T12:00:00+00:00",
        "schema_version": "1"
      },
      "records": {
        "pgsharp_apk_check": {
          "sourceIdentifier": "pgsharp_apk_check",
          "scrapedVersion": "1.0.6",
          "manifestVersionName": "1.0.6",
          "manifestVersionCode": "106",
          "filename": "1.0.6.apk",
          "downloadedAt": "2026-10-17T12:00:00+00:00",
          "updatedAt": "2026-10-17T12:00:00+00:00",
          "createdAt": "2026-10-01T08:00:00+00:00"
        }
      }
    }

Key Features:

- JSON-based state storage (fast parsing, standard library)
- Atomic writes (.part file then rename)
- Corrupted files are backed up to <name>.json.backup before reporting
- Auto-creation of the state file and parent directories

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from apkwatch.state import JsonStateStore

        store = JsonStateStore(Path("state/apkwatch.json"))
        record = store.load("pgsharp_apk_check")
        store.save("pgsharp_apk_check", {"scraped_version": "1.0.6"})
        ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Any, NoReturn

from apkwatch import __version__
from apkwatch.exceptions import StateError
from apkwatch.logging import Logger, get_global_logger

from .record import VersionRecord, check_writable

SCHEMA_VERSION = "1"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JsonStateStore:
    """State store backed by a single JSON file.

    Attributes:
        state_file: Path to the JSON state file.
    """

    def __init__(
        self,
        state_file: Path,
        *,
        clock: Callable[[], datetime] = _utcnow,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            state_file: Path to JSON state file. Created on first save.
            clock: Source of the updated_at/created_at timestamps.
            logger: Logger for backup notices. Defaults to the global logger.
        """
        self.state_file = Path(state_file)
        self._clock = clock
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def load(self, source_identifier: str) -> VersionRecord | None:
        """Return the record for ``source_identifier``, or None.

        A missing state file is a cold start, not an error.

        Raises:
            StateError: If the file is corrupted (it is backed up first) or
                unreadable, or the stored record is malformed.
        """
        state = self._read()
        if state is None:
            self.logger.verbose("STATE", f"State file not found: {self.state_file}")
            return None

        doc = state.get("records", {}).get(source_identifier)
        if not doc:
            self.logger.verbose(
                "STATE", f"No record for {source_identifier!r} in {self.state_file}"
            )
            return None
        try:
            return VersionRecord.from_document(doc)
        except (TypeError, ValueError) as err:
            raise StateError(
                f"Malformed record for {source_identifier!r} in {self.state_file}: {err}"
            ) from err

    def save(
        self, source_identifier: str, changes: Mapping[str, Any]
    ) -> VersionRecord:
        """Upsert the record for ``source_identifier``.

        Raises:
            ValueError: If changes names a field that cannot be written.
            StateError: If the file cannot be written.
        """
        check_writable(changes)
        now = self._clock()

        try:
            state = self._read()
        except StateError as err:
            # The corrupted file is already backed up; start a fresh one
            self.logger.warning("STATE", str(err))
            state = None
        if state is None:
            state = create_default_state()
        records = state.setdefault("records", {})

        existing = records.get(source_identifier)
        if existing:
            try:
                current = VersionRecord.from_document(existing)
            except (TypeError, ValueError):
                current = VersionRecord(source_identifier, created_at=now)
        else:
            current = VersionRecord(source_identifier, created_at=now)

        record = replace(current.merged(changes), updated_at=now)
        records[source_identifier] = record.to_document(timestamps_as_text=True)

        state.setdefault("metadata", {})
        state["metadata"].update(
            {
                "apkwatch_version": __version__,
                "schema_version": SCHEMA_VERSION,
                "last_updated": now.isoformat(),
            }
        )

        try:
            save_state(state, self.state_file)
        except OSError as err:
            raise StateError(f"Failed to write state file {self.state_file}: {err}") from err

        self.logger.verbose("STATE", f"Saved record {source_identifier!r} to {self.state_file}")
        return record

    def _read(self) -> dict[str, Any] | None:
        try:
            state = load_state(self.state_file)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as err:
            self._back_up_corrupted(err)
        except OSError as err:
            raise StateError(f"Failed to read state file {self.state_file}: {err}") from err

        if not isinstance(state, dict) or not all(
            isinstance(state.get(key, {}), dict) for key in ("metadata", "records")
        ):
            self._back_up_corrupted(ValueError("expected a JSON object with 'records'"))
        return state

    def _back_up_corrupted(self, err: Exception) -> NoReturn:
        backup = self.state_file.with_suffix(".json.backup")
        try:
            self.state_file.replace(backup)
        except OSError as move_err:
            raise StateError(
                f"Corrupted state file {self.state_file} could not be backed up: {move_err}"
            ) from err
        raise StateError(f"Corrupted state file backed up to {backup}.") from err


def create_default_state() -> dict[str, Any]:
    """Create a default empty state structure.

    Returns:
        Empty state with metadata section.
    """
    return {
        "metadata": {
            "apkwatch_version": __version__,
            "schema_version": SCHEMA_VERSION,
            "last_updated": _utcnow().isoformat(),
        },
        "records": {},
    }


def load_state(state_file: Path) -> dict[str, Any]:
    """Load state from JSON file.

    Args:
        state_file: Path to JSON state file.

    Returns:
        Loaded state dictionary.

    Raises:
        FileNotFoundError: If state file doesn't exist.
        json.JSONDecodeError: If file contains invalid JSON.
        OSError: If file cannot be read due to permissions.
    """
    with open(state_file, encoding="utf-8") as f:
        return json.load(f)


def save_state(state: dict[str, Any], state_file: Path) -> None:
    """Save state to JSON file with pretty-printing.

    Creates parent directories if needed. Writes to <name>.part and renames
    over the target so a crash mid-write never leaves a truncated file.

    Args:
        state: State dictionary to save.
        state_file: Path to JSON state file.

    Raises:
        OSError: If file cannot be written due to permissions.

    Note:
        - Uses 2-space indentation for readability
        - Sorts keys alphabetically for consistent diffs
        - Adds trailing newline for git compatibility
    """
    state_file = Path(state_file)
    state_file.parent.mkdir(parents=True, exist_ok=True)

    tmp = state_file.with_suffix(state_file.suffix + ".part")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, sort_keys=True)
        f.write("\n")  # Trailing newline for git
    tmp.replace(state_file)
