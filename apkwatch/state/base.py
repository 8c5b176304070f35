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

"""State store protocol and backend selection.

Both backends implement the same two-method contract:

- load(source_identifier) returns the record or None (cold start)
- save(source_identifier, changes) upserts, stamps updated_at, and returns
  the stored record

Backends raise StateError for anything that goes wrong underneath (bad JSON,
unreachable database). The pipeline decides what is fatal; the stores do not.

Example:
    Selecting a backend from settings:
        ```python
        from apkwatch.state import open_state_store

        with open_state_store(settings) as store:
            record = store.load(settings.source_identifier)
        ```
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Protocol

from apkwatch.exceptions import ConfigError
from apkwatch.logging import Logger

from .record import VersionRecord

if TYPE_CHECKING:
    from apkwatch.config import Settings


class StateStore(Protocol):
    """Protocol for version record persistence."""

    def load(self, source_identifier: str) -> VersionRecord | None:
        """Return the stored record, or None if there is none.

        Raises:
            StateError: If the backing store cannot be read.
        """
        ...

    def save(
        self, source_identifier: str, changes: Mapping[str, Any]
    ) -> VersionRecord:
        """Create or merge-overwrite the record and stamp updated_at.

        Args:
            source_identifier: Record key.
            changes: Field values keyed by VersionRecord attribute name.
                Fields not named keep their stored values. Explicit None
                values overwrite.

        Returns:
            The record as stored.

        Raises:
            ValueError: If changes names a field that cannot be written.
            StateError: If the write fails.
        """
        ...


@contextmanager
def open_state_store(
    settings: Settings, *, logger: Logger | None = None
) -> Iterator[StateStore]:
    """Open the configured backend and release it on exit.

    The Mongo connection is opened once here and closed when the block
    exits, whether or not the block raised.

    Raises:
        ConfigError: If the backend name is unknown or the Mongo URI is
            missing.
        StateError: If MongoDB cannot be reached.
    """
    from .json_store import JsonStateStore
    from .mongo_store import MongoConnection, MongoStateStore

    backend = settings.state_backend
    if backend == "json":
        yield JsonStateStore(settings.state_file, logger=logger)
    elif backend == "mongo":
        if not settings.mongodb_uri:
            raise ConfigError("state backend 'mongo' requires MONGODB_URI")
        with MongoConnection(
            settings.mongodb_uri, database=settings.state_database
        ) as connection:
            connection.ping()
            yield MongoStateStore(connection, logger=logger)
    else:
        raise ConfigError(f"Unknown state backend: {backend!r}")
