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

"""MongoDB state store for apkwatch.

Records live in the ``versioninfos`` collection, one document per
``sourceIdentifier`` (enforced by a unique index). Saves are a single
``find_one_and_update`` with ``upsert=True`` so there is never a window in
which two documents exist for the same identifier.

The connection is an explicit handle rather than module state: open it once
at process start, pass it to the store, close it on shutdown.

Example:
    Typical lifecycle:
        ```python
        from apkwatch.state import MongoConnection, MongoStateStore

        with MongoConnection("mongodb://localhost/apkwatch") as connection:
            store = MongoStateStore(connection)
            record = store.load("pgsharp_apk_check")
        ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from apkwatch.exceptions import StateError
from apkwatch.logging import Logger, get_global_logger

from .record import FIELD_KEYS, VersionRecord, check_writable

DEFAULT_COLLECTION = "versioninfos"
DEFAULT_DATABASE = "apkwatch"

# Connection timeouts (ms)
SERVER_SELECTION_TIMEOUT_MS = 5000
CONNECT_TIMEOUT_MS = 30000


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MongoConnection:
    """Explicitly managed MongoDB client handle.

    Attributes:
        uri: MongoDB connection string.
    """

    def __init__(
        self,
        uri: str,
        *,
        database: str | None = None,
        server_selection_timeout_ms: int = SERVER_SELECTION_TIMEOUT_MS,
        connect_timeout_ms: int = CONNECT_TIMEOUT_MS,
        client_factory: Callable[..., Any] = MongoClient,
    ) -> None:
        """Prepare a connection; nothing is opened until open().

        Args:
            uri: MongoDB connection string.
            database: Database name. Defaults to the database named in the
                URI, or "apkwatch" when the URI names none.
            server_selection_timeout_ms: How long to wait for a server.
            connect_timeout_ms: Socket connect timeout.
            client_factory: Client class; tests pass mongomock.MongoClient.
        """
        self.uri = uri
        self._database_name = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._connect_timeout_ms = connect_timeout_ms
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> MongoConnection:
        """Create the client. Calling open() twice reuses the client."""
        if self._client is None:
            try:
                self._client = self._client_factory(
                    self.uri,
                    serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                    connectTimeoutMS=self._connect_timeout_ms,
                    tz_aware=True,
                )
            except (PyMongoError, ValueError) as err:
                raise StateError(f"Failed to open MongoDB connection: {err}") from err
        return self

    def ping(self) -> None:
        """Round-trip to the server.

        Raises:
            StateError: If the server cannot be reached within the server
                selection timeout.
        """
        if self._client is None:
            raise StateError("MongoDB connection is not open")
        try:
            self._client.admin.command("ping")
        except PyMongoError as err:
            raise StateError(f"MongoDB is unreachable: {err}") from err

    def close(self) -> None:
        """Release the client. Safe to call when not open."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def database(self) -> Database:
        """Return the configured database.

        Raises:
            StateError: If the connection is not open.
        """
        if self._client is None:
            raise StateError("MongoDB connection is not open")
        if self._database_name:
            return self._client[self._database_name]
        return self._client.get_default_database(default=DEFAULT_DATABASE)

    def __enter__(self) -> MongoConnection:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MongoStateStore:
    """State store backed by a MongoDB collection."""

    def __init__(
        self,
        connection: MongoConnection,
        *,
        collection: str = DEFAULT_COLLECTION,
        clock: Callable[[], datetime] = _utcnow,
        logger: Logger | None = None,
    ) -> None:
        self.connection = connection
        self.collection_name = collection
        self._clock = clock
        self._logger = logger
        self._index_ready = False

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def _collection(self) -> Collection:
        collection = self.connection.database()[self.collection_name]
        if not self._index_ready:
            collection.create_index(FIELD_KEYS["source_identifier"], unique=True)
            self._index_ready = True
        return collection

    def load(self, source_identifier: str) -> VersionRecord | None:
        """Return the stored record, or None.

        Raises:
            StateError: On driver errors or a malformed document.
        """
        try:
            doc = self._collection().find_one(
                {FIELD_KEYS["source_identifier"]: source_identifier}
            )
        except PyMongoError as err:
            raise StateError(f"Failed to load record {source_identifier!r}: {err}") from err

        if doc is None:
            self.logger.verbose("STATE", f"No record for {source_identifier!r} in MongoDB")
            return None
        try:
            return VersionRecord.from_document(doc)
        except (TypeError, ValueError) as err:
            raise StateError(f"Malformed record for {source_identifier!r}: {err}") from err

    def save(
        self, source_identifier: str, changes: Mapping[str, Any]
    ) -> VersionRecord:
        """Upsert the record with ``$set`` and stamp the timestamps.

        Raises:
            ValueError: If changes names a field that cannot be written.
            StateError: On driver errors.
        """
        check_writable(changes)
        now = self._clock()

        to_set = {FIELD_KEYS[attr]: value for attr, value in changes.items()}
        to_set[FIELD_KEYS["updated_at"]] = now
        update = {
            "$set": to_set,
            "$setOnInsert": {FIELD_KEYS["created_at"]: now},
        }

        try:
            doc = self._collection().find_one_and_update(
                {FIELD_KEYS["source_identifier"]: source_identifier},
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as err:
            raise StateError(f"Failed to save record {source_identifier!r}: {err}") from err

        self.logger.verbose("STATE", f"Saved record {source_identifier!r} to MongoDB")
        return VersionRecord.from_document(doc)
