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

"""State persistence for apkwatch.

This package stores the last fully processed version record for each
tracked artifact. Two interchangeable backends implement the StateStore
protocol:

- JsonStateStore: a single JSON file (default, no services needed)
- MongoStateStore: a MongoDB collection, via an explicit MongoConnection

Public API:

- VersionRecord: The persisted record
- StateStore: Protocol both backends implement
- JsonStateStore, MongoStateStore, MongoConnection: Backends
- open_state_store: Build the configured backend as a context manager
- load_state / save_state: Low-level JSON helpers

Example:
    Basic usage:

        from pathlib import Path
        from apkwatch.state import JsonStateStore

        store = JsonStateStore(Path("state/apkwatch.json"))
        previous = store.load("pgsharp_apk_check")
        store.save("pgsharp_apk_check", {"scraped_version": "1.0.6"})

"""

from .base import StateStore, open_state_store
from .json_store import JsonStateStore, load_state, save_state
from .mongo_store import MongoConnection, MongoStateStore
from .record import VersionRecord

__all__ = [
    "StateStore",
    "open_state_store",
    "JsonStateStore",
    "MongoConnection",
    "MongoStateStore",
    "VersionRecord",
    "load_state",
    "save_state",
]
