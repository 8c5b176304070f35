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

"""Exception hierarchy for apkwatch.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Configuration-related errors (missing environment variables,
  invalid settings file, unknown backend or scraper)
- NetworkError: Network-related errors (page or API failures)
- DownloadError: Artifact download failures (HTTP errors, truncated bodies)
- StateError: Persistence failures (corrupted state file, database errors)

All exceptions inherit from ApkWatchError, allowing users to catch all
apkwatch errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from apkwatch.config import load_settings
        from apkwatch.exceptions import ConfigError

        try:
            settings = load_settings()
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```

    Catching all apkwatch errors:
        ```python
        from apkwatch.exceptions import ApkWatchError

        try:
            outcome = run_check(settings)
        except ApkWatchError as e:
            print(f"apkwatch error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "ApkWatchError",
    "ConfigError",
    "NetworkError",
    "DownloadError",
    "StateError",
]


class ApkWatchError(Exception):
    """Base exception for all apkwatch errors.

    All apkwatch-specific exceptions inherit from this class, allowing users
    to catch all apkwatch errors with a single except clause if needed.
    """

    pass


class ConfigError(ApkWatchError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Missing required environment variables (WEBHOOK_URL, ...)
    - YAML parsing of the settings file
    - Invalid setting values (unknown state backend, unknown scraper,
      unknown timezone, non-positive timeouts)

    Example:
        Catching configuration errors:
            ```python
            from apkwatch.exceptions import ConfigError

            try:
                settings = load_settings(Path("apkwatch.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass


class NetworkError(ApkWatchError):
    """Raised for network-related errors.

    This exception is raised when there are problems with:

    - HTTP failures talking to the download API
    - Connection errors and timeouts
    """

    pass


class DownloadError(NetworkError):
    """Raised when the artifact could not be downloaded completely.

    Covers non-success HTTP responses, transport errors while streaming,
    truncated bodies (fewer bytes than Content-Length) and failures to move
    the temporary file into place. The temporary file has already been
    removed (best effort) when this is raised.
    """

    pass


class StateError(ApkWatchError):
    """Raised for persistence errors.

    This exception is raised when there are problems with:

    - Corrupted JSON state files (the file is backed up first)
    - Database connection or write failures
    - Reading or writing the state file (permissions, disk full)
    """

    pass
