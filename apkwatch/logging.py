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

"""Console output for apkwatch.

Every module that reports progress (scraper, downloader, manifest reader,
state stores, notifier, pipeline) talks to a Logger rather than printing
directly. The CLI installs a DefaultLogger; library callers get a
SilentLogger unless they pass their own.

Levels:

- step: numbered pipeline progress, always shown (stdout)
- verbose: per-component detail, shown with -v (stdout)
- debug: wire-level detail, shown with -d, which implies -v (stdout)
- warning: a step degraded but the run continues (stderr)
- error: a step failed (stderr)

Warnings and errors bypass the verbosity flags so a scheduled run that only
keeps stderr still records lost notifications and aborted checks.

Example:
    From the CLI:
        ```python
        from apkwatch.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))
        ```

    Inside a component:
        ```python
        from apkwatch.logging import get_global_logger

        logger = logger or get_global_logger()
        logger.verbose("MANIFEST", f"Reading {path.name}")
        logger.warning("MANIFEST", "No version in manifest")
        ```
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Report pipeline progress as ``[step/total] message``."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Report component detail.

        Args:
            prefix: Component tag (e.g., "SCRAPE", "STATE", "NOTIFY").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Report wire-level detail (HTTP headers, byte counts)."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Report a degraded step."""
        ...

    def error(self, prefix: str, message: str) -> None:
        """Report a failed step."""
        ...


class DefaultLogger:
    """Print to stdout, or stderr for warnings and errors.

    Args:
        verbose: Show verbose messages.
        debug: Show debug messages. Implies verbose.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._verbose = verbose or debug
        self._debug = debug

    @staticmethod
    def _emit(line: str, stream: TextIO | None = None) -> None:
        print(line, file=stream or sys.stdout)

    def step(self, step: int, total: int, message: str) -> None:
        self._emit(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            self._emit(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            self._emit(f"[{prefix}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        self._emit(f"[{prefix}] WARNING: {message}", sys.stderr)

    def error(self, prefix: str, message: str) -> None:
        self._emit(f"[{prefix}] ERROR: {message}", sys.stderr)


class SilentLogger:
    """Discard everything. Default for library use and tests."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def error(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Return a console logger with the given verbosity."""
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the process-wide logger (silent until the CLI replaces it)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Replace the process-wide logger.

    Components that were given an explicit logger keep using it; only those
    falling back to get_global_logger() see the change.
    """
    global _global_logger
    _global_logger = logger
