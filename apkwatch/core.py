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

"""Core orchestration for apkwatch.

This module wires the production collaborators (scraper from the registry,
HTTP fetcher, APK manifest reader, Discord notifier and the configured state
store) into a ReconciliationPipeline and runs it once.

Design Principles:

- The pipeline holds the run logic; this module only builds its inputs
- The state store is opened once per invocation and always closed
- Error handling uses exceptions; CLI layer formats for user display

Example:
    Programmatic usage:
        ```python
        from apkwatch.config import load_settings
        from apkwatch.core import run_check

        outcome = run_check(load_settings())
        print(outcome.status.value)
        ```

"""

from __future__ import annotations

from apkwatch.config import Settings
from apkwatch.discovery import get_scraper
from apkwatch.io import HttpArtifactFetcher
from apkwatch.logging import Logger, get_global_logger
from apkwatch.notify import DiscordNotifier
from apkwatch.pipeline import ReconciliationPipeline
from apkwatch.results import RunOutcome
from apkwatch.state import VersionRecord, open_state_store
from apkwatch.versioning import ApkManifestReader


def run_check(settings: Settings, *, logger: Logger | None = None) -> RunOutcome:
    """Run one update check with the production collaborators.

    This is the main entry point for the 'apkwatch check' command.

    Args:
        settings: Resolved settings (see apkwatch.config.load_settings).
        logger: Optional logger. Defaults to the global logger.

    Returns:
        The run outcome. Scrape and download failures come back as an
        ABORTED outcome, not as exceptions.

    Raises:
        ConfigError: If the scraper or state backend named in settings is
            unknown.
        StateError: If the Mongo backend cannot be reached.

    """
    logger = logger or get_global_logger()

    scraper = get_scraper(settings.scraper, logger=logger)
    fetcher = HttpArtifactFetcher(timeout=settings.download_timeout, logger=logger)
    notifier = DiscordNotifier(
        settings.webhook_url,
        mention_user_id=settings.mention_user_id,
        logger=logger,
    )

    with open_state_store(settings, logger=logger) as store:
        pipeline = ReconciliationPipeline(
            settings,
            store=store,
            scraper=scraper,
            fetcher=fetcher,
            manifest_reader=ApkManifestReader(logger=logger),
            notifier=notifier,
            logger=logger,
        )
        return pipeline.run()


def load_record(
    settings: Settings, *, logger: Logger | None = None
) -> VersionRecord | None:
    """Return the stored record for the configured source, or None.

    Raises:
        StateError: If the store cannot be read.

    """
    with open_state_store(settings, logger=logger) as store:
        return store.load(settings.source_identifier)
