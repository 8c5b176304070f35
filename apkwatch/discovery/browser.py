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

"""Headless browser scraper for apkwatch.

The vendor page builds its content with JavaScript, so a plain HTTP fetch
does not contain the version text. This scraper loads the page in headless
Chromium through Playwright, waits for the network to go idle, then waits up
to ``timeout_ms`` for the selector and reads its text.

The browser is closed on every exit path. Playwright's own context manager
stops the driver process; the inner try/finally closes the browser even when
navigation or the selector wait fails.

Settings:

    source:
      scraper: browser
      selector: "#content p:nth-child(1) > span:nth-child(2)"
      timeout_ms: 15000

Note:
    Requires a Chromium build for Playwright:

        $ playwright install chromium

    --no-sandbox is passed by default so the scraper runs as root inside
    containers.
"""

from __future__ import annotations

from collections.abc import Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from apkwatch.logging import Logger, get_global_logger

from .base import register_scraper

DEFAULT_LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox")

# Navigation timeout (ms), separate from the selector wait
NAVIGATION_TIMEOUT_MS = 60000


class BrowserVersionScraper:
    """Scraper that renders the page in headless Chromium."""

    def __init__(
        self,
        *,
        headless: bool = True,
        launch_args: Sequence[str] = DEFAULT_LAUNCH_ARGS,
        wait_until: str = "networkidle",
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        logger: Logger | None = None,
    ) -> None:
        self.headless = headless
        self.launch_args = tuple(launch_args)
        self.wait_until = wait_until
        self.navigation_timeout_ms = navigation_timeout_ms
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def fetch_version_text(
        self, page_url: str, selector: str, timeout_ms: int
    ) -> str | None:
        """Render ``page_url`` and return the trimmed text of ``selector``.

        Returns:
            The version text, or None if the page could not be loaded, the
            selector did not appear within ``timeout_ms``, or the element's
            text is empty.
        """
        logger = self.logger
        logger.verbose("SCRAPE", f"Launching headless browser for {page_url}")

        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(
                    headless=self.headless, args=list(self.launch_args)
                )
                try:
                    page = browser.new_page()
                    page.goto(
                        page_url,
                        wait_until=self.wait_until,
                        timeout=self.navigation_timeout_ms,
                    )
                    logger.debug("SCRAPE", f"Waiting for selector: {selector}")
                    element = page.wait_for_selector(
                        selector, state="attached", timeout=timeout_ms
                    )
                    raw = element.text_content() if element is not None else None
                finally:
                    browser.close()
        except PlaywrightError as err:
            logger.error("SCRAPE", f"Failed to read version from {page_url}: {err}")
            return None

        text = (raw or "").strip()
        if not text:
            logger.warning(
                "SCRAPE", f"Selector {selector!r} matched but has no text content"
            )
            return None

        logger.verbose("SCRAPE", f"Version on page: {text}")
        return text


# Register this scraper when the module is imported
register_scraper("browser", BrowserVersionScraper)
