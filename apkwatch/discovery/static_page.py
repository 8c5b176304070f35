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

"""Static HTML scraper for apkwatch.

Fetches the page with a single GET and evaluates the CSS selector against the
server-rendered markup with BeautifulSoup. No JavaScript runs, so this only
works for pages where the version is present in the HTML response.

Settings:

    source:
      scraper: static
      page_url: "https://vendor.example/download"
      selector: "span.version"

Note:
    ``timeout_ms`` is applied as the HTTP request timeout (converted to
    seconds).
"""

from __future__ import annotations

from bs4 import BeautifulSoup
import requests
from soupsieve import SelectorSyntaxError

from apkwatch.logging import Logger, get_global_logger

from .base import register_scraper


class StaticVersionScraper:
    """Scraper for server-rendered download pages."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.session = session
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def fetch_version_text(
        self, page_url: str, selector: str, timeout_ms: int
    ) -> str | None:
        """Fetch ``page_url`` and return the trimmed text of ``selector``."""
        logger = self.logger
        logger.verbose("SCRAPE", f"Fetching page: {page_url}")

        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(page_url, timeout=timeout_ms / 1000)
            response.raise_for_status()
        except requests.exceptions.RequestException as err:
            logger.error("SCRAPE", f"Failed to fetch page: {err}")
            return None

        html_content = response.text
        logger.debug("SCRAPE", f"Page fetched ({len(html_content)} bytes)")

        soup = BeautifulSoup(html_content, "html.parser")
        try:
            element = soup.select_one(selector)
        except SelectorSyntaxError as err:
            logger.error("SCRAPE", f"Invalid CSS selector {selector!r}: {err}")
            return None

        if element is None:
            logger.warning(
                "SCRAPE", f"CSS selector {selector!r} did not match any elements"
            )
            return None

        text = element.get_text(strip=True)
        if not text:
            logger.warning(
                "SCRAPE", f"Selector {selector!r} matched but has no text content"
            )
            return None

        logger.verbose("SCRAPE", f"Version on page: {text}")
        return text


# Register this scraper when the module is imported
register_scraper("static", StaticVersionScraper)
