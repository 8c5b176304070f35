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

"""Version discovery for apkwatch.

This package reads the advertised version text from the vendor's download
page. Scrapers are looked up by name from a registry so the settings file
can choose how the page is read.

Available Scrapers:
    browser : BrowserVersionScraper
        Headless Chromium through Playwright. Handles pages that render the
        version with JavaScript. This is the default.
    static : StaticVersionScraper
        requests + BeautifulSoup against the raw HTML response.

Example:
    Look up a scraper and read the version:

        from apkwatch.discovery import get_scraper

        scraper = get_scraper("browser")
        text = scraper.fetch_version_text(
            "https://vendor.example/download",
            "span.version",
            15000,
        )

"""

# Import scraper modules to trigger self-registration
from . import (
    browser,  # noqa: F401
    static_page,  # noqa: F401
)
from .base import VersionScraper, get_scraper, register_scraper

__all__ = ["VersionScraper", "get_scraper", "register_scraper"]
