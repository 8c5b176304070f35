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

"""Version scraper protocol and registry for apkwatch.

This module defines the foundational components for reading the version text
from the vendor's download page:

- VersionScraper protocol: Interface that all scrapers must implement
- Scraper registry: Global dict mapping scraper names to implementations
- Registration and lookup functions: register_scraper() and get_scraper()

Available scrapers:

- browser: Renders the page in headless Chromium (Playwright) and waits for
    the selector. Needed when the version is injected by JavaScript.
- static: Fetches the HTML with requests and evaluates the selector with
    BeautifulSoup. Faster, but only sees server-rendered markup.

Design Philosophy:
    - Scrapers are Protocol classes (structural subtyping, not inheritance)
    - Registration happens at module import time (scrapers self-register)
    - Scrapers never raise to the caller: any failure is logged and reported
      as None, which the pipeline treats as a scrape failure

Example:
    Implementing a custom scraper:
        ```python
        from apkwatch.discovery.base import register_scraper

        class FixedScraper:
            def fetch_version_text(self, page_url, selector, timeout_ms):
                return "1.0.6"

        register_scraper("fixed", FixedScraper)
        ```

"""

from __future__ import annotations

from typing import Any, Protocol

from apkwatch.exceptions import ConfigError

# -------------------------------
# Scraper Protocol
# -------------------------------


class VersionScraper(Protocol):
    """Protocol for page version scrapers."""

    def fetch_version_text(
        self, page_url: str, selector: str, timeout_ms: int
    ) -> str | None:
        """Read the version text from a page.

        Args:
            page_url: Page to load.
            selector: CSS selector of the element holding the version.
            timeout_ms: Upper bound on waiting for the element.

        Returns:
            The element's text with surrounding whitespace removed, or None
            on navigation failure, selector not found, or empty text. Never
            raises.

        """
        ...


# -------------------------------
# Scraper Registry
# -------------------------------

_SCRAPER_REGISTRY: dict[str, type[VersionScraper]] = {}


def register_scraper(name: str, scraper_class: type[VersionScraper]) -> None:
    """Register a scraper by name in the global registry.

    Registering the same name twice overwrites the previous registration
    (allows monkey-patching for tests).

    Args:
        name: Scraper name used in settings under source.scraper.
        scraper_class: The scraper class to register.

    """
    _SCRAPER_REGISTRY[name] = scraper_class


def get_scraper(name: str, **options: Any) -> VersionScraper:
    """Instantiate a registered scraper.

    Args:
        name: Scraper name (e.g., "browser"). Case-sensitive.
        **options: Keyword arguments passed to the scraper's constructor.

    Returns:
        A new scraper instance.

    Raises:
        ConfigError: If the name is not registered. The message lists the
            available scrapers.

    """
    if name not in _SCRAPER_REGISTRY:
        available = ", ".join(_SCRAPER_REGISTRY.keys())
        raise ConfigError(
            f"Unknown scraper: {name!r}. Available: {available or '(none)'}"
        )
    return _SCRAPER_REGISTRY[name](**options)
