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

"""Discord webhook delivery for apkwatch.

Each notification is two webhook posts:

1. A plain message mentioning the configured user (``<@USER_ID>``) so the
   notification pings them. Skipped when no user is configured.
2. An embed carrying the title, body and fields.

Delivery never raises. Any HTTP or transport failure is logged and reported
by returning False; the pipeline records it as a degraded step.

Example:
    Send a message:

        from apkwatch.notify import DiscordNotifier

        notifier = DiscordNotifier(webhook_url, mention_user_id="1234")
        ok = notifier.send("PGSharp Update", "New APK version available", [])

"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import requests

from apkwatch.logging import Logger, get_global_logger

from .formatter import NotificationField

EMBED_COLOR = 0x00FF00

# Discord embed limits
MAX_DESCRIPTION = 4096
MAX_FIELD_VALUE = 1024
MAX_FIELDS = 25


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class DiscordNotifier:
    """Notifier posting to a Discord webhook.

    Args:
        webhook_url: Full webhook URL.
        mention_user_id: Discord user ID to ping, or None.
        color: Embed color as an integer.
        session: Optional requests session to reuse.
        timeout: Per-request timeout (seconds).
        logger: Optional logger. Defaults to the global logger.

    """

    def __init__(
        self,
        webhook_url: str,
        *,
        mention_user_id: str | None = None,
        color: int = EMBED_COLOR,
        session: requests.Session | None = None,
        timeout: int = 30,
        logger: Logger | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.mention_user_id = mention_user_id
        self.color = color
        self.session = session
        self.timeout = timeout
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def build_embed(
        self, title: str, body: str, fields: Sequence[NotificationField]
    ) -> dict[str, Any]:
        """Return the embed payload for one notification."""
        return {
            "title": title,
            "description": _clip(body, MAX_DESCRIPTION),
            "color": self.color,
            "fields": [
                {
                    "name": f.name,
                    "value": _clip(f.value, MAX_FIELD_VALUE),
                    "inline": f.inline,
                }
                for f in list(fields)[:MAX_FIELDS]
            ],
        }

    def _post(self, payload: dict[str, Any]) -> None:
        post = self.session.post if self.session is not None else requests.post
        resp = post(self.webhook_url, json=payload, timeout=self.timeout)
        resp.raise_for_status()

    def send(
        self, title: str, body: str, fields: Sequence[NotificationField] = ()
    ) -> bool:
        """Deliver a notification.

        Returns:
            True if every post was accepted, False otherwise. Never raises.
        """
        logger = self.logger
        try:
            if self.mention_user_id:
                self._post({"content": f"<@{self.mention_user_id}>"})
            self._post({"embeds": [self.build_embed(title, body, fields)]})
        except requests.RequestException as err:
            logger.error("NOTIFY", f"Error sending Discord message: {err}")
            return False

        logger.verbose("NOTIFY", f"Discord message sent: {title}")
        return True
