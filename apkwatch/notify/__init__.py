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

"""Notifications for apkwatch.

Modules:

formatter : module
    Pure builders for the unchanged, updated and failure messages.
discord : module
    Discord webhook notifier.

Public API:

Notifier : protocol
    Anything with ``send(title, body, fields) -> bool``.
Notification, NotificationField : dataclasses
    Channel-independent message content.
DiscordNotifier : class
    Posts a mention and an embed to a Discord webhook.

"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .discord import DiscordNotifier
from .formatter import (
    Notification,
    NotificationField,
    format_failure,
    format_timestamp,
    format_unchanged,
    format_updated,
)


class Notifier(Protocol):
    """Protocol for notification channels."""

    def send(
        self, title: str, body: str, fields: Sequence[NotificationField] = ()
    ) -> bool:
        """Deliver a message. Returns False on failure; never raises."""
        ...


__all__ = [
    "DiscordNotifier",
    "Notification",
    "NotificationField",
    "Notifier",
    "format_failure",
    "format_timestamp",
    "format_unchanged",
    "format_updated",
]
