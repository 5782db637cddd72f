"""Notification port — abstract interface for showing a local notification.

The client-side reminder poller depends on this protocol, never on a
specific notification surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class LocalNotification:
    title: str
    body: str
    tag: str
    url: str = "/"
    require_interaction: bool = True


class NotificationPort(Protocol):
    """Abstract local notification surface used by NotificationService."""

    async def request_permission(self) -> bool: ...

    async def show(self, notification: LocalNotification) -> None: ...
