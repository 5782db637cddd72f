"""Log notification adapter — implements NotificationPort.

Writes local notifications to the log. Used when no desktop notification
surface is attached.
"""

from __future__ import annotations

import logging

from elector.ports.notification_port import LocalNotification

logger = logging.getLogger(__name__)


class LogNotifier:
    """Logging implementation of NotificationPort."""

    async def request_permission(self) -> bool:
        return True

    async def show(self, notification: LocalNotification) -> None:
        logger.info("%s — %s (%s)", notification.title, notification.body, notification.url)
