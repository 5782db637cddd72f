"""
Elector — Client-side Reminder Notifications.

Polls the caller's own due reminders and shows a local notification, for
users who haven't granted server push. One due reminder gets its own
notification; several get a single aggregate one.

This path is independent of the server dispatch: both may notify about the
same reminder.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from elector.core.push_service import reminder_body, reminders_due_body, reminders_due_title
from elector.data.models import Reminder
from elector.ports.notification_port import LocalNotification, NotificationPort

logger = logging.getLogger(__name__)

DueRemindersGetter = Callable[[], list[Reminder]]
ContactNameGetter = Callable[[str], "str | None"]


class NotificationService:
    """Periodic local notifications for due reminders."""

    def __init__(
        self,
        notifier: NotificationPort,
        interval_minutes: float = 15,
        initial_delay_seconds: float = 5,
    ) -> None:
        self._notifier = notifier
        self._interval_minutes = interval_minutes
        self._initial_delay = initial_delay_seconds
        self._permission_granted = False

    async def request_permission(self) -> bool:
        try:
            self._permission_granted = await self._notifier.request_permission()
        except Exception as exc:
            logger.error("Error requesting notification permission: %s", exc)
            self._permission_granted = False
        return self._permission_granted

    def can_show_notifications(self) -> bool:
        return self._permission_granted

    async def show_reminder_notification(self, reminder: Reminder, contact_name: str) -> None:
        if not self.can_show_notifications():
            logger.info("Notifications not available or not permitted")
            return
        await self._notifier.show(LocalNotification(
            title=f"Reminder: {reminder.title}",
            body=reminder_body(reminder, contact_name),
            tag=f"reminder-{reminder.id}",
            url=f"/contacts/{reminder.contact_id}",
        ))

    async def show_multiple_reminders_notification(self, reminder_count: int) -> None:
        if not self.can_show_notifications():
            return
        await self._notifier.show(LocalNotification(
            title=reminders_due_title(reminder_count),
            body=reminders_due_body(reminder_count),
            tag="multiple-reminders",
        ))

    async def check_and_notify_due_reminders(
        self,
        get_due_reminders: DueRemindersGetter,
        get_contact_name: ContactNameGetter,
    ) -> None:
        """Fetch due reminders once and notify. Errors are logged, not raised."""
        if not self.can_show_notifications():
            return

        try:
            # Storage calls may hit the database; keep them off the loop
            due = await asyncio.to_thread(get_due_reminders)
            if not due:
                return

            if len(due) == 1:
                reminder = due[0]
                name = await asyncio.to_thread(get_contact_name, reminder.contact_id)
                await self.show_reminder_notification(reminder, name or "Unknown Contact")
            else:
                await self.show_multiple_reminders_notification(len(due))
        except Exception as exc:
            logger.error("Error checking due reminders: %s", exc)

    def start_periodic_check(
        self,
        get_due_reminders: DueRemindersGetter,
        get_contact_name: ContactNameGetter,
    ) -> Callable[[], None]:
        """Check shortly after start, then every interval.

        Returns a cleanup callable that cancels future checks.
        """

        async def _runner() -> None:
            await asyncio.sleep(self._initial_delay)
            while True:
                await self.check_and_notify_due_reminders(get_due_reminders, get_contact_name)
                await asyncio.sleep(self._interval_minutes * 60)

        task = asyncio.create_task(_runner(), name="reminder-notifications")
        return task.cancel
