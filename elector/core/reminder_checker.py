"""
Elector — Reminder Checker.

One dispatch pass over every user with an active push subscription:

1. load the user's pending reminders due at or before now
2. skip the user if any active subscription was notified in the last
   60 minutes (a coarse per-user guard, not per reminder: a reminder that
   becomes due just after a notification waits for the window to pass)
3. one due reminder -> a single-reminder push; several -> one aggregate
   "N Reminders Due" push
4. sweep subscriptions that have been inactive for 30 days

Failures are collected per user and returned; nothing here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable

from elector.core.vapid import VapidConfig, validate_vapid_config

if TYPE_CHECKING:
    from elector.core.push_service import NotificationResult, PushNotificationService
    from elector.data.db import PushSubscriptionDB
    from elector.data.remote_store import RemoteStore

logger = logging.getLogger(__name__)

RENOTIFY_WINDOW_MINUTES = 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReminderCheckResult:
    users_checked: int = 0
    reminders_sent: int = 0
    errors: list[str] = field(default_factory=list)


class ReminderChecker:
    """Finds due reminders for subscribed users and pushes notifications."""

    def __init__(
        self,
        subscriptions: PushSubscriptionDB,
        remote_store_factory: Callable[[str], RemoteStore],
        push_service: PushNotificationService,
        vapid: VapidConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._subscriptions = subscriptions
        self._store_for = remote_store_factory
        self._push = push_service
        self._vapid = vapid
        self._clock = clock

    async def check_and_send_reminders(
        self, now: datetime | None = None,
    ) -> ReminderCheckResult:
        result = ReminderCheckResult()

        if not validate_vapid_config(self._vapid):
            result.errors.append("VAPID keys not configured")
            return result

        now = now or self._clock()
        logger.info("Checking for due reminders...")

        try:
            user_ids = self._subscriptions.users_with_active_subscriptions()
        except Exception as exc:
            logger.error("Error in reminder check: %s", exc)
            result.errors.append(f"Database error: {exc}")
            return result

        logger.info("Found %d users with active subscriptions", len(user_ids))

        for user_id in user_ids:
            result.users_checked += 1
            try:
                await self._check_user(user_id, now, result)
            except Exception as exc:
                logger.error("Error processing user %s: %s", user_id, exc)
                result.errors.append(f"Error processing user {user_id}: {exc}")

        try:
            cleaned = self._push.cleanup_inactive_subscriptions(now)
            if cleaned:
                logger.info("Cleaned up %d inactive subscriptions", cleaned)
        except Exception as exc:
            logger.error("Error cleaning up subscriptions: %s", exc)

        if result.reminders_sent or result.errors:
            logger.info(
                "Reminder check completed: users=%d sent=%d errors=%d",
                result.users_checked, result.reminders_sent, len(result.errors),
            )
        return result

    async def _check_user(
        self, user_id: str, now: datetime, result: ReminderCheckResult,
    ) -> None:
        store = self._store_for(user_id)
        due = store.list_due_reminders(now)
        if not due:
            return

        logger.info("User %s has %d due reminders", user_id, len(due))

        since = now - timedelta(minutes=RENOTIFY_WINDOW_MINUTES)
        if self._subscriptions.notified_since(user_id, since):
            logger.info("Skipping notifications for user %s - recently sent", user_id)
            return

        if len(due) == 1:
            reminder = due[0]
            contact = store.get_contact(reminder.contact_id)
            contact_name = contact.name if contact else "Unknown Contact"
            outcome = await self._push.send_reminder_notification(
                user_id, reminder, contact_name,
            )
        else:
            outcome = await self._push.send_multiple_reminders_notification(
                user_id, len(due),
            )

        self._record(user_id, len(due), outcome, result)

    @staticmethod
    def _record(
        user_id: str,
        due_count: int,
        outcome: NotificationResult,
        result: ReminderCheckResult,
    ) -> None:
        if outcome.success > 0:
            result.reminders_sent += 1
            logger.info(
                "Sent reminder notification to %s (%d reminders, %d/%d subscriptions)",
                user_id, due_count, outcome.success, outcome.success + outcome.failed,
            )
        else:
            result.errors.append(
                f"Failed to send notification to {user_id}: {', '.join(outcome.errors)}"
            )
