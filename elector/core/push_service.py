"""
Elector — Push Notification Service.

Builds reminder payloads and fans them out to every active subscription of
a user. Each subscription is delivered independently:

- success: last_notification is stamped
- 404/410 from the push service: the endpoint is gone, so the subscription
  is deactivated and not retried
- anything else: recorded as an error, the subscription stays active and
  gets another try on the next run
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from elector.core.vapid import VapidConfig, validate_vapid_config
from elector.ports.push_port import PushDeliveryError

if TYPE_CHECKING:
    from elector.data.db import PushSubscriptionDB
    from elector.data.models import PushSubscription, Reminder
    from elector.ports.push_port import PushSender

logger = logging.getLogger(__name__)

INACTIVE_RETENTION_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class PushAction(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: str
    title: str
    icon: str | None = None


class PushPayload(BaseModel):
    """What the service worker receives. Serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    body: str
    icon: str | None = None
    badge: str | None = None
    url: str | None = None
    tag: str | None = None
    require_interaction: bool | None = None
    actions: list[PushAction] | None = None
    data: dict[str, Any] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def reminders_due_title(count: int) -> str:
    return f"{count} Reminder{'s' if count != 1 else ''} Due"


def reminders_due_body(count: int) -> str:
    return f"You have {count} reminder{'s' if count != 1 else ''} that need your attention."


def reminder_body(reminder: Reminder, contact_name: str) -> str:
    if reminder.description:
        return f"For {contact_name} - {reminder.description}"
    return f"For {contact_name}"


def build_reminder_payload(reminder: Reminder, contact_name: str, icon: str) -> PushPayload:
    url = f"/contacts/{reminder.contact_id}"
    return PushPayload(
        title=f"Reminder: {reminder.title}",
        body=reminder_body(reminder, contact_name),
        icon=icon,
        badge=icon,
        url=url,
        tag=f"reminder-{reminder.id}",
        require_interaction=True,
        actions=[
            PushAction(action="view", title="View Contact", icon=icon),
            PushAction(action="acknowledge", title="Mark Complete"),
        ],
        data={"reminderId": reminder.id, "contactId": reminder.contact_id, "url": url},
    )


def build_multiple_reminders_payload(count: int, icon: str) -> PushPayload:
    return PushPayload(
        title=reminders_due_title(count),
        body=reminders_due_body(count),
        icon=icon,
        badge=icon,
        url="/",
        tag="multiple-reminders",
        require_interaction=True,
        actions=[PushAction(action="view", title="View Reminders", icon=icon)],
        data={"type": "multiple-reminders", "count": count, "url": "/"},
    )


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


@dataclass
class NotificationResult:
    """Per-user delivery outcome across all of the user's subscriptions."""

    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class PushNotificationService:
    """Delivers push payloads to a user's active subscriptions."""

    def __init__(
        self,
        subscriptions: PushSubscriptionDB,
        sender: PushSender,
        vapid: VapidConfig,
        icon: str = "/icon-256.png",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._subscriptions = subscriptions
        self._sender = sender
        self._vapid = vapid
        self._icon = icon
        self._clock = clock

    async def _deliver(
        self,
        subscription: PushSubscription,
        body: str,
        result: NotificationResult,
    ) -> None:
        try:
            await self._sender.send(subscription, body)
            self._subscriptions.mark_notified(subscription.id, self._clock())
            result.success += 1
        except PushDeliveryError as exc:
            result.failed += 1
            if exc.endpoint_gone:
                self._subscriptions.deactivate_by_id(subscription.id)
                result.errors.append(f"Subscription {subscription.id} marked as inactive")
            else:
                logger.warning(
                    "Push to subscription #%d failed (status %s): %s",
                    subscription.id, exc.status_code, exc,
                )
                result.errors.append(f"Failed to send to {subscription.id}: {exc}")
        except Exception as exc:
            result.failed += 1
            logger.error("Push to subscription #%d failed: %s", subscription.id, exc)
            result.errors.append(f"Failed to send to {subscription.id}: {exc}")

    async def send_to_user(self, user_id: str, payload: PushPayload) -> NotificationResult:
        """Send one payload to every active subscription of a user."""
        result = NotificationResult()

        if not validate_vapid_config(self._vapid):
            result.errors.append("VAPID keys not configured")
            return result

        try:
            subscriptions = self._subscriptions.list_active(user_id)
        except Exception as exc:
            logger.error("Could not load subscriptions for user %s: %s", user_id, exc)
            result.errors.append(f"Database error: {exc}")
            return result

        if not subscriptions:
            result.errors.append("No active subscriptions found for user")
            return result

        body = payload.to_json()
        await asyncio.gather(*(self._deliver(s, body, result) for s in subscriptions))
        return result

    async def send_reminder_notification(
        self, user_id: str, reminder: Reminder, contact_name: str,
    ) -> NotificationResult:
        payload = build_reminder_payload(reminder, contact_name, self._icon)
        return await self.send_to_user(user_id, payload)

    async def send_multiple_reminders_notification(
        self, user_id: str, reminder_count: int,
    ) -> NotificationResult:
        payload = build_multiple_reminders_payload(reminder_count, self._icon)
        return await self.send_to_user(user_id, payload)

    async def send_test_notification(self, user_id: str) -> NotificationResult:
        payload = PushPayload(
            title="Elector Test Notification",
            body="Push notifications are working correctly!",
            icon=self._icon,
            badge=self._icon,
            url="/",
            tag="test-notification",
        )
        return await self.send_to_user(user_id, payload)

    def cleanup_inactive_subscriptions(self, now: datetime | None = None) -> int:
        """Delete subscriptions that have been inactive for 30 days."""
        now = now or self._clock()
        return self._subscriptions.delete_inactive_before(
            now - timedelta(days=INACTIVE_RETENTION_DAYS)
        )
