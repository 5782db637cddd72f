"""Tests for elector.core.push_service — payloads and per-subscription delivery."""

import json

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from elector.core.push_service import (
    PushNotificationService,
    PushPayload,
    build_multiple_reminders_payload,
    build_reminder_payload,
    reminders_due_body,
    reminders_due_title,
)
from elector.data.models import Reminder, ReminderType
from elector.ports.push_port import PushDeliveryError

NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def _reminder(description=None):
    return Reminder(
        id="r1",
        contact_id="c1",
        title="Call",
        description=description,
        due_date=NOW,
        reminder_type=ReminderType.ONE_TIME,
        created_at=NOW,
        updated_at=NOW,
    )


def _make_service(subscription_db, vapid, clock, sender=None):
    sender = sender or AsyncMock()
    return PushNotificationService(subscription_db, sender, vapid, icon="/icon.png", clock=clock), sender


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class TestPayloads:
    def test_reminder_payload(self):
        payload = json.loads(build_reminder_payload(_reminder("Ask about the trip"), "Alice", "/icon.png").to_json())
        assert payload["title"] == "Reminder: Call"
        assert payload["body"] == "For Alice - Ask about the trip"
        assert payload["tag"] == "reminder-r1"
        assert payload["url"] == "/contacts/c1"
        assert payload["requireInteraction"] is True
        assert [a["action"] for a in payload["actions"]] == ["view", "acknowledge"]
        assert payload["data"] == {"reminderId": "r1", "contactId": "c1", "url": "/contacts/c1"}

    def test_reminder_payload_without_description(self):
        payload = build_reminder_payload(_reminder(), "Alice", "/icon.png")
        assert payload.body == "For Alice"

    def test_multiple_payload(self):
        payload = json.loads(build_multiple_reminders_payload(3, "/icon.png").to_json())
        assert payload["title"] == "3 Reminders Due"
        assert payload["tag"] == "multiple-reminders"
        assert payload["data"]["count"] == 3

    def test_unset_fields_are_omitted(self):
        assert json.loads(PushPayload(title="Hi", body="There").to_json()) == {"title": "Hi", "body": "There"}

    @pytest.mark.parametrize("count,title", [(1, "1 Reminder Due"), (2, "2 Reminders Due")])
    def test_title_pluralization(self, count, title):
        assert reminders_due_title(count) == title

    def test_body_pluralization(self):
        assert reminders_due_body(1) == "You have 1 reminder that need your attention."
        assert reminders_due_body(4) == "You have 4 reminders that need your attention."


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class TestSendToUser:
    @pytest.mark.asyncio
    async def test_no_vapid(self, subscription_db, no_vapid, clock):
        service, sender = _make_service(subscription_db, no_vapid, clock)
        subscription_db.upsert("user-1", "https://push.example/a", "k", "a")

        result = await service.send_test_notification("user-1")

        assert result.errors == ["VAPID keys not configured"]
        sender.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_subscriptions(self, subscription_db, vapid, clock):
        service, _ = _make_service(subscription_db, vapid, clock)
        result = await service.send_test_notification("user-1")
        assert (result.success, result.failed) == (0, 0)
        assert result.errors == ["No active subscriptions found for user"]

    @pytest.mark.asyncio
    async def test_success_stamps_last_notification(self, subscription_db, vapid, clock, stored_subscription):
        service, sender = _make_service(subscription_db, vapid, clock)
        sub, _ = subscription_db.upsert("user-1", "https://push.example/a", "k", "a")

        result = await service.send_reminder_notification("user-1", _reminder(), "Alice")

        assert (result.success, result.failed) == (1, 0)
        sent_sub, body = sender.send.call_args.args
        assert sent_sub.endpoint == "https://push.example/a"
        assert json.loads(body)["title"] == "Reminder: Call"
        assert stored_subscription(sub.id).last_notification == clock.now

    @pytest.mark.asyncio
    async def test_gone_endpoint_is_deactivated(self, subscription_db, vapid, clock, stored_subscription):
        good, _ = subscription_db.upsert("user-1", "https://push.example/good", "k", "a")
        gone, _ = subscription_db.upsert("user-1", "https://push.example/gone", "k", "a")

        async def send(subscription, payload):
            if subscription.endpoint.endswith("gone"):
                raise PushDeliveryError("Gone", status_code=410)

        service, _ = _make_service(subscription_db, vapid, clock, AsyncMock(send=AsyncMock(side_effect=send)))

        result = await service.send_multiple_reminders_notification("user-1", 2)

        assert (result.success, result.failed) == (1, 1)
        assert result.errors == [f"Subscription {gone.id} marked as inactive"]
        assert stored_subscription(gone.id).is_active is False
        assert stored_subscription(good.id).is_active is True
        assert stored_subscription(good.id).last_notification == clock.now
        assert subscription_db.notified_since("user-1", clock.now - timedelta(minutes=60)) is True

    @pytest.mark.asyncio
    async def test_not_found_endpoint_is_deactivated(self, subscription_db, vapid, clock, stored_subscription):
        sub, _ = subscription_db.upsert("user-1", "https://push.example/a", "k", "a")
        sender = AsyncMock()
        sender.send.side_effect = PushDeliveryError("Not Found", status_code=404)
        service, _ = _make_service(subscription_db, vapid, clock, sender)

        await service.send_test_notification("user-1")

        assert stored_subscription(sub.id).is_active is False

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_subscription(self, subscription_db, vapid, clock, stored_subscription):
        sub, _ = subscription_db.upsert("user-1", "https://push.example/a", "k", "a")
        sender = AsyncMock()
        sender.send.side_effect = PushDeliveryError("Server error", status_code=500)
        service, _ = _make_service(subscription_db, vapid, clock, sender)

        result = await service.send_test_notification("user-1")

        assert (result.success, result.failed) == (0, 1)
        assert result.errors[0].startswith(f"Failed to send to {sub.id}")
        stored = stored_subscription(sub.id)
        assert stored.is_active is True
        assert stored.last_notification is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self, subscription_db, vapid, clock):
        subscription_db.upsert("user-1", "https://push.example/a", "k", "a")
        sender = AsyncMock()
        sender.send.side_effect = ConnectionError("timed out")
        service, _ = _make_service(subscription_db, vapid, clock, sender)

        result = await service.send_test_notification("user-1")

        assert result.failed == 1
        assert "timed out" in result.errors[0]


class TestCleanup:
    def test_removes_subscriptions_inactive_for_30_days(self, subscription_db, vapid, clock, stored_subscription):
        service, _ = _make_service(subscription_db, vapid, clock)
        sub, _ = subscription_db.upsert("user-1", "https://push.example/a", "k", "a")
        subscription_db.deactivate_by_id(sub.id)

        assert service.cleanup_inactive_subscriptions(clock.now + timedelta(days=29)) == 0
        assert service.cleanup_inactive_subscriptions(clock.now + timedelta(days=31)) == 1
        assert stored_subscription(sub.id) is None
