"""Tests for elector.api — HTTP endpoints through FastAPI's TestClient."""

import secrets
import time

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from elector.api.app import create_app
from elector.api.deps import get_current_user_id
from elector.config import Settings
from elector.core.notification_service import NotificationService
from elector.core.storage_manager import StorageManager
from elector.data.models import NewReminder
from elector.data.remote_store import RemoteStore

SUBSCRIPTION = {
    "subscription": {
        "endpoint": "https://push.example/abc",
        "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
    },
    "userAgent": "Firefox",
}
USER = {"X-User-Id": "user-1"}


def _settings(tmp_path, **overrides):
    values = {
        "DATABASE_PATH": str(tmp_path / "api.db"),
        "LOCAL_DATA_PATH": str(tmp_path / "local.json"),
        "VAPID_PUBLIC_KEY": "public-key",
        "VAPID_PRIVATE_KEY": "private-key",
        "CRON_SECRET": "s3cret",
        "SCHEDULER_START_DELAY_SECONDS": 3600,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sender():
    return AsyncMock()


@pytest.fixture
def app(tmp_path, sender, clock):
    return create_app(_settings(tmp_path), sender=sender, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestPushSubscribe:
    def test_public_key(self, client):
        assert client.get("/api/push/subscribe").json() == {"publicKey": "public-key"}

    def test_requires_user(self, client):
        assert client.post("/api/push/subscribe", json=SUBSCRIPTION).status_code == 401

    def test_create_then_update(self, client, app):
        first = client.post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)
        second = client.post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)

        assert first.status_code == 200
        assert first.json()["message"] == "Subscription created"
        assert second.json()["message"] == "Subscription updated"
        assert first.json()["subscriptionId"] == second.json()["subscriptionId"]

        stored = app.state.subscriptions.list_active("user-1")
        assert [s.user_agent for s in stored] == ["Firefox"]

    def test_missing_keys_rejected(self, client):
        body = {"subscription": {"endpoint": "https://push.example/abc"}}
        assert client.post("/api/push/subscribe", json=body, headers=USER).status_code == 422

    def test_empty_key_rejected(self, client):
        body = {
            "subscription": {
                "endpoint": "https://push.example/abc",
                "keys": {"p256dh": "", "auth": "auth-key"},
            },
        }
        assert client.post("/api/push/subscribe", json=body, headers=USER).status_code == 422

    def test_unconfigured_vapid(self, tmp_path, sender):
        app = create_app(
            _settings(tmp_path, VAPID_PUBLIC_KEY="", VAPID_PRIVATE_KEY=""), sender=sender,
        )
        response = TestClient(app).post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)
        assert response.status_code == 500

    def test_unsubscribe(self, client, app):
        client.post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)

        response = client.request(
            "DELETE", "/api/push/subscribe",
            json={"endpoint": "https://push.example/abc"}, headers=USER,
        )

        assert response.status_code == 200
        assert response.json()["updated"] == 1
        assert app.state.subscriptions.list_active("user-1") == []

    def test_principal_override(self, client, app):
        app.dependency_overrides[get_current_user_id] = lambda: "session-user"
        client.post("/api/push/subscribe", json=SUBSCRIPTION)
        assert app.state.subscriptions.users_with_active_subscriptions() == ["session-user"]


class TestCheckReminders:
    def test_requires_cron_secret(self, client):
        assert client.post("/api/notifications/check-reminders").status_code == 401
        response = client.post(
            "/api/notifications/check-reminders", headers={"Authorization": "Bearer wrong"},
        )
        assert response.status_code == 401

    def test_secret_compared_in_constant_time(self, client):
        with patch("elector.api.deps.secrets.compare_digest", wraps=secrets.compare_digest) as compare:
            response = client.post(
                "/api/notifications/check-reminders", headers={"Authorization": "Bearer s3cret"},
            )
        assert response.status_code == 200
        compare.assert_called_once_with(b"Bearer s3cret", b"Bearer s3cret")

    def test_open_without_secret(self, tmp_path, sender):
        app = create_app(_settings(tmp_path, CRON_SECRET=""), sender=sender)
        assert TestClient(app).post("/api/notifications/check-reminders").status_code == 200

    def test_runs_dispatch(self, client, tmp_path, sender, clock):
        client.post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)
        store = RemoteStore("user-1", db_path=str(tmp_path / "api.db"), clock=clock)
        contact = store.add_contact("Alice")
        store.add_reminder(NewReminder(contact_id=contact.id, title="Call", due_date=clock.now))

        response = client.post(
            "/api/notifications/check-reminders", headers={"Authorization": "Bearer s3cret"},
        )

        assert response.status_code == 200
        assert response.json()["results"] == {"users_checked": 1, "reminders_sent": 1, "errors": []}
        sender.send.assert_awaited_once()

    def test_get_describes_endpoint(self, client):
        response = client.get("/api/notifications/check-reminders")
        assert response.json()["endpoint"] == "/api/notifications/check-reminders"


class TestStatus:
    def test_status(self, client):
        body = client.get("/api/notifications/status").json()
        assert body["scheduler"] == {"is_running": False, "check_interval_minutes": 15}
        assert body["message"] == "Reminder scheduler is not running"

    def test_manual_trigger(self, client, app):
        app.state.scheduler = MagicMock()
        response = client.post("/api/notifications/status")
        assert response.json()["message"] == "Manual reminder check triggered"
        app.state.scheduler.trigger_check.assert_called_once()


class TestTestNotification:
    def test_requires_user(self, client):
        assert client.post("/api/notifications/test").status_code == 401

    def test_without_subscription(self, client):
        response = client.post("/api/notifications/test", headers=USER)
        assert response.status_code == 400
        assert response.json()["details"]["errors"] == ["No active subscriptions found for user"]

    def test_sends(self, client, sender):
        client.post("/api/push/subscribe", json=SUBSCRIPTION, headers=USER)
        response = client.post("/api/notifications/test", headers=USER)
        assert response.status_code == 200
        assert response.json()["details"]["sent"] == 1
        sender.send.assert_awaited_once()


class TestLifespan:
    def test_scheduler_stopped_on_shutdown(self, tmp_path, sender):
        app = create_app(_settings(tmp_path, SCHEDULER_START_DELAY_SECONDS=0), sender=sender)
        with TestClient(app) as client:
            client.get("/health")
        assert app.state.scheduler.is_running is False


class TestComposition:
    def test_storage_manager_routes_by_auth_state(self, app, tmp_path, clock):
        storage = app.state.storage
        assert isinstance(storage, StorageManager)
        assert storage.is_authenticated is False

        local = storage.add_contact("Alice")
        assert (tmp_path / "local.json").exists()

        storage.set_auth_status("user-1")
        remote = storage.add_contact("Bob")

        store = RemoteStore("user-1", db_path=str(tmp_path / "api.db"), clock=clock)
        assert store.get_contact(remote.id).name == "Bob"
        assert store.get_contact(local.id) is None

    def test_local_poller_runs_for_app_lifetime(self, tmp_path, sender, clock):
        notifier = AsyncMock()
        notifier.request_permission.return_value = True
        app = create_app(
            _settings(tmp_path, SCHEDULER_START_DELAY_SECONDS=0),
            sender=sender, notifier=notifier, clock=clock,
        )
        assert isinstance(app.state.notifications, NotificationService)
        contact = app.state.storage.add_contact("Alice")
        app.state.storage.add_reminder(
            NewReminder(contact_id=contact.id, title="Call", due_date=clock.now)
        )

        with TestClient(app):
            for _ in range(200):
                if notifier.show.await_count:
                    break
                time.sleep(0.01)

        [notification] = notifier.show.await_args.args
        assert notification.title == "Reminder: Call"
        assert app.state.notifications.can_show_notifications() is True

    def test_poller_not_started_without_permission(self, tmp_path, sender):
        notifier = AsyncMock()
        notifier.request_permission.return_value = False
        app = create_app(_settings(tmp_path), sender=sender, notifier=notifier)

        with TestClient(app) as client:
            client.get("/health")

        assert app.state.notifications.can_show_notifications() is False
        notifier.show.assert_not_awaited()
