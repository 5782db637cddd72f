"""Shared test fixtures and configuration.

Sets up environment defaults so elector.config loads predictably, and
provides temp-file stores driven by a controllable clock.
"""

import os
import tempfile

# Patch env vars BEFORE any elector imports
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.gettempdir(), "elector-test.db"))
os.environ.setdefault("LOCAL_DATA_PATH", os.path.join(tempfile.gettempdir(), "elector-test.json"))
os.environ.setdefault("VAPID_PUBLIC_KEY", "")
os.environ.setdefault("VAPID_PRIVATE_KEY", "")
os.environ.setdefault("CRON_SECRET", "")

import pytest
from datetime import datetime, timedelta, timezone

NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_elector.db")


@pytest.fixture
def local_store(tmp_path, clock):
    """Return a LocalStore backed by a temp JSON file."""
    from elector.data.local_store import LocalStore
    return LocalStore(path=str(tmp_path / "local.json"), clock=clock)


@pytest.fixture
def remote_store_factory(db_path, clock):
    """Return a factory building owner-scoped RemoteStores on one temp DB."""
    from elector.data.remote_store import RemoteStore
    return lambda owner_id: RemoteStore(owner_id, db_path=db_path, clock=clock)


@pytest.fixture
def remote_store(remote_store_factory):
    return remote_store_factory("user-1")


@pytest.fixture
def subscription_db(db_path, clock):
    """Return a PushSubscriptionDB backed by a temp file."""
    from elector.data.db import PushSubscriptionDB
    return PushSubscriptionDB(db_path=db_path, clock=clock)


@pytest.fixture
def vapid():
    from elector.core.vapid import VapidConfig
    return VapidConfig("test-public-key", "test-private-key", "mailto:test@example.com")


@pytest.fixture
def no_vapid():
    from elector.core.vapid import VapidConfig
    return VapidConfig("", "")


@pytest.fixture
def stored_subscription(db_path):
    """Return a lookup reading one push_subscriptions row straight from the DB."""
    import sqlite3
    from elector.data.db import PushSubscriptionDB

    def lookup(subscription_id):
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        try:
            row = conn.execute(
                "SELECT * FROM push_subscriptions WHERE id = ?", (subscription_id,),
            ).fetchone()
        finally:
            conn.close()
        return PushSubscriptionDB._row_to_subscription(row) if row else None

    return lookup
