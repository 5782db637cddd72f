"""
Elector — Push Subscription Database.

Browser push endpoints registered by signed-in users. (user_id, endpoint)
is unique: subscribing the same endpoint again updates the row in place.
Dead endpoints are deactivated rather than deleted, and a sweep removes
rows that have been inactive for a while.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from elector.data.models import PushSubscription
from elector.data.remote_store import from_db_time, to_db_time

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PushSubscriptionDB:
    """SQLite-backed storage for web push subscriptions."""

    def __init__(
        self,
        db_path: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if db_path is None:
            from elector.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        self._clock = clock
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS push_subscriptions (
                    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id            TEXT    NOT NULL,
                    endpoint           TEXT    NOT NULL,
                    p256dh_key         TEXT    NOT NULL,
                    auth_key           TEXT    NOT NULL,
                    user_agent         TEXT,
                    is_active          INTEGER NOT NULL DEFAULT 1,
                    last_notification  TEXT,
                    created_at         TEXT    NOT NULL,
                    updated_at         TEXT    NOT NULL,
                    UNIQUE (user_id, endpoint)
                )
            """)
        logger.debug("Push subscriptions table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> PushSubscription:
        return PushSubscription(
            id=row["id"],
            user_id=row["user_id"],
            endpoint=row["endpoint"],
            p256dh_key=row["p256dh_key"],
            auth_key=row["auth_key"],
            user_agent=row["user_agent"],
            is_active=bool(row["is_active"]),
            last_notification=from_db_time(row["last_notification"]),
            created_at=from_db_time(row["created_at"]),
            updated_at=from_db_time(row["updated_at"]),
        )

    def upsert(
        self,
        user_id: str,
        endpoint: str,
        p256dh_key: str,
        auth_key: str,
        user_agent: str | None = None,
    ) -> tuple[PushSubscription, bool]:
        """Create or reactivate a subscription. Returns (subscription, created)."""
        now = to_db_time(self._clock())
        with self._connect() as conn:
            # The insert either wins the unique key or leaves the row to the update
            cursor = conn.execute(
                """
                INSERT INTO push_subscriptions
                    (user_id, endpoint, p256dh_key, auth_key, user_agent,
                     is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT (user_id, endpoint) DO NOTHING
                """,
                (user_id, endpoint, p256dh_key, auth_key, user_agent, now, now),
            )
            created = cursor.rowcount == 1
            if not created:
                conn.execute(
                    """
                    UPDATE push_subscriptions
                    SET p256dh_key = ?, auth_key = ?, user_agent = ?,
                        is_active = 1, updated_at = ?
                    WHERE user_id = ? AND endpoint = ?
                    """,
                    (p256dh_key, auth_key, user_agent, now, user_id, endpoint),
                )
            row = conn.execute(
                "SELECT * FROM push_subscriptions WHERE user_id = ? AND endpoint = ?",
                (user_id, endpoint),
            ).fetchone()

        logger.info(
            "Push subscription %s for user %s (#%d)",
            "created" if created else "updated", user_id, row["id"],
        )
        return self._row_to_subscription(row), created

    def deactivate(self, user_id: str, endpoint: str) -> int:
        """Mark a user's endpoint inactive. Returns the number of rows changed."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE push_subscriptions SET is_active = 0, updated_at = ?
                WHERE user_id = ? AND endpoint = ?
                """,
                (to_db_time(self._clock()), user_id, endpoint),
            )
        if cursor.rowcount:
            logger.info("Push subscription deactivated for user %s", user_id)
        return cursor.rowcount

    def deactivate_by_id(self, subscription_id: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE push_subscriptions SET is_active = 0, updated_at = ? WHERE id = ?",
                (to_db_time(self._clock()), subscription_id),
            )
        logger.info("Push subscription #%d marked inactive", subscription_id)

    def list_active(self, user_id: str) -> list[PushSubscription]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM push_subscriptions
                WHERE user_id = ? AND is_active = 1
                ORDER BY id
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_subscription(r) for r in rows]

    def users_with_active_subscriptions(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT user_id FROM push_subscriptions
                WHERE is_active = 1 ORDER BY user_id
                """
            ).fetchall()
        return [r["user_id"] for r in rows]

    def mark_notified(self, subscription_id: int, at: datetime | None = None) -> None:
        at_text = to_db_time(at or self._clock())
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE push_subscriptions SET last_notification = ?, updated_at = ?
                WHERE id = ?
                """,
                (at_text, at_text, subscription_id),
            )

    def notified_since(self, user_id: str, since: datetime) -> bool:
        """True if any of the user's active subscriptions was notified after `since`."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM push_subscriptions
                WHERE user_id = ? AND is_active = 1 AND last_notification >= ?
                LIMIT 1
                """,
                (user_id, to_db_time(since)),
            ).fetchone()
        return row is not None

    def delete_inactive_before(self, cutoff: datetime) -> int:
        """Permanently delete subscriptions inactive since before `cutoff`."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM push_subscriptions WHERE is_active = 0 AND updated_at < ?",
                (to_db_time(cutoff),),
            )
        if cursor.rowcount:
            logger.info("Deleted %d inactive push subscriptions", cursor.rowcount)
        return cursor.rowcount
