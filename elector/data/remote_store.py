"""
Elector — Remote Store.

Server-side storage used while signed in. Every instance is bound to one
owner; reads are scoped to that owner's contacts and every write first
checks ownership through the contact chain. Unknown and foreign ids raise
the same NotFoundError so callers can't discover other users' data.

Concurrent writes to the same row are last-write-wins.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from elector.core import reminder_engine
from elector.core.errors import NotFoundError
from elector.core.reminder_engine import clean_text, require_text
from elector.core.summaries import summarize_contacts
from elector.core.time_format import as_utc
from elector.data.models import (
    Contact,
    ContactSummary,
    ContactUpdate,
    Interaction,
    InteractionUpdate,
    LocalData,
    MigrationResult,
    NewReminder,
    RecurringUnit,
    Reminder,
    ReminderType,
    ReminderUpdate,
    new_id,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: datetime | None) -> str | None:
    """Serialize a datetime as fixed-width UTC ISO text (sortable as a string)."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class RemoteStore:
    """SQLite-backed, owner-scoped storage for contacts, interactions and reminders."""

    def __init__(
        self,
        owner_id: str,
        db_path: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if db_path is None:
            from elector.config import settings
            db_path = settings.DATABASE_PATH

        self._owner_id = owner_id
        self._db_path = db_path
        self._clock = clock
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @property
    def owner_id(self) -> str:
        return self._owner_id

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        """Create the contacts, interactions and reminders tables if missing."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contacts (
                    id             TEXT PRIMARY KEY,
                    owner_id       TEXT NOT NULL,
                    name           TEXT NOT NULL,
                    contact_group  TEXT,
                    created_at     TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS interactions (
                    id          TEXT PRIMARY KEY,
                    contact_id  TEXT NOT NULL
                                REFERENCES contacts(id) ON DELETE CASCADE,
                    date        TEXT NOT NULL,
                    note        TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id               TEXT PRIMARY KEY,
                    contact_id       TEXT NOT NULL
                                     REFERENCES contacts(id) ON DELETE CASCADE,
                    title            TEXT NOT NULL,
                    description      TEXT,
                    due_date         TEXT NOT NULL,
                    reminder_type    TEXT NOT NULL DEFAULT 'ONE_TIME',
                    recurring_unit   TEXT,
                    recurring_value  INTEGER,
                    is_acknowledged  INTEGER NOT NULL DEFAULT 0,
                    acknowledged_at  TEXT,
                    next_due_date    TEXT,
                    created_at       TEXT NOT NULL,
                    updated_at       TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_contacts_owner ON contacts(owner_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_interactions_contact "
                "ON interactions(contact_id, date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_reminders_contact "
                "ON reminders(contact_id, due_date)"
            )
        logger.debug("Remote store tables initialized at %s", self._db_path)

    # -- row mapping --------------------------------------------------------

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> Contact:
        return Contact(
            id=row["id"],
            name=row["name"],
            group=row["contact_group"],
            created_at=from_db_time(row["created_at"]),
            owner_id=row["owner_id"],
        )

    @staticmethod
    def _row_to_interaction(row: sqlite3.Row) -> Interaction:
        return Interaction(
            id=row["id"],
            contact_id=row["contact_id"],
            date=from_db_time(row["date"]),
            note=row["note"],
        )

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            contact_id=row["contact_id"],
            title=row["title"],
            description=row["description"],
            due_date=from_db_time(row["due_date"]),
            reminder_type=ReminderType(row["reminder_type"]),
            recurring_unit=(
                RecurringUnit(row["recurring_unit"]) if row["recurring_unit"] else None
            ),
            recurring_value=row["recurring_value"],
            is_acknowledged=bool(row["is_acknowledged"]),
            acknowledged_at=from_db_time(row["acknowledged_at"]),
            next_due_date=from_db_time(row["next_due_date"]),
            created_at=from_db_time(row["created_at"]),
            updated_at=from_db_time(row["updated_at"]),
        )

    # -- ownership checks ---------------------------------------------------

    def _owned_contact(self, conn: sqlite3.Connection, contact_id: str) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM contacts WHERE id = ? AND owner_id = ?",
            (contact_id, self._owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("Contact")
        return row

    def _owned_interaction(
        self, conn: sqlite3.Connection, interaction_id: str,
    ) -> sqlite3.Row:
        row = conn.execute(
            """
            SELECT i.* FROM interactions i
            JOIN contacts c ON c.id = i.contact_id
            WHERE i.id = ? AND c.owner_id = ?
            """,
            (interaction_id, self._owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("Interaction")
        return row

    def _owned_reminder(self, conn: sqlite3.Connection, reminder_id: str) -> sqlite3.Row:
        row = conn.execute(
            """
            SELECT r.* FROM reminders r
            JOIN contacts c ON c.id = r.contact_id
            WHERE r.id = ? AND c.owner_id = ?
            """,
            (reminder_id, self._owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("Reminder")
        return row

    # -- contacts -----------------------------------------------------------

    def list_contacts_with_summary(self) -> list[ContactSummary]:
        with self._connect() as conn:
            contacts = conn.execute(
                "SELECT * FROM contacts WHERE owner_id = ? ORDER BY created_at",
                (self._owner_id,),
            ).fetchall()
            interactions = conn.execute(
                """
                SELECT i.* FROM interactions i
                JOIN contacts c ON c.id = i.contact_id
                WHERE c.owner_id = ?
                """,
                (self._owner_id,),
            ).fetchall()
            reminders = conn.execute(
                """
                SELECT r.* FROM reminders r
                JOIN contacts c ON c.id = r.contact_id
                WHERE c.owner_id = ? AND r.is_acknowledged = 0
                """,
                (self._owner_id,),
            ).fetchall()

        return summarize_contacts(
            [self._row_to_contact(r) for r in contacts],
            [self._row_to_interaction(r) for r in interactions],
            [self._row_to_reminder(r) for r in reminders],
            self._clock(),
        )

    def add_contact(
        self,
        name: str,
        group: str | None = None,
        created_at: datetime | None = None,
    ) -> Contact:
        """Insert a contact. created_at is only passed when migrating."""
        contact = Contact(
            id=new_id(),
            name=require_text(name, "Name"),
            group=clean_text(group),
            created_at=created_at or self._clock(),
            owner_id=self._owner_id,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO contacts (id, owner_id, name, contact_group, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    contact.id, self._owner_id, contact.name, contact.group,
                    to_db_time(contact.created_at),
                ),
            )
        logger.info("Contact added: %s '%s' (owner %s)", contact.id, contact.name, self._owner_id)
        return contact

    def update_contact(self, contact_id: str, updates: ContactUpdate) -> Contact:
        with self._connect() as conn:
            contact = self._row_to_contact(self._owned_contact(conn, contact_id))
            if updates.name is not None:
                contact.name = require_text(updates.name, "Name")
            if updates.group is not None:
                contact.group = clean_text(updates.group)
            conn.execute(
                "UPDATE contacts SET name = ?, contact_group = ? WHERE id = ?",
                (contact.name, contact.group, contact_id),
            )
        return contact

    def delete_contact(self, contact_id: str) -> None:
        """Delete a contact; interactions and reminders cascade."""
        with self._connect() as conn:
            self._owned_contact(conn, contact_id)
            conn.execute("DELETE FROM contacts WHERE id = ?", (contact_id,))
        logger.info("Contact %s deleted (owner %s)", contact_id, self._owner_id)

    def get_contact(self, contact_id: str) -> Contact | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM contacts WHERE id = ? AND owner_id = ?",
                (contact_id, self._owner_id),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_contact(row)

    # -- interactions -------------------------------------------------------

    def add_interaction(
        self,
        contact_id: str,
        date: datetime | None = None,
        note: str | None = None,
    ) -> Interaction:
        interaction = Interaction(
            id=new_id(),
            contact_id=contact_id,
            date=as_utc(date) if date else self._clock(),
            note=clean_text(note),
        )
        with self._connect() as conn:
            self._owned_contact(conn, contact_id)
            conn.execute(
                "INSERT INTO interactions (id, contact_id, date, note) VALUES (?, ?, ?, ?)",
                (interaction.id, contact_id, to_db_time(interaction.date), interaction.note),
            )
        return interaction

    def update_interaction(
        self, interaction_id: str, updates: InteractionUpdate,
    ) -> Interaction:
        with self._connect() as conn:
            interaction = self._row_to_interaction(
                self._owned_interaction(conn, interaction_id)
            )
            if updates.date is not None:
                interaction.date = as_utc(updates.date)
            if updates.note is not None:
                interaction.note = clean_text(updates.note)
            conn.execute(
                "UPDATE interactions SET date = ?, note = ? WHERE id = ?",
                (to_db_time(interaction.date), interaction.note, interaction_id),
            )
        return interaction

    def delete_interaction(self, interaction_id: str) -> None:
        with self._connect() as conn:
            self._owned_interaction(conn, interaction_id)
            conn.execute("DELETE FROM interactions WHERE id = ?", (interaction_id,))

    def list_interactions(self, contact_id: str) -> list[Interaction]:
        """Interactions for one of the owner's contacts, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT i.* FROM interactions i
                JOIN contacts c ON c.id = i.contact_id
                WHERE i.contact_id = ? AND c.owner_id = ?
                ORDER BY i.date DESC
                """,
                (contact_id, self._owner_id),
            ).fetchall()
        return [self._row_to_interaction(r) for r in rows]

    # -- reminders ----------------------------------------------------------

    def _insert_reminder(self, conn: sqlite3.Connection, reminder: Reminder) -> None:
        conn.execute(
            """
            INSERT INTO reminders
                (id, contact_id, title, description, due_date, reminder_type,
                 recurring_unit, recurring_value, is_acknowledged,
                 acknowledged_at, next_due_date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                reminder.id, reminder.contact_id, reminder.title, reminder.description,
                to_db_time(reminder.due_date), reminder.reminder_type.value,
                reminder.recurring_unit.value if reminder.recurring_unit else None,
                reminder.recurring_value, int(reminder.is_acknowledged),
                to_db_time(reminder.acknowledged_at), to_db_time(reminder.next_due_date),
                to_db_time(reminder.created_at), to_db_time(reminder.updated_at),
            ),
        )

    def _write_reminder(self, conn: sqlite3.Connection, reminder: Reminder) -> None:
        conn.execute(
            """
            UPDATE reminders SET
                title = ?, description = ?, due_date = ?, reminder_type = ?,
                recurring_unit = ?, recurring_value = ?, is_acknowledged = ?,
                acknowledged_at = ?, next_due_date = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                reminder.title, reminder.description, to_db_time(reminder.due_date),
                reminder.reminder_type.value,
                reminder.recurring_unit.value if reminder.recurring_unit else None,
                reminder.recurring_value, int(reminder.is_acknowledged),
                to_db_time(reminder.acknowledged_at), to_db_time(reminder.next_due_date),
                to_db_time(reminder.updated_at), reminder.id,
            ),
        )

    def add_reminder(self, new: NewReminder) -> Reminder:
        reminder = reminder_engine.build_reminder(new, new_id(), self._clock())
        with self._connect() as conn:
            self._owned_contact(conn, new.contact_id)
            self._insert_reminder(conn, reminder)
        logger.info("Reminder added: %s '%s' due %s", reminder.id, reminder.title,
                    reminder.due_date.isoformat())
        return reminder

    def update_reminder(self, reminder_id: str, updates: ReminderUpdate) -> Reminder:
        with self._connect() as conn:
            current = self._row_to_reminder(self._owned_reminder(conn, reminder_id))
            reminder = reminder_engine.apply_reminder_update(current, updates, self._clock())
            self._write_reminder(conn, reminder)
        return reminder

    def delete_reminder(self, reminder_id: str) -> None:
        with self._connect() as conn:
            self._owned_reminder(conn, reminder_id)
            conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))

    def acknowledge_reminder(self, reminder_id: str) -> Reminder:
        with self._connect() as conn:
            current = self._row_to_reminder(self._owned_reminder(conn, reminder_id))
            result = reminder_engine.acknowledge(current, self._clock())
            self._write_reminder(conn, result.reminder)
        logger.info("Reminder %s acknowledged (%s)", reminder_id, result.transition.value)
        return result.reminder

    def _select_reminders(self, where: str = "", params: tuple = ()) -> list[Reminder]:
        query = """
            SELECT r.* FROM reminders r
            JOIN contacts c ON c.id = r.contact_id
            WHERE c.owner_id = ?
        """
        if where:
            query += " AND " + where
        query += " ORDER BY r.due_date"
        with self._connect() as conn:
            rows = conn.execute(query, (self._owner_id, *params)).fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def list_reminders(self, contact_id: str) -> list[Reminder]:
        return self._select_reminders("r.contact_id = ?", (contact_id,))

    def list_all_reminders(self) -> list[Reminder]:
        return self._select_reminders()

    def list_due_reminders(self, now: datetime | None = None) -> list[Reminder]:
        """Pending reminders due at or before now."""
        now = now or self._clock()
        return self._select_reminders(
            "r.is_acknowledged = 0 AND r.due_date <= ?", (to_db_time(now),),
        )

    def list_upcoming_reminders(self, within_days: int = 30) -> list[Reminder]:
        now = self._clock()
        pending = self._select_reminders(
            "r.is_acknowledged = 0 AND r.due_date > ?", (to_db_time(now),),
        )
        return [r for r in pending if reminder_engine.is_upcoming(r, now, within_days)]

    # -- migration ----------------------------------------------------------

    def import_local_data(self, data: LocalData) -> MigrationResult:
        """Copy a local data set into this owner's store.

        Every row gets a fresh id; contact references are remapped and the
        original timestamps are kept. Rows are committed one at a time, so
        a failure part-way leaves the rows created so far in place.
        """
        result = MigrationResult()
        contact_ids: dict[str, str] = {}

        for local_contact in data.contacts:
            contact = self.add_contact(
                local_contact.name,
                local_contact.group,
                created_at=local_contact.created_at,
            )
            contact_ids[local_contact.id] = contact.id
            result.contacts += 1

        for local_interaction in data.interactions:
            contact_id = contact_ids.get(local_interaction.contact_id)
            if contact_id is None:
                logger.warning(
                    "Skipping orphan local interaction %s", local_interaction.id,
                )
                continue
            self.add_interaction(contact_id, local_interaction.date, local_interaction.note)
            result.interactions += 1

        for local_reminder in data.reminders:
            contact_id = contact_ids.get(local_reminder.contact_id)
            if contact_id is None:
                logger.warning("Skipping orphan local reminder %s", local_reminder.id)
                continue
            reminder = Reminder(
                id=new_id(),
                contact_id=contact_id,
                title=local_reminder.title,
                description=local_reminder.description,
                due_date=local_reminder.due_date,
                reminder_type=local_reminder.reminder_type,
                recurring_unit=local_reminder.recurring_unit,
                recurring_value=local_reminder.recurring_value,
                is_acknowledged=local_reminder.is_acknowledged,
                acknowledged_at=local_reminder.acknowledged_at,
                next_due_date=local_reminder.next_due_date,
                created_at=local_reminder.created_at,
                updated_at=local_reminder.updated_at,
            )
            with self._connect() as conn:
                self._insert_reminder(conn, reminder)
            result.reminders += 1

        logger.info(
            "Imported %d contacts, %d interactions, %d reminders for owner %s",
            result.contacts, result.interactions, result.reminders, self._owner_id,
        )
        return result
