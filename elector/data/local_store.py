"""
Elector — Local Store.

Device-scoped storage used while signed out. The whole data set lives in a
single JSON document that is read, modified and written back as a whole on
every mutation. There is no locking: two processes writing at once can lose
one of the writes.

An unreadable or corrupt document is logged and treated as empty.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from elector.core import reminder_engine
from elector.core.errors import NotFoundError
from elector.core.reminder_engine import clean_text, require_text, sort_by_due_date
from elector.core.summaries import summarize_contacts
from elector.core.time_format import as_utc
from elector.data.models import (
    Contact,
    ContactSummary,
    ContactUpdate,
    Interaction,
    InteractionUpdate,
    LocalData,
    NewReminder,
    Reminder,
    ReminderUpdate,
    new_id,
)

logger = logging.getLogger(__name__)

_LOCAL_DATA = TypeAdapter(LocalData)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _with_utc_times(record):
    """Copy of a record with every datetime field as aware UTC."""
    changes = {}
    for item in dataclasses.fields(record):
        value = getattr(record, item.name)
        if isinstance(value, datetime):
            changes[item.name] = as_utc(value)
    return dataclasses.replace(record, **changes)


class LocalStore:
    """JSON-file-backed storage for contacts, interactions and reminders."""

    def __init__(
        self,
        path: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if path is None:
            from elector.config import settings
            path = settings.LOCAL_DATA_PATH

        self._path = Path(path)
        self._clock = clock

    # -- blob I/O -----------------------------------------------------------

    def load(self) -> LocalData:
        """Read the whole data set. Missing or corrupt data reads as empty."""
        if not self._path.exists():
            return LocalData()
        try:
            data = _LOCAL_DATA.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.error("Error reading local data at %s: %s", self._path, exc)
            return LocalData()

        # Timestamps written without an offset are UTC
        return LocalData(
            contacts=[_with_utc_times(c) for c in data.contacts],
            interactions=[_with_utc_times(i) for i in data.interactions],
            reminders=[_with_utc_times(r) for r in data.reminders],
        )

    def save(self, data: LocalData) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(_LOCAL_DATA.dump_json(data, indent=2))

    def clear(self) -> None:
        """Remove the data set entirely."""
        self._path.unlink(missing_ok=True)
        logger.info("Local data cleared at %s", self._path)

    def has_data(self) -> bool:
        return not self.load().is_empty()

    # -- contacts -----------------------------------------------------------

    def list_contacts_with_summary(self) -> list[ContactSummary]:
        data = self.load()
        return summarize_contacts(
            data.contacts, data.interactions, data.reminders, self._clock(),
        )

    def add_contact(self, name: str, group: str | None = None) -> Contact:
        contact = Contact(
            id=new_id(),
            name=require_text(name, "Name"),
            group=clean_text(group),
            created_at=self._clock(),
        )
        data = self.load()
        data.contacts.append(contact)
        self.save(data)
        logger.info("Contact added locally: %s '%s'", contact.id, contact.name)
        return contact

    def update_contact(self, contact_id: str, updates: ContactUpdate) -> Contact:
        data = self.load()
        index = self._index_of(data.contacts, contact_id, "Contact")
        contact = data.contacts[index]

        name = contact.name
        if updates.name is not None:
            name = require_text(updates.name, "Name")
        group = contact.group
        if updates.group is not None:
            group = clean_text(updates.group)

        contact = dataclasses.replace(contact, name=name, group=group)
        data.contacts[index] = contact
        self.save(data)
        return contact

    def delete_contact(self, contact_id: str) -> None:
        """Delete a contact together with its interactions and reminders."""
        data = self.load()
        index = self._index_of(data.contacts, contact_id, "Contact")
        del data.contacts[index]
        data.interactions = [i for i in data.interactions if i.contact_id != contact_id]
        data.reminders = [r for r in data.reminders if r.contact_id != contact_id]
        self.save(data)
        logger.info("Contact %s deleted locally", contact_id)

    def get_contact(self, contact_id: str) -> Contact | None:
        for contact in self.load().contacts:
            if contact.id == contact_id:
                return contact
        return None

    # -- interactions -------------------------------------------------------

    def add_interaction(
        self,
        contact_id: str,
        date: datetime | None = None,
        note: str | None = None,
    ) -> Interaction:
        data = self.load()
        self._index_of(data.contacts, contact_id, "Contact")

        interaction = Interaction(
            id=new_id(),
            contact_id=contact_id,
            date=as_utc(date) if date else self._clock(),
            note=clean_text(note),
        )
        data.interactions.append(interaction)
        self.save(data)
        return interaction

    def update_interaction(
        self, interaction_id: str, updates: InteractionUpdate,
    ) -> Interaction:
        data = self.load()
        index = self._index_of(data.interactions, interaction_id, "Interaction")
        interaction = data.interactions[index]

        note = interaction.note
        if updates.note is not None:
            note = clean_text(updates.note)

        interaction = dataclasses.replace(
            interaction,
            date=as_utc(updates.date) if updates.date else interaction.date,
            note=note,
        )
        data.interactions[index] = interaction
        self.save(data)
        return interaction

    def delete_interaction(self, interaction_id: str) -> None:
        data = self.load()
        index = self._index_of(data.interactions, interaction_id, "Interaction")
        del data.interactions[index]
        self.save(data)

    def list_interactions(self, contact_id: str) -> list[Interaction]:
        """Interactions for a contact, newest first."""
        interactions = [i for i in self.load().interactions if i.contact_id == contact_id]
        return sorted(interactions, key=lambda i: i.date, reverse=True)

    # -- reminders ----------------------------------------------------------

    def add_reminder(self, new: NewReminder) -> Reminder:
        reminder = reminder_engine.build_reminder(new, new_id(), self._clock())
        data = self.load()
        self._index_of(data.contacts, new.contact_id, "Contact")
        data.reminders.append(reminder)
        self.save(data)
        logger.info("Reminder added locally: %s '%s'", reminder.id, reminder.title)
        return reminder

    def update_reminder(self, reminder_id: str, updates: ReminderUpdate) -> Reminder:
        data = self.load()
        index = self._index_of(data.reminders, reminder_id, "Reminder")
        reminder = reminder_engine.apply_reminder_update(
            data.reminders[index], updates, self._clock(),
        )
        data.reminders[index] = reminder
        self.save(data)
        return reminder

    def delete_reminder(self, reminder_id: str) -> None:
        data = self.load()
        index = self._index_of(data.reminders, reminder_id, "Reminder")
        del data.reminders[index]
        self.save(data)

    def acknowledge_reminder(self, reminder_id: str) -> Reminder:
        data = self.load()
        index = self._index_of(data.reminders, reminder_id, "Reminder")
        result = reminder_engine.acknowledge(data.reminders[index], self._clock())
        data.reminders[index] = result.reminder
        self.save(data)
        logger.info(
            "Reminder %s acknowledged locally (%s)", reminder_id, result.transition.value,
        )
        return result.reminder

    def list_reminders(self, contact_id: str) -> list[Reminder]:
        return sort_by_due_date(
            [r for r in self.load().reminders if r.contact_id == contact_id]
        )

    def list_all_reminders(self) -> list[Reminder]:
        return sort_by_due_date(self.load().reminders)

    def list_due_reminders(self) -> list[Reminder]:
        now = self._clock()
        return sort_by_due_date(
            [r for r in self.load().reminders if reminder_engine.is_due(r, now)]
        )

    def list_upcoming_reminders(self, within_days: int = 30) -> list[Reminder]:
        now = self._clock()
        return sort_by_due_date([
            r for r in self.load().reminders
            if reminder_engine.is_upcoming(r, now, within_days)
        ])

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _index_of(items: list, item_id: str, entity: str) -> int:
        for index, item in enumerate(items):
            if item.id == item_id:
                return index
        raise NotFoundError(entity)
