"""
Elector — Data Models.

The same dataclasses back both storage substrates: the device-local JSON
blob (no owner) and the owner-scoped SQLite store. All timestamps are
timezone-aware UTC datetimes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ReminderType(str, Enum):
    ONE_TIME = "ONE_TIME"
    RECURRING = "RECURRING"


class RecurringUnit(str, Enum):
    DAYS = "DAYS"
    WEEKS = "WEEKS"
    MONTHS = "MONTHS"
    YEARS = "YEARS"


@dataclass
class Contact:
    """A tracked relationship. Deleting it removes its interactions and reminders."""

    id: str
    name: str
    created_at: datetime
    group: str | None = None
    owner_id: str | None = None     # remote store only


@dataclass
class Interaction:
    """A logged touchpoint with a contact."""

    id: str
    contact_id: str
    date: datetime
    note: str | None = None


@dataclass
class Reminder:
    """A scheduled nudge tied to a contact, one-time or recurring.

    For an unacknowledged RECURRING reminder, next_due_date is always
    due_date advanced by one step. Acknowledging a recurring reminder
    rolls it forward instead of closing it.
    """

    id: str
    contact_id: str
    title: str
    due_date: datetime
    reminder_type: ReminderType
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    recurring_unit: RecurringUnit | None = None
    recurring_value: int | None = None
    is_acknowledged: bool = False
    acknowledged_at: datetime | None = None
    next_due_date: datetime | None = None


@dataclass
class PushSubscription:
    """A browser push endpoint registered by a signed-in user."""

    id: int
    user_id: str
    endpoint: str
    p256dh_key: str
    auth_key: str
    created_at: datetime
    updated_at: datetime
    user_agent: str | None = None
    is_active: bool = True
    last_notification: datetime | None = None


@dataclass
class LocalData:
    """The whole device-local store, persisted as one JSON document."""

    contacts: list[Contact] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.contacts or self.interactions or self.reminders)


@dataclass
class ContactSummary:
    """A contact annotated for the contact list view."""

    contact: Contact
    last_interaction: datetime | None = None
    time_since_last_interaction: str | None = None
    due_reminders: list[Reminder] = field(default_factory=list)
    upcoming_reminders: list[Reminder] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.contact.id

    @property
    def name(self) -> str:
        return self.contact.name


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass
class NewReminder:
    """Creation input for a reminder."""

    contact_id: str
    title: str
    due_date: datetime
    reminder_type: ReminderType = ReminderType.ONE_TIME
    description: str | None = None
    recurring_unit: RecurringUnit | None = None
    recurring_value: int | None = None


@dataclass
class ContactUpdate:
    """Partial update for a contact. None leaves a field unchanged."""

    name: str | None = None
    group: str | None = None    # "" clears the group


@dataclass
class InteractionUpdate:
    """Partial update for an interaction. None leaves a field unchanged."""

    date: datetime | None = None
    note: str | None = None     # "" clears the note


@dataclass
class ReminderUpdate:
    """Partial update for a reminder. None leaves a field unchanged."""

    title: str | None = None
    description: str | None = None  # "" clears the description
    due_date: datetime | None = None
    reminder_type: ReminderType | None = None
    recurring_unit: RecurringUnit | None = None
    recurring_value: int | None = None


@dataclass
class MigrationResult:
    """Row counts created by a local-to-cloud migration."""

    contacts: int = 0
    interactions: int = 0
    reminders: int = 0


def new_id() -> str:
    """Generate a fresh opaque entity id."""
    return uuid.uuid4().hex
