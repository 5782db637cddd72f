"""
Elector — Storage Manager.

The single storage entry point for callers. It holds one piece of state,
the signed-in user (or None), and routes every operation to the remote
store while signed in and to the local store otherwise. Nothing else in the
code base looks at auth state.

Signing in does not move data by itself; migrate_to_cloud() does that on
request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Protocol

from elector.core.errors import NotAuthenticatedError
from elector.data.models import (
    Contact,
    ContactSummary,
    ContactUpdate,
    Interaction,
    InteractionUpdate,
    LocalData,
    MigrationResult,
    NewReminder,
    Reminder,
    ReminderUpdate,
)

if TYPE_CHECKING:
    from elector.data.local_store import LocalStore
    from elector.data.remote_store import RemoteStore

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Operations shared by LocalStore and RemoteStore."""

    def list_contacts_with_summary(self) -> list[ContactSummary]: ...

    def add_contact(self, name: str, group: str | None = None) -> Contact: ...

    def update_contact(self, contact_id: str, updates: ContactUpdate) -> Contact: ...

    def delete_contact(self, contact_id: str) -> None: ...

    def get_contact(self, contact_id: str) -> Contact | None: ...

    def add_interaction(
        self, contact_id: str, date: datetime | None = None, note: str | None = None,
    ) -> Interaction: ...

    def update_interaction(
        self, interaction_id: str, updates: InteractionUpdate,
    ) -> Interaction: ...

    def delete_interaction(self, interaction_id: str) -> None: ...

    def list_interactions(self, contact_id: str) -> list[Interaction]: ...

    def add_reminder(self, new: NewReminder) -> Reminder: ...

    def update_reminder(self, reminder_id: str, updates: ReminderUpdate) -> Reminder: ...

    def delete_reminder(self, reminder_id: str) -> None: ...

    def acknowledge_reminder(self, reminder_id: str) -> Reminder: ...

    def list_reminders(self, contact_id: str) -> list[Reminder]: ...

    def list_all_reminders(self) -> list[Reminder]: ...

    def list_due_reminders(self) -> list[Reminder]: ...

    def list_upcoming_reminders(self, within_days: int = 30) -> list[Reminder]: ...


class StorageManager:
    """Facade choosing between the local and remote stores."""

    def __init__(
        self,
        local_store: LocalStore,
        remote_store_factory: Callable[[str], RemoteStore],
    ) -> None:
        self._local = local_store
        self._remote_factory = remote_store_factory
        self._remote: RemoteStore | None = None

    # -- auth state ---------------------------------------------------------

    def set_auth_status(self, user_id: str | None) -> None:
        """Record the signed-in user, or None when signed out."""
        if user_id is None:
            self._remote = None
        elif self._remote is None or self._remote.owner_id != user_id:
            self._remote = self._remote_factory(user_id)
        logger.debug("Storage auth status: %s", "signed in" if user_id else "signed out")

    @property
    def is_authenticated(self) -> bool:
        return self._remote is not None

    def _backend(self) -> StorageBackend:
        if self._remote is not None:
            return self._remote
        return self._local

    # -- contacts -----------------------------------------------------------

    def get_contacts_with_last_interaction(self) -> list[ContactSummary]:
        return self._backend().list_contacts_with_summary()

    def add_contact(self, name: str, group: str | None = None) -> Contact:
        return self._backend().add_contact(name, group)

    def update_contact(self, contact_id: str, updates: ContactUpdate) -> Contact:
        return self._backend().update_contact(contact_id, updates)

    def delete_contact(self, contact_id: str) -> bool:
        self._backend().delete_contact(contact_id)
        return True

    def get_contact(self, contact_id: str) -> Contact | None:
        return self._backend().get_contact(contact_id)

    # -- interactions -------------------------------------------------------

    def add_interaction(
        self,
        contact_id: str,
        date: datetime | None = None,
        note: str | None = None,
    ) -> Interaction:
        return self._backend().add_interaction(contact_id, date, note)

    def update_interaction(
        self, interaction_id: str, updates: InteractionUpdate,
    ) -> Interaction:
        return self._backend().update_interaction(interaction_id, updates)

    def delete_interaction(self, interaction_id: str) -> bool:
        self._backend().delete_interaction(interaction_id)
        return True

    def get_contact_interactions(self, contact_id: str) -> list[Interaction]:
        return self._backend().list_interactions(contact_id)

    # -- reminders ----------------------------------------------------------

    def add_reminder(self, new: NewReminder) -> Reminder:
        return self._backend().add_reminder(new)

    def update_reminder(self, reminder_id: str, updates: ReminderUpdate) -> Reminder:
        return self._backend().update_reminder(reminder_id, updates)

    def delete_reminder(self, reminder_id: str) -> bool:
        self._backend().delete_reminder(reminder_id)
        return True

    def acknowledge_reminder(self, reminder_id: str) -> Reminder:
        return self._backend().acknowledge_reminder(reminder_id)

    def get_contact_reminders(self, contact_id: str) -> list[Reminder]:
        return self._backend().list_reminders(contact_id)

    def get_all_reminders(self) -> list[Reminder]:
        return self._backend().list_all_reminders()

    def get_due_reminders(self) -> list[Reminder]:
        return self._backend().list_due_reminders()

    def get_upcoming_reminders(self, days: int = 30) -> list[Reminder]:
        return self._backend().list_upcoming_reminders(days)

    # -- local data / migration ---------------------------------------------

    def migrate_to_cloud(self) -> MigrationResult:
        """Copy the local data set into the signed-in user's remote store.

        The local data is cleared only after every row was created. This is
        not transactional: if it fails part-way, the remote rows created so
        far stay and the local data is kept, so a retry will create
        duplicates of the rows that made it the first time.
        """
        if self._remote is None:
            raise NotAuthenticatedError("Must be authenticated to migrate data")

        data = self._local.load()
        if data.is_empty():
            return MigrationResult()

        result = self._remote.import_local_data(data)
        self._local.clear()
        logger.info(
            "Migrated local data to cloud for %s: %d contacts, %d interactions, %d reminders",
            self._remote.owner_id, result.contacts, result.interactions, result.reminders,
        )
        return result

    def get_local_data(self) -> LocalData:
        return self._local.load()

    def has_local_data(self) -> bool:
        return self._local.has_data()

    def clear_local_data(self) -> None:
        self._local.clear()
