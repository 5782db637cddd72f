"""Contact list summaries — shared by the local and remote stores.

Each contact is annotated with its latest interaction and its due/upcoming
reminders, then sorted so the most neglected relationships come first.
"""

from __future__ import annotations

from datetime import datetime

from elector.core.reminder_engine import UPCOMING_WINDOW_DAYS, is_due, is_upcoming
from elector.core.time_format import format_time_since
from elector.data.models import Contact, ContactSummary, Interaction, Reminder


def _sort_key(summary: ContactSummary) -> tuple:
    # Contacts never interacted with come first, oldest-created first;
    # the rest by last interaction, oldest first.
    if summary.last_interaction is None:
        return (0, summary.contact.created_at)
    return (1, summary.last_interaction)


def summarize_contacts(
    contacts: list[Contact],
    interactions: list[Interaction],
    reminders: list[Reminder],
    now: datetime,
) -> list[ContactSummary]:
    """Build sorted contact summaries from already-loaded rows."""
    latest: dict[str, datetime] = {}
    for interaction in interactions:
        current = latest.get(interaction.contact_id)
        if current is None or interaction.date > current:
            latest[interaction.contact_id] = interaction.date

    by_contact: dict[str, list[Reminder]] = {}
    for reminder in sorted(reminders, key=lambda r: r.due_date):
        by_contact.setdefault(reminder.contact_id, []).append(reminder)

    summaries = []
    for contact in contacts:
        last = latest.get(contact.id)
        contact_reminders = by_contact.get(contact.id, [])
        summaries.append(ContactSummary(
            contact=contact,
            last_interaction=last,
            time_since_last_interaction=format_time_since(last, now) if last else None,
            due_reminders=[r for r in contact_reminders if is_due(r, now)],
            upcoming_reminders=[
                r for r in contact_reminders
                if is_upcoming(r, now, UPCOMING_WINDOW_DAYS)
            ],
        ))

    return sorted(summaries, key=_sort_key)
