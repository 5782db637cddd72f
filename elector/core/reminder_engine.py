"""
Elector — Reminder Engine.

The acknowledgment state machine and time-bucket classification shared by
the local and remote stores. Pure functions: callers pass "now" and persist
whatever reminder comes back.

States per reminder:
    PENDING  (is_acknowledged=False)
    DONE     (is_acknowledged=True, acknowledged_at set)

acknowledge() on a ONE_TIME reminder moves PENDING -> DONE, which is
terminal. On a RECURRING reminder it loops PENDING -> PENDING with the due
date moved one step forward, so a recurring reminder never reaches DONE.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from elector.core.errors import InvalidInputError
from elector.core.recurrence import next_occurrence
from elector.core.time_format import as_utc
from elector.data.models import (
    NewReminder,
    RecurringUnit,
    Reminder,
    ReminderType,
    ReminderUpdate,
)

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 30


class ReminderBucket(Enum):
    DUE = "due"
    UPCOMING = "upcoming"
    FUTURE = "future"
    ACKNOWLEDGED = "acknowledged"


class Transition(Enum):
    COMPLETED = "completed"            # PENDING -> DONE
    ROLLED_FORWARD = "rolled_forward"  # PENDING -> PENDING, due date advanced


@dataclass
class Acknowledgement:
    """Result of acknowledge(): which transition fired and the new state."""

    transition: Transition
    reminder: Reminder


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def clean_text(value: str | None) -> str | None:
    """Trim optional text; empty-after-trim becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_text(value: str | None, label: str) -> str:
    """Trim required text, rejecting empty values."""
    cleaned = clean_text(value)
    if cleaned is None:
        raise InvalidInputError(f"{label} is required")
    return cleaned


def validate_recurrence(
    reminder_type: ReminderType,
    unit: RecurringUnit | None,
    value: int | None,
) -> tuple[RecurringUnit | None, int | None]:
    """Check the RECURRING <-> (unit, value >= 1) invariant.

    Returns the (unit, value) pair to store: both None for ONE_TIME.
    """
    try:
        reminder_type = ReminderType(reminder_type)
    except ValueError:
        raise InvalidInputError(f"Unknown reminder type: {reminder_type!r}") from None

    if reminder_type == ReminderType.ONE_TIME:
        if unit is not None or value is not None:
            raise InvalidInputError("One-time reminders can't have a recurrence")
        return None, None

    if unit is None or value is None:
        raise InvalidInputError("Recurring reminders need a unit and an interval")
    try:
        unit = RecurringUnit(unit)
    except ValueError:
        raise InvalidInputError(f"Unknown recurrence unit: {unit!r}") from None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInputError("Recurrence interval must be a positive whole number")
    return unit, value


# ---------------------------------------------------------------------------
# Construction and updates
# ---------------------------------------------------------------------------


def build_reminder(data: NewReminder, reminder_id: str, now: datetime) -> Reminder:
    """Validate creation input and build a fresh PENDING reminder."""
    title = require_text(data.title, "Title")
    unit, value = validate_recurrence(
        data.reminder_type, data.recurring_unit, data.recurring_value,
    )
    reminder_type = ReminderType(data.reminder_type)

    due_date = as_utc(data.due_date)
    next_due = None
    if reminder_type == ReminderType.RECURRING:
        next_due = next_occurrence(due_date, unit, value)

    return Reminder(
        id=reminder_id,
        contact_id=data.contact_id,
        title=title,
        description=clean_text(data.description),
        due_date=due_date,
        reminder_type=reminder_type,
        recurring_unit=unit,
        recurring_value=value,
        is_acknowledged=False,
        acknowledged_at=None,
        next_due_date=next_due,
        created_at=now,
        updated_at=now,
    )


def apply_reminder_update(
    reminder: Reminder, updates: ReminderUpdate, now: datetime,
) -> Reminder:
    """Validate a partial update field by field and return the new reminder.

    next_due_date is recomputed from the resulting due date and recurrence
    so the stored pair never drifts.
    """
    title = reminder.title
    if updates.title is not None:
        title = require_text(updates.title, "Title")

    description = reminder.description
    if updates.description is not None:
        description = clean_text(updates.description)

    due_date = as_utc(updates.due_date) if updates.due_date else reminder.due_date
    reminder_type = updates.reminder_type or reminder.reminder_type

    if ReminderType(reminder_type) == ReminderType.ONE_TIME:
        # Switching to one-time drops the stored recurrence
        unit, value = validate_recurrence(
            reminder_type, updates.recurring_unit, updates.recurring_value,
        )
    else:
        unit, value = validate_recurrence(
            reminder_type,
            updates.recurring_unit or reminder.recurring_unit,
            updates.recurring_value if updates.recurring_value is not None
            else reminder.recurring_value,
        )

    next_due = None
    if unit is not None and not reminder.is_acknowledged:
        next_due = next_occurrence(due_date, unit, value)

    return dataclasses.replace(
        reminder,
        title=title,
        description=description,
        due_date=due_date,
        reminder_type=ReminderType(reminder_type),
        recurring_unit=unit,
        recurring_value=value,
        next_due_date=next_due,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def acknowledge(reminder: Reminder, now: datetime) -> Acknowledgement:
    """Apply the acknowledge transition and return the tagged result."""
    if (
        reminder.reminder_type == ReminderType.RECURRING
        and reminder.next_due_date is not None
        and reminder.recurring_unit is not None
        and reminder.recurring_value is not None
    ):
        due_date = reminder.next_due_date
        rolled = dataclasses.replace(
            reminder,
            due_date=due_date,
            next_due_date=next_occurrence(
                due_date, reminder.recurring_unit, reminder.recurring_value,
            ),
            is_acknowledged=False,
            acknowledged_at=None,
            updated_at=now,
        )
        return Acknowledgement(Transition.ROLLED_FORWARD, rolled)

    if reminder.reminder_type == ReminderType.RECURRING:
        logger.warning(
            "Recurring reminder %s has no next due date; closing it instead",
            reminder.id,
        )

    done = dataclasses.replace(
        reminder,
        is_acknowledged=True,
        acknowledged_at=now,
        next_due_date=None,
        updated_at=now,
    )
    return Acknowledgement(Transition.COMPLETED, done)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(
    reminder: Reminder,
    now: datetime,
    upcoming_days: int = UPCOMING_WINDOW_DAYS,
) -> ReminderBucket:
    """Place a reminder in exactly one time bucket relative to now."""
    if reminder.is_acknowledged:
        return ReminderBucket.ACKNOWLEDGED
    if reminder.due_date <= now:
        return ReminderBucket.DUE
    if reminder.due_date < now + timedelta(days=upcoming_days):
        return ReminderBucket.UPCOMING
    return ReminderBucket.FUTURE


def is_due(reminder: Reminder, now: datetime) -> bool:
    return classify(reminder, now) == ReminderBucket.DUE


def is_upcoming(reminder: Reminder, now: datetime, within_days: int) -> bool:
    return classify(reminder, now, within_days) == ReminderBucket.UPCOMING


def sort_by_due_date(reminders: list[Reminder]) -> list[Reminder]:
    return sorted(reminders, key=lambda r: r.due_date)
