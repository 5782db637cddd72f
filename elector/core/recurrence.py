"""Recurrence date arithmetic — pure business logic.

Computes the next occurrence of a recurring reminder. Month and year steps
are calendar-aware: when the target month is shorter, the day is clamped to
its last day (Jan 31 + 1 month -> Feb 28/29).

No I/O: this module only transforms data.
"""

from __future__ import annotations

from datetime import datetime

from dateutil.relativedelta import relativedelta

from elector.data.models import RecurringUnit


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    return value + relativedelta(months=months)


def next_occurrence(value: datetime, unit: RecurringUnit, step: int) -> datetime:
    """Return `value` advanced by `step` units."""
    if unit == RecurringUnit.DAYS:
        return value + relativedelta(days=step)
    if unit == RecurringUnit.WEEKS:
        return value + relativedelta(weeks=step)
    if unit == RecurringUnit.MONTHS:
        return add_months(value, step)
    return value + relativedelta(years=step)
