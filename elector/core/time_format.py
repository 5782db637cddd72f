"""Compact "time since" labels for the contact list.

Examples: "today", "3d", "2w 3d", "3m 2w", "1y 3m". Never shows hours.
"""

from __future__ import annotations

from datetime import datetime, timezone


def _whole_months_between(earlier: datetime, later: datetime) -> int:
    """Number of complete calendar months from earlier to later."""
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    # An incomplete trailing month doesn't count
    if (later.day, later.time()) < (earlier.day, earlier.time()):
        months -= 1
    return max(months, 0)


def format_time_since(value: datetime, now: datetime | None = None) -> str:
    """Format the time elapsed since `value` as a short label."""
    if now is None:
        now = datetime.now(timezone.utc)

    days = max((now - value).days, 0)
    weeks = days // 7
    months = _whole_months_between(value, now)
    years = months // 12

    if days == 0:
        return "today"

    # <7d: days only
    if days < 7:
        return f"{days}d"

    # <1 month: weeks + days
    if days < 30 or months == 0:
        remaining_days = days - weeks * 7
        if remaining_days > 0:
            return f"{weeks}w {remaining_days}d"
        return f"{weeks}w"

    # <1 year: months + weeks (a month counted as 30 days for the remainder)
    if months < 12:
        remaining_weeks = max(days - months * 30, 0) // 7
        if remaining_weeks > 0:
            return f"{months}m {remaining_weeks}w"
        return f"{months}m"

    remaining_months = months - years * 12
    if remaining_months > 0:
        return f"{years}y {remaining_months}m"
    return f"{years}y"


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
