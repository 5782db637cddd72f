"""Tests for elector.core.time_format."""

from datetime import datetime, timedelta, timezone

from elector.core.time_format import as_utc, format_time_since


def _dt(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class TestFormatTimeSince:
    def test_same_day(self):
        now = _dt(2024, 3, 20, 18)
        assert format_time_since(now - timedelta(hours=5), now) == "today"

    def test_future_reads_as_today(self):
        now = _dt(2024, 3, 20)
        assert format_time_since(now + timedelta(days=2), now) == "today"

    def test_days(self):
        now = _dt(2024, 3, 20)
        assert format_time_since(now - timedelta(days=3), now) == "3d"

    def test_exact_week(self):
        now = _dt(2024, 3, 20)
        assert format_time_since(now - timedelta(days=7), now) == "1w"

    def test_weeks_and_days(self):
        now = _dt(2024, 3, 20)
        assert format_time_since(now - timedelta(days=17), now) == "2w 3d"

    def test_thirty_days_short_of_a_calendar_month(self):
        # Jan 15 -> Feb 14 is 30 days but not a whole month yet
        assert format_time_since(_dt(2024, 1, 15), _dt(2024, 2, 14)) == "4w 2d"

    def test_whole_months(self):
        assert format_time_since(_dt(2024, 1, 1), _dt(2024, 3, 1)) == "2m"

    def test_months_and_weeks(self):
        assert format_time_since(_dt(2024, 1, 1), _dt(2024, 3, 20)) == "2m 2w"

    def test_whole_year(self):
        assert format_time_since(_dt(2023, 1, 1), _dt(2024, 1, 1)) == "1y"

    def test_years_and_months(self):
        assert format_time_since(_dt(2022, 1, 1), _dt(2023, 4, 15)) == "1y 3m"


class TestAsUtc:
    def test_naive_is_taken_as_utc(self):
        result = as_utc(datetime(2024, 1, 1, 8, 0))
        assert result == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_converts_other_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        result = as_utc(datetime(2024, 1, 1, 8, 0, tzinfo=plus_two))
        assert result == datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc
