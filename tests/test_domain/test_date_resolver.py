"""Tests for weekday/date resolution."""

from datetime import date, datetime

import pytest

from app.domain.date_resolver import (
    build_pattern,
    next_occurrence_of,
    parse_date,
    parse_time,
    resolve_weekday,
)
from app.domain.time_pattern import ANY_DAY, ANY_WEEKDAY, WILDCARD
from app.utils.errors import ValidationError

MONDAY = datetime(2026, 10, 19, 10, 0)


class TestResolveWeekday:
    """Test suite for resolve_weekday."""

    def test_ranges(self):
        assert resolve_weekday("day") == ANY_DAY
        assert resolve_weekday("weekday") == ANY_WEEKDAY

    def test_names_map_to_iso_numbers(self):
        assert resolve_weekday("monday") == 1
        assert resolve_weekday("Wednesday") == 3
        assert resolve_weekday("SUNDAY") == 7

    def test_unknown_phrase_returns_none(self):
        assert resolve_weekday("2026-10-21") is None
        assert resolve_weekday("someday") is None
        assert resolve_weekday(None) is None


class TestNextOccurrence:
    """Test suite for next_occurrence_of."""

    def test_wednesday_from_monday_is_two_days_ahead(self):
        assert next_occurrence_of(3, MONDAY) == date(2026, 10, 21)

    def test_same_weekday_jumps_a_full_week(self):
        """The search starts tomorrow, never today."""
        assert next_occurrence_of(1, MONDAY) == date(2026, 10, 26)

    def test_tomorrow(self):
        assert next_occurrence_of(2, MONDAY) == date(2026, 10, 20)

    def test_sunday_as_zero_or_seven(self):
        assert next_occurrence_of(7, MONDAY) == date(2026, 10, 25)
        assert next_occurrence_of(0, MONDAY) == date(2026, 10, 25)

    def test_accepts_a_date(self):
        assert next_occurrence_of(5, date(2026, 10, 19)) == date(2026, 10, 23)


class TestParsing:
    """Test suite for literal date/time parsing."""

    def test_parse_date_formats(self):
        assert parse_date("2026-10-21") == date(2026, 10, 21)
        assert parse_date("21/10/2026") == date(2026, 10, 21)

    def test_parse_date_invalid(self):
        with pytest.raises(ValidationError):
            parse_date("next week")

    def test_parse_time(self):
        assert parse_time("23:00") == (23, 0)
        assert parse_time("7:05") == (7, 5)
        assert parse_time(None, default_hour=9, default_minute=0) == (9, 0)

    @pytest.mark.parametrize("text", ["24:00", "12:60", "noon"])
    def test_parse_time_invalid(self, text):
        with pytest.raises(ValidationError):
            parse_time(text)


class TestBuildPattern:
    """Test suite for turning a command into a TimePattern."""

    def test_every_wednesday_is_recurring(self):
        pattern = build_pattern("every", "Wednesday", "23:00", now=MONDAY)

        assert pattern.is_recurring
        assert (pattern.hours, pattern.minutes, pattern.weekday) == (23, 0, 3)
        assert pattern.monthday == WILDCARD

    def test_every_sunday_is_normalized(self):
        assert build_pattern("every", "sunday", "08:00", now=MONDAY).weekday == 0

    def test_every_weekday_keeps_range(self):
        assert build_pattern("every", "weekday", None, now=MONDAY).weekday == ANY_WEEKDAY

    def test_every_without_day_is_rejected(self):
        with pytest.raises(ValidationError):
            build_pattern("every", None, "10:00", now=MONDAY)

    def test_on_weekday_name_resolves_a_date(self):
        pattern = build_pattern("on", "friday", "10:30", now=MONDAY)

        assert pattern.is_one_shot
        assert pattern.as_datetime() == datetime(2026, 10, 23, 10, 30)
        assert pattern.weekday == 5

    @pytest.mark.parametrize("when", ["day", "weekday"])
    def test_on_range_is_rejected(self, when):
        with pytest.raises(ValidationError) as exc_info:
            build_pattern("on", when, "10:00", now=MONDAY)

        assert "What day of the week" in exc_info.value.message

    def test_on_literal_date(self):
        pattern = build_pattern("on", "2026-12-24", "18:00", now=MONDAY)

        assert pattern.as_datetime() == datetime(2026, 12, 24, 18, 0)
        assert pattern.weekday == WILDCARD

    def test_on_bad_date(self):
        with pytest.raises(ValidationError):
            build_pattern("on", "someday", "18:00", now=MONDAY)

    def test_tomorrow_and_today(self):
        assert build_pattern("tomorrow", None, "08:00", now=MONDAY).as_datetime() == datetime(2026, 10, 20, 8, 0)
        assert build_pattern("today", None, "18:00", now=MONDAY).as_datetime() == datetime(2026, 10, 19, 18, 0)

    def test_default_time(self):
        pattern = build_pattern("tomorrow", now=MONDAY, default_hour=9, default_minute=0)

        assert (pattern.hours, pattern.minutes, pattern.seconds) == (9, 0, 0)

    def test_past_time_today_is_rejected(self):
        with pytest.raises(ValidationError):
            build_pattern("today", None, "08:00", now=MONDAY)

    def test_unknown_repeat(self):
        with pytest.raises(ValidationError):
            build_pattern("sometimes", "monday", now=MONDAY)
