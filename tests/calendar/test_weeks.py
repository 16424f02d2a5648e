"""Tests for week resolution."""

from datetime import date, datetime, timedelta

import pytest

from studyplan.calendar.weeks import (
    is_within_week,
    normalize_to_week_start,
    parse_week_identifier,
    require_within_week,
    shift_week,
    week_dates,
    week_end,
    week_label,
    week_navigation,
)
from studyplan.core.errors import InvalidWeekStartError, OutOfWeekRangeError, ValidationError


class TestNormalizeToWeekStart:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (date(2025, 1, 6), date(2025, 1, 6)),
            (date(2025, 1, 8), date(2025, 1, 6)),
            (date(2025, 1, 12), date(2025, 1, 6)),
            (date(2025, 1, 1), date(2024, 12, 30)),
        ],
    )
    def test_returns_monday_on_or_before(self, value, expected):
        assert normalize_to_week_start(value) == expected

    def test_is_idempotent(self):
        for offset in range(14):
            day = date(2025, 3, 1) + timedelta(days=offset)
            once = normalize_to_week_start(day)
            assert normalize_to_week_start(once) == once
            assert once.weekday() == 0

    def test_accepts_datetime(self):
        assert normalize_to_week_start(datetime(2025, 1, 9, 23, 59)) == date(2025, 1, 6)


class TestWeekDates:
    def test_seven_consecutive_days_with_labels(self):
        days = week_dates(date(2025, 1, 6))

        assert len(days) == 7
        assert [d.date for d in days] == [date(2025, 1, 6) + timedelta(days=i) for i in range(7)]
        assert [d.day_of_week for d in days] == ["月", "火", "水", "木", "金", "土", "日"]

    def test_english_labels(self):
        assert week_dates(date(2025, 1, 6), "en")[0].day_of_week == "Mon"

    def test_rejects_non_monday(self):
        with pytest.raises(InvalidWeekStartError):
            week_dates(date(2025, 1, 7))


class TestParseWeekIdentifier:
    def test_parses_and_normalizes(self):
        assert parse_week_identifier("2025-01-08") == date(2025, 1, 6)

    def test_ignores_time_suffix(self):
        assert parse_week_identifier("2025-01-08T10:00:00") == date(2025, 1, 6)

    @pytest.mark.parametrize("raw", ["garbage", "2025-02-30", "", "   ", None])
    def test_falls_back_to_current_week(self, raw):
        assert parse_week_identifier(raw, today=date(2025, 3, 13)) == date(2025, 3, 10)

    def test_accepts_date(self):
        assert parse_week_identifier(date(2025, 1, 12)) == date(2025, 1, 6)

    def test_rejects_uninterpretable_type(self):
        with pytest.raises(ValidationError):
            parse_week_identifier(20250106)


class TestWeekRange:
    def test_bounds(self):
        monday = date(2025, 1, 6)
        assert week_end(monday) == date(2025, 1, 12)
        assert is_within_week(monday, monday)
        assert is_within_week(monday, date(2025, 1, 12))
        assert not is_within_week(monday, date(2025, 1, 13))
        assert not is_within_week(monday, date(2025, 1, 5))

    def test_require_within_week_raises(self):
        with pytest.raises(OutOfWeekRangeError) as exc_info:
            require_within_week(date(2025, 1, 6), date(2025, 1, 13))
        assert exc_info.value.target_date == date(2025, 1, 13)

    def test_shift_week(self):
        assert shift_week(date(2025, 1, 6), -1) == date(2024, 12, 30)
        assert shift_week(date(2025, 1, 6), 2) == date(2025, 1, 20)


class TestWeekLabel:
    def test_japanese(self):
        assert week_label(date(2025, 1, 6)) == "2025年1月第1週"
        assert week_label(date(2025, 1, 13)) == "2025年1月第2週"

    def test_english(self):
        assert week_label(date(2025, 1, 13), "en") == "Week 2 of January 2025"


class TestWeekNavigation:
    def test_previous_and_next(self):
        nav = week_navigation(date(2025, 1, 6), today=date(2025, 1, 8))
        assert nav.previous_week == date(2024, 12, 30)
        assert nav.next_week == date(2025, 1, 13)
        assert nav.can_go_next

    def test_limited_to_max_weeks_ahead(self):
        today = date(2025, 1, 8)
        assert week_navigation(date(2025, 1, 13), today=today, max_weeks_ahead=2).can_go_next
        assert not week_navigation(date(2025, 1, 20), today=today, max_weeks_ahead=2).can_go_next
        assert not week_navigation(date(2025, 1, 6), today=today, max_weeks_ahead=0).can_go_next
