"""Week resolution for weekly study plans.

Weeks start on Monday. Week identifiers coming from callers are
date strings (yyyy-MM-dd) that may point at any day of the week; they are
always normalized to that week's Monday.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from loguru import logger

from studyplan.core.errors import InvalidWeekStartError, OutOfWeekRangeError, ValidationError

DAYS_IN_WEEK = 7
WEEK_IDENTIFIER_FORMAT = "%Y-%m-%d"

DAY_OF_WEEK_LABELS: dict[str, tuple[str, ...]] = {
    "ja": ("月", "火", "水", "木", "金", "土", "日"),
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}


@dataclass(frozen=True)
class WeekDay:
    """One day slot of a week.

    Attributes:
        date: Calendar date
        day_of_week: Localized short weekday label
    """

    date: date
    day_of_week: str


@dataclass(frozen=True)
class WeekNavigation:
    current_week: date
    previous_week: date
    next_week: date
    can_go_next: bool


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def normalize_to_week_start(value: date | datetime) -> date:
    """Return the Monday on or before the given date.

    Args:
        value: Any date or datetime

    Returns:
        Monday of the week containing value
    """
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def require_week_start(week_start: date) -> date:
    """Validate that week_start is a Monday.

    Raises:
        InvalidWeekStartError: If week_start is not a Monday
    """
    week_start = _as_date(week_start)
    if week_start.weekday() != 0:
        raise InvalidWeekStartError(week_start)
    return week_start


def week_dates(week_start: date, locale: str = "ja") -> list[WeekDay]:
    """Enumerate the seven day slots of a week.

    Args:
        week_start: Monday of the week
        locale: Locale for day-of-week labels

    Returns:
        Seven consecutive WeekDay entries starting at week_start

    Raises:
        InvalidWeekStartError: If week_start is not a Monday
    """
    week_start = require_week_start(week_start)
    labels = DAY_OF_WEEK_LABELS.get(locale, DAY_OF_WEEK_LABELS["ja"])
    return [WeekDay(date=week_start + timedelta(days=offset), day_of_week=labels[offset]) for offset in range(DAYS_IN_WEEK)]


def week_end(week_start: date) -> date:
    return require_week_start(week_start) + timedelta(days=DAYS_IN_WEEK - 1)


def is_within_week(week_start: date, target_date: date) -> bool:
    return week_start <= target_date <= week_start + timedelta(days=DAYS_IN_WEEK - 1)


def require_within_week(week_start: date, target_date: date) -> date:
    """Validate that target_date lies in [week_start, week_start + 6].

    Raises:
        OutOfWeekRangeError: If target_date is outside the week
    """
    if not is_within_week(week_start, target_date):
        raise OutOfWeekRangeError(target_date, week_start)
    return target_date


def shift_week(week_start: date, weeks: int) -> date:
    return require_week_start(week_start) + timedelta(weeks=weeks)


def parse_week_identifier(raw: str | date | None, *, today: date | None = None) -> date:
    """Parse a caller-supplied week identifier into a week start.

    Lenient by design for URL-driven navigation: an unparseable or
    impossible date falls back to the current calendar week instead of
    failing the request.

    Args:
        raw: yyyy-MM-dd string, a date, or None
        today: Reference date for the fallback (defaults to date.today())

    Returns:
        Monday of the addressed week

    Raises:
        ValidationError: If raw is of a type that cannot be interpreted at all
    """
    if isinstance(raw, (date, datetime)):
        return normalize_to_week_start(raw)
    if raw is not None and not isinstance(raw, str):
        raise ValidationError(f"Week identifier must be a date string, got {type(raw).__name__}")

    fallback = normalize_to_week_start(today or date.today())
    if raw is None or not raw.strip():
        return fallback

    try:
        parsed = datetime.strptime(raw.strip()[:10], WEEK_IDENTIFIER_FORMAT).date()
    except ValueError:
        logger.warning(f"[WEEKS] Invalid week identifier '{raw}', falling back to current week {fallback.isoformat()}")
        return fallback

    week_start = normalize_to_week_start(parsed)
    if week_start != parsed:
        logger.debug(f"[WEEKS] Normalized week identifier {parsed.isoformat()} to Monday {week_start.isoformat()}")
    return week_start


def week_label(week_start: date, locale: str = "ja") -> str:
    """Human-readable label such as 2025年1月第2週.

    The week-of-month is derived from the Monday's day of month.
    """
    week_start = require_week_start(week_start)
    week_of_month = math.ceil(week_start.day / 7)
    if locale == "en":
        return f"Week {week_of_month} of {week_start.strftime('%B')} {week_start.year}"
    return f"{week_start.year}年{week_start.month}月第{week_of_month}週"


def week_navigation(week_start: date, *, today: date | None = None, max_weeks_ahead: int = 2) -> WeekNavigation:
    """Previous/next week starts and whether moving forward is allowed.

    Navigation may advance at most max_weeks_ahead weeks past the week
    containing today.
    """
    week_start = require_week_start(week_start)
    this_week = normalize_to_week_start(today or date.today())
    next_week = week_start + timedelta(weeks=1)
    return WeekNavigation(
        current_week=week_start,
        previous_week=week_start - timedelta(weeks=1),
        next_week=next_week,
        can_go_next=next_week <= this_week + timedelta(weeks=max_weeks_ahead),
    )
