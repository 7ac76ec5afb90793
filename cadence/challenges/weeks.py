"""Calendar arithmetic for 4-week challenges.

The current week is derived from a fixed start date on every read, so it stays
correct however long a user is away and no background job has to advance it.
Every function takes "today" as an argument; none of them read a clock.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Protocol

from cadence.constants import PROGRAM_WEEKS, WEEK1_START_KEY

MONDAY = 0


class HasWeekState(Protocol):
    current_week: int
    survey_scores: dict[str, Any]


def _as_date(value: date | datetime | str) -> date:
    """Strip time of day, keeping the local calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return date.fromisoformat(value)


def next_monday(today: date | datetime) -> date:
    """Return the first Monday strictly after today.

    A Monday returns the following Monday, never the same day.
    """
    day = _as_date(today)
    days_ahead = (MONDAY - day.weekday()) % 7 or 7
    return day + timedelta(days=days_ahead)


def get_week1_start(enrollment: HasWeekState) -> date | None:
    raw = (enrollment.survey_scores or {}).get(WEEK1_START_KEY)
    if not raw:
        return None
    return _as_date(raw)


def effective_week(enrollment: HasWeekState, today: date | datetime) -> int:
    """Compute the program week (0-4) an enrollment is in on a given day.

    Args:
        enrollment: Enrollment with survey_scores and a legacy current_week
        today: Day to evaluate

    Returns:
        0 before the start date, 1-4 afterwards (clamped to 4). Enrollments
        without a stored start date return their stored counter.
    """
    start = get_week1_start(enrollment)
    if start is None:
        return enrollment.current_week

    day = _as_date(today)
    if day < start:
        return 0

    diff_days = (day - start).days
    week = diff_days // 7 + 1
    return min(week, PROGRAM_WEEKS)


def week_start_date(week1_start: date, week_number: int) -> date:
    """First day of a program week."""
    return week1_start + timedelta(days=(week_number - 1) * 7)


def week_end_date(week1_start: date, week_number: int) -> date:
    """Last day of a program week."""
    return week_start_date(week1_start, week_number) + timedelta(days=6)


def days_remaining_in_week(week1_start: date, today: date | datetime) -> int:
    """Days left after today in the current program week.

    Before the program starts this counts the days until week 1 ends; after
    week 4 ends it is 0.
    """
    day = _as_date(today)
    week = max(1, min(PROGRAM_WEEKS, (day - week1_start).days // 7 + 1))
    return max(0, (week_end_date(week1_start, week) - day).days)
