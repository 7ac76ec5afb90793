"""Weekday convention used at every reminder boundary.

Stored rows and downstream reminder dispatch number days Sunday = 0 through
Saturday = 6. Python's ``date.weekday()`` uses Monday = 0, so conversions go
through ``Weekday.from_date`` and nowhere else.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from enum import IntEnum

from cadence.errors import ValidationError


class Weekday(IntEnum):
    """Day of week with Sunday = 0 (non-ISO)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def short_name(self) -> str:
        return self.name[:3].title()

    @classmethod
    def from_date(cls, d: date) -> Weekday:
        """Return the weekday of a calendar date."""
        return cls((d.weekday() + 1) % 7)

    @classmethod
    def parse(cls, value: str | int | Weekday) -> Weekday:
        """Parse a weekday from its short name ("Mon"), full name or number.

        Raises:
            ValidationError: If the value is not a recognizable weekday
        """
        if isinstance(value, Weekday):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError as e:
                raise ValidationError(f"Day of week must be 0-6 (Sunday = 0), got {value}") from e

        key = value.strip().upper()
        for day in cls:
            if key in {day.name, day.name[:3]}:
                return day
        raise ValidationError(f"Unknown day of week: {value!r}")


def parse_weekdays(values: Iterable[str | int | Weekday]) -> list[Weekday]:
    """Parse a weekday selection into a sorted list without duplicates."""
    return sorted({Weekday.parse(v) for v in values})


def scheduled_dates_in_week(week_start: date, weekdays: Iterable[Weekday]) -> list[date]:
    """Dates of a Monday-Sunday week that fall on the selected weekdays.

    Args:
        week_start: Monday opening the week
        weekdays: Selected days

    Returns:
        Matching dates in calendar order
    """
    selected = set(weekdays)
    week_dates = [week_start + timedelta(days=i) for i in range(7)]
    return [d for d in week_dates if Weekday.from_date(d) in selected]
