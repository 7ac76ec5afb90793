"""Expansion of a habit selection into per-weekday reminder rows.

A user picks a habit, a set of weekdays and one time-of-day bucket. Each
selected weekday becomes its own schedule row so reminder dispatch can match
rows on (day_of_week, reminder_time) without understanding recurrence.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from cadence.config.settings import settings
from cadence.constants import MAX_HABIT_NAME_LENGTH
from cadence.errors import ValidationError
from cadence.scheduling.time_of_day import format_reminder_time, hour_for
from cadence.scheduling.weekdays import Weekday, parse_weekdays


class HabitScheduleRow(BaseModel):
    """One (habit, weekday) pairing with its reminder time and timezone.

    Attributes:
        habit_name: Habit the reminder is for
        day_of_week: Day the reminder fires (Sunday = 0)
        reminder_time: Zero-padded "HH:00:00" local time
        timezone: IANA timezone the reminder time is expressed in
        challenge_slug: Owning challenge, None for personal habits
    """

    model_config = ConfigDict(frozen=True)

    habit_name: str = Field(min_length=1, max_length=MAX_HABIT_NAME_LENGTH)
    day_of_week: Weekday
    reminder_time: str = Field(pattern=r"^\d{2}:00:00$")
    timezone: str
    challenge_slug: str | None = None


def validate_custom_habit_name(text: str | None) -> str:
    """Validate free-text habit input and return the trimmed name.

    Raises:
        ValidationError: If the text is empty or longer than 200 characters
    """
    trimmed = (text or "").strip()
    if not trimmed:
        raise ValidationError("Habit name cannot be empty.")
    if len(trimmed) > MAX_HABIT_NAME_LENGTH:
        raise ValidationError(f"Habit name must be {MAX_HABIT_NAME_LENGTH} characters or less.")
    return trimmed


def build_reminder_rows(
    habit_name: str,
    weekdays: Iterable[Weekday | str | int],
    time_of_day: str | None = None,
    timezone: str | None = None,
    challenge_slug: str | None = None,
) -> list[HabitScheduleRow]:
    """Build one schedule row per selected weekday.

    Args:
        habit_name: Habit to schedule (already validated by the caller)
        weekdays: Selected weekdays; duplicates collapse
        time_of_day: Time bucket key, defaults to mid-morning
        timezone: IANA timezone, defaults to the configured default timezone
        challenge_slug: Challenge tag for challenge habits

    Returns:
        Rows ordered by weekday, all sharing one reminder time and timezone

    Raises:
        ValidationError: If no weekday is selected or the bucket is unknown
    """
    days = parse_weekdays(weekdays)
    if not days:
        raise ValidationError("Please select at least one day for this habit.")

    reminder_time = format_reminder_time(hour_for(time_of_day))
    tz = (timezone or "").strip() or settings.default_timezone

    rows = [
        HabitScheduleRow(
            habit_name=habit_name,
            day_of_week=day,
            reminder_time=reminder_time,
            timezone=tz,
            challenge_slug=challenge_slug,
        )
        for day in days
    ]
    logger.bind(habit_name=habit_name, challenge_slug=challenge_slug).debug(
        f"Built {len(rows)} reminder rows at {reminder_time} {tz}"
    )
    return rows
