"""Named time-of-day buckets used to pick a reminder hour."""

from dataclasses import dataclass

from cadence.errors import ValidationError


@dataclass(frozen=True)
class TimeOfDayOption:
    """One selectable reminder window.

    Attributes:
        key: Bucket identifier stored by callers (e.g., "mid-morning")
        label: Display label shown next to the choice
        hour: Hour of day (24h) the reminder fires
    """

    key: str
    label: str
    hour: int


TIME_OF_DAY_OPTIONS: tuple[TimeOfDayOption, ...] = (
    TimeOfDayOption("early-morning", "Early Morning (6-8am)", 6),
    TimeOfDayOption("mid-morning", "Mid-Morning (8-10am)", 8),
    TimeOfDayOption("lunch", "Lunch Time (12-1pm)", 12),
    TimeOfDayOption("early-afternoon", "Early Afternoon (1-3pm)", 13),
    TimeOfDayOption("afternoon", "Afternoon (3-5pm)", 15),
    TimeOfDayOption("after-work", "After Work (5-7pm)", 17),
    TimeOfDayOption("bedtime", "Before Bedtime (9-10pm)", 21),
)

DEFAULT_TIME_OF_DAY = "mid-morning"

_BY_KEY = {option.key: option for option in TIME_OF_DAY_OPTIONS}


def get_time_of_day(key: str | None) -> TimeOfDayOption:
    """Look up a bucket, falling back to mid-morning when none is given.

    Raises:
        ValidationError: If the key is not a known bucket
    """
    if key is None:
        key = DEFAULT_TIME_OF_DAY
    option = _BY_KEY.get(key)
    if option is None:
        raise ValidationError(f"Unknown time of day '{key}'. Valid values: {', '.join(_BY_KEY)}")
    return option


def hour_for(key: str | None) -> int:
    return get_time_of_day(key).hour


def format_reminder_time(hour: int) -> str:
    """Format an hour as the "HH:00:00" string stored on schedule rows."""
    return f"{hour:02d}:00:00"
