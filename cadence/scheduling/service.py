"""Habit scheduling flows.

Turns a user's habit selections into stored reminder rows. All validation
(habit text, weekday selection, time bucket, habit ceiling) happens before the
first write, so a rejected request leaves nothing behind.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from cadence.challenges.enrollment import EnrollmentService, habit_week_for
from cadence.challenges.types import HabitLogEntry, TrackingConfig
from cadence.config.settings import settings
from cadence.errors import NotFoundError, ValidationError
from cadence.persistence.store import ChallengeStore, ProfileStore
from cadence.scheduling.capacity import ensure_capacity
from cadence.scheduling.reminder_slots import HabitScheduleRow, build_reminder_rows, validate_custom_habit_name
from cadence.scheduling.time_of_day import DEFAULT_TIME_OF_DAY
from cadence.scheduling.weekdays import Weekday


@dataclass
class HabitPlan:
    """One habit as selected in the scheduling step."""

    habit_name: str
    weekdays: Sequence[Weekday | str | int] = field(default_factory=list)
    time_of_day: str = DEFAULT_TIME_OF_DAY


@dataclass(frozen=True)
class ChallengeHabitScheduled:
    rows: list[HabitScheduleRow]
    log_entry: HabitLogEntry


class HabitScheduler:
    """Schedules personal and challenge habits for a user."""

    def __init__(self, store: ChallengeStore, profiles: ProfileStore, enrollments: EnrollmentService | None = None):
        self.store = store
        self.profiles = profiles
        self.enrollments = enrollments or EnrollmentService(store)

    async def resolve_timezone(self, user_id: str) -> str:
        """User's profile timezone, or the default when missing or invalid."""
        profile = await self.profiles.get_profile(user_id)
        tz = profile.timezone if profile else None
        if not tz:
            return settings.default_timezone
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            logger.bind(user_id=user_id, timezone=tz).warning("Invalid profile timezone, using default")
            return settings.default_timezone
        return tz

    async def local_today(self, user_id: str, now: datetime | None = None) -> date:
        """Calendar day the user is on, in their profile timezone."""
        tz = await self.resolve_timezone(user_id)
        return (now or datetime.now(UTC)).astimezone(ZoneInfo(tz)).date()

    async def get_personal_habit_count(self, user_id: str) -> int:
        return len(await self.store.get_personal_habit_names(user_id))

    async def schedule_personal_habits(self, user_id: str, plans: Sequence[HabitPlan]) -> list[HabitScheduleRow]:
        """Save reminder rows for newly selected personal habits.

        Plans without any weekday are skipped, but at least one plan must have
        a weekday selected.

        Returns:
            The rows written

        Raises:
            ValidationError: If no plan has a weekday, a habit name is invalid,
                a bucket is unknown, or the habit ceiling would be exceeded
        """
        scheduled = [plan for plan in plans if plan.weekdays]
        if not scheduled:
            raise ValidationError("Please select at least one day for at least one habit.")

        names = [validate_custom_habit_name(plan.habit_name) for plan in scheduled]
        existing = await self.store.get_existing_habit_names(user_id)
        ensure_capacity(existing, names)

        timezone = await self.resolve_timezone(user_id)
        rows: list[HabitScheduleRow] = []
        for name, plan in zip(names, scheduled):
            rows.extend(build_reminder_rows(name, plan.weekdays, plan.time_of_day, timezone))

        await self.store.upsert_habit_rows(user_id, rows)
        logger.bind(user_id=user_id).info(f"Scheduled {len(scheduled)} personal habits ({len(rows)} reminder rows)")
        return rows

    async def schedule_challenge_habit(
        self,
        user_id: str,
        challenge_slug: str,
        habit_name: str,
        weekdays: Sequence[Weekday | str | int],
        time_of_day: str | None,
        today: date,
    ) -> ChallengeHabitScheduled:
        """Schedule the habit chosen for the current week of a challenge.

        Rows are tagged with the challenge slug so cancelling the challenge
        removes them. A tracking config (disabled, boolean) is stored and the
        choice is logged against the current week's focus area.

        Raises:
            NotFoundError: If the user has no active enrollment in the challenge
            ValidationError: If the selection is invalid, the name is already
                one of the user's habits, the habit ceiling would be exceeded,
                or this week already has a habit
        """
        enrollment = await self.store.get_active_enrollment(user_id)
        if enrollment is None or enrollment.challenge_slug != challenge_slug:
            raise NotFoundError(f"No active enrollment in '{challenge_slug}'")

        name = validate_custom_habit_name(habit_name)
        week = habit_week_for(enrollment, today)
        focus_area = self.enrollments.sequencer_for(enrollment).focus_area_for_week(week)
        if focus_area is None:
            raise NotFoundError(f"Challenge '{challenge_slug}' has no focus area for week {week}")

        habit_log = await self.store.get_habit_log(enrollment.id)
        if any(entry.week_number == week for entry in habit_log):
            raise ValidationError(f"A habit has already been chosen for week {week}")

        existing = await self.store.get_existing_habit_names(user_id)
        if name in existing:
            raise ValidationError(f"'{name}' is already one of your habits. Pick a different habit for this week.")
        ensure_capacity(existing, [name])

        timezone = await self.resolve_timezone(user_id)
        rows = build_reminder_rows(name, weekdays, time_of_day, timezone, challenge_slug=challenge_slug)

        await self.store.upsert_habit_rows(user_id, rows)
        await self.store.upsert_tracking_config(
            user_id,
            TrackingConfig(habit_name=name, tracking_enabled=False, tracking_type="boolean", challenge_slug=challenge_slug),
        )
        entry = await self.enrollments.log_challenge_habit(enrollment.id, week, focus_area.slug, name)

        logger.bind(user_id=user_id, enrollment_id=enrollment.id, week=week).info(
            f"Scheduled challenge habit for focus area '{focus_area.slug}'"
        )
        return ChallengeHabitScheduled(rows=rows, log_entry=entry)
