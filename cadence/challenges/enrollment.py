"""Challenge enrollment lifecycle.

States: active -> completed | abandoned. Completed and abandoned are terminal.

The current week is never advanced by a background job. It is recomputed from
week1StartDate on every read (see ``cadence.challenges.weeks``); the stored
current_week counter only moves forward on an explicit advance and is kept as
a fallback for enrollments created before start dates were recorded.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, timezone
from typing import Any

from loguru import logger

from cadence.challenges.catalog import ChallengeDefinition, get_challenge_by_slug
from cadence.challenges.focus_areas import FocusAreaSequencer, validate_focus_area_order
from cadence.challenges.types import (
    AdvanceWeekResult,
    ChallengeProgress,
    EnrollmentRecord,
    EnrollmentStatus,
    HabitLogEntry,
)
from cadence.challenges.weeks import (
    days_remaining_in_week,
    effective_week,
    get_week1_start,
    next_monday,
    week_end_date,
    week_start_date,
)
from cadence.constants import FINAL_REFLECTION_KEY, FOCUS_AREA_ORDER_KEY, PROGRAM_WEEKS, WEEK1_START_KEY
from cadence.errors import ActiveEnrollmentExistsError, NotFoundError, TerminalStateError, ValidationError
from cadence.persistence.store import ChallengeStore

ChallengeLookup = Callable[[str], ChallengeDefinition | None]


def habit_week_for(enrollment: EnrollmentRecord, today: date) -> int:
    """Week a newly chosen habit counts towards.

    Before the start date (effective week 0) the pick counts for week 1.
    """
    return effective_week(enrollment, today) or 1


class EnrollmentService:
    """Orchestrates enrollment transitions against a ChallengeStore."""

    def __init__(self, store: ChallengeStore, challenge_lookup: ChallengeLookup = get_challenge_by_slug):
        self.store = store
        self._lookup = challenge_lookup

    def get_challenge(self, slug: str) -> ChallengeDefinition:
        """Raises NotFoundError for unknown slugs."""
        challenge = self._lookup(slug)
        if challenge is None:
            raise NotFoundError(f"Challenge '{slug}' not found")
        return challenge

    async def _require_enrollment(self, enrollment_id: str) -> EnrollmentRecord:
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def get_active_enrollment(self, user_id: str) -> EnrollmentRecord | None:
        return await self.store.get_active_enrollment(user_id)

    async def get_completed_enrollments(self, user_id: str) -> list[EnrollmentRecord]:
        return await self.store.get_completed_enrollments(user_id)

    async def start_challenge(
        self,
        user_id: str,
        challenge_slug: str,
        survey_scores: dict[str, Any] | None,
        focus_area_order: Sequence[str] | None,
        today: date,
    ) -> EnrollmentRecord:
        """Enroll a user, deferring week 1 to the next Monday.

        Args:
            user_id: User to enroll
            challenge_slug: Challenge to start
            survey_scores: Self-assessment scores keyed by focus area slug
            focus_area_order: Optional custom order of focus area slugs
            today: Enrollment day

        Returns:
            The new active enrollment

        Raises:
            NotFoundError: If the challenge does not exist
            ActiveEnrollmentExistsError: If the user already has an active enrollment
            ValidationError: If focus_area_order is not a permutation of the challenge's focus areas
        """
        log = logger.bind(user_id=user_id, challenge_slug=challenge_slug)
        challenge = self.get_challenge(challenge_slug)

        if focus_area_order is not None and not validate_focus_area_order(focus_area_order, challenge.focus_area_slugs):
            raise ValidationError(f"Focus area order must list each focus area of '{challenge_slug}' exactly once")

        active = await self.store.get_active_enrollment(user_id)
        if active is not None:
            raise ActiveEnrollmentExistsError(user_id, active.challenge_slug)

        scores = dict(survey_scores or {})
        if focus_area_order is not None:
            scores[FOCUS_AREA_ORDER_KEY] = list(focus_area_order)
        scores[WEEK1_START_KEY] = next_monday(today).isoformat()

        enrollment = await self.store.insert_enrollment(
            {
                "user_id": user_id,
                "challenge_slug": challenge_slug,
                "status": EnrollmentStatus.ACTIVE.value,
                "current_week": 1,
                "survey_scores": scores,
            }
        )
        log.bind(enrollment_id=enrollment.id).info(f"Challenge started; week 1 begins {scores[WEEK1_START_KEY]}")
        return enrollment

    async def advance_week(self, enrollment_id: str, today: date) -> AdvanceWeekResult:
        """Move the stored week counter forward by one.

        The target is one past the larger of the stored counter and the
        date-derived week, so repeated or out-of-order calls never move the
        counter backwards. Past week 4 nothing is written and the result says
        ``already_at_final_week``.

        Raises:
            NotFoundError: If the enrollment does not exist
            TerminalStateError: If the enrollment is no longer active
        """
        enrollment = await self._require_enrollment(enrollment_id)
        if not enrollment.is_active:
            raise TerminalStateError(enrollment_id, enrollment.status.value, "advance")

        target = max(enrollment.current_week, effective_week(enrollment, today)) + 1
        log = logger.bind(enrollment_id=enrollment_id, target_week=target)
        if target > PROGRAM_WEEKS:
            log.info("Enrollment already at final week; route to completion")
            return AdvanceWeekResult(outcome="already_at_final_week", enrollment=enrollment)

        updated = await self.store.update_enrollment(enrollment_id, {"current_week": target})
        if updated is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        log.info("Advanced enrollment week")
        return AdvanceWeekResult(outcome="advanced", enrollment=updated)

    async def complete_challenge(
        self,
        enrollment_id: str,
        final_reflection: str | None,
        now: datetime | None = None,
    ) -> EnrollmentRecord:
        """Mark an active enrollment completed, keeping the final reflection.

        Raises:
            NotFoundError: If the enrollment does not exist
            TerminalStateError: If the enrollment is not active
        """
        enrollment = await self._require_enrollment(enrollment_id)
        if not enrollment.is_active:
            raise TerminalStateError(enrollment_id, enrollment.status.value, "complete")

        scores = {**enrollment.survey_scores, FINAL_REFLECTION_KEY: final_reflection}
        updated = await self.store.update_enrollment(
            enrollment_id,
            {
                "status": EnrollmentStatus.COMPLETED.value,
                "completed_at": now or datetime.now(timezone.utc),
                "survey_scores": scores,
            },
        )
        if updated is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        logger.bind(enrollment_id=enrollment_id, user_id=enrollment.user_id).info("Challenge completed")
        return updated

    async def abandon_challenge(self, enrollment_id: str) -> EnrollmentRecord:
        """Mark an enrollment abandoned. Already-abandoned enrollments are left as is.

        Raises:
            NotFoundError: If the enrollment does not exist
            TerminalStateError: If the enrollment was completed
        """
        enrollment = await self._require_enrollment(enrollment_id)
        return await self._abandon(enrollment)

    async def _abandon(self, enrollment: EnrollmentRecord) -> EnrollmentRecord:
        log = logger.bind(enrollment_id=enrollment.id, user_id=enrollment.user_id)
        if enrollment.status == EnrollmentStatus.ABANDONED:
            log.debug("Enrollment already abandoned")
            return enrollment
        if enrollment.status == EnrollmentStatus.COMPLETED:
            raise TerminalStateError(enrollment.id, enrollment.status.value, "abandon")

        updated = await self.store.update_enrollment(enrollment.id, {"status": EnrollmentStatus.ABANDONED.value})
        if updated is None:
            raise NotFoundError(f"Enrollment {enrollment.id} not found")
        log.info("Enrollment abandoned")
        return updated

    async def cancel_challenge(self, user_id: str, enrollment_id: str, challenge_slug: str) -> EnrollmentRecord:
        """Abandon an enrollment and remove the habits it created.

        Steps run in a fixed order and each is idempotent, so a retry after a
        partial failure converges on the same end state:

        1. enrollment status -> abandoned
        2. delete the user's schedule rows tagged with the challenge slug
        3. delete the user's tracking configs tagged with the challenge slug

        Personal (untagged) habits are never touched.

        Raises:
            NotFoundError: If the enrollment does not exist or belongs to another user
            ValidationError: If the slug does not match the enrollment
            TerminalStateError: If the enrollment was completed
        """
        enrollment = await self._require_enrollment(enrollment_id)
        if enrollment.user_id != user_id:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        if enrollment.challenge_slug != challenge_slug:
            raise ValidationError(f"Enrollment {enrollment_id} is not for challenge '{challenge_slug}'")

        abandoned = await self._abandon(enrollment)
        rows_deleted = await self.store.delete_habit_rows_by_challenge(user_id, challenge_slug)
        configs_deleted = await self.store.delete_tracking_config_by_challenge(user_id, challenge_slug)

        logger.bind(user_id=user_id, enrollment_id=enrollment_id, challenge_slug=challenge_slug).info(
            f"Challenge cancelled; removed {rows_deleted} habit rows and {configs_deleted} tracking configs"
        )
        return abandoned

    async def log_challenge_habit(
        self,
        enrollment_id: str,
        week_number: int,
        focus_area_slug: str,
        habit_name: str,
    ) -> HabitLogEntry:
        """Record the habit chosen for one week of an enrollment.

        Raises:
            ValidationError: If the week is out of range or already has a habit
        """
        if not 1 <= week_number <= PROGRAM_WEEKS:
            raise ValidationError(f"Week number must be between 1 and {PROGRAM_WEEKS}, got {week_number}")

        existing = await self.store.get_habit_log(enrollment_id)
        if any(entry.week_number == week_number for entry in existing):
            raise ValidationError(f"A habit has already been chosen for week {week_number}")

        entry = await self.store.insert_habit_log(
            HabitLogEntry(
                enrollment_id=enrollment_id,
                week_number=week_number,
                focus_area_slug=focus_area_slug,
                habit_name=habit_name,
            )
        )
        logger.bind(enrollment_id=enrollment_id, week_number=week_number).info(f"Logged challenge habit '{habit_name}'")
        return entry

    async def get_challenge_habit_log(self, enrollment_id: str) -> list[HabitLogEntry]:
        return await self.store.get_habit_log(enrollment_id)

    def sequencer_for(self, enrollment: EnrollmentRecord) -> FocusAreaSequencer:
        """Focus area order for an enrollment, default order if the saved one is stale."""
        challenge = self.get_challenge(enrollment.challenge_slug)
        return FocusAreaSequencer.from_saved(challenge, enrollment.survey_scores.get(FOCUS_AREA_ORDER_KEY))

    async def get_challenge_progress(self, user_id: str, challenge_slug: str, today: date) -> ChallengeProgress | None:
        """Summarize an active enrollment in a challenge for one day.

        Returns:
            None if the user has no active enrollment in this challenge
        """
        enrollment = await self.store.get_active_enrollment(user_id)
        if enrollment is None or enrollment.challenge_slug != challenge_slug:
            return None

        week = effective_week(enrollment, today)
        habit_week = habit_week_for(enrollment, today)
        sequencer = self.sequencer_for(enrollment)
        focus_area = sequencer.focus_area_for_week(habit_week)
        habit_log = await self.store.get_habit_log(enrollment.id)
        completed = await self.store.get_completed_enrollments(user_id)

        start = get_week1_start(enrollment)
        return ChallengeProgress(
            enrollment=enrollment,
            effective_week=week,
            habit_week=habit_week,
            week_start=week_start_date(start, habit_week) if start else None,
            week_end=week_end_date(start, habit_week) if start else None,
            days_remaining_in_week=days_remaining_in_week(start, today) if start else 0,
            focus_area_slug=focus_area.slug if focus_area else None,
            focus_area_order=sequencer.order(),
            week_habit_chosen=any(entry.week_number == habit_week for entry in habit_log),
            habit_log=habit_log,
            previously_completed=any(e.challenge_slug == challenge_slug for e in completed),
            can_complete=max(enrollment.current_week, week) >= PROGRAM_WEEKS,
        )
