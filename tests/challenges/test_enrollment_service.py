"""Tests for the challenge enrollment lifecycle."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from cadence.challenges.enrollment import EnrollmentService, habit_week_for
from cadence.challenges.types import EnrollmentRecord, EnrollmentStatus, HabitLogEntry
from cadence.errors import (
    ActiveEnrollmentExistsError,
    NotFoundError,
    PersistenceError,
    TerminalStateError,
    ValidationError,
)

ENROLL_DAY = date(2024, 3, 6)  # Wednesday; week 1 starts Monday 2024-03-11


@pytest.fixture
def service(store, challenge_lookup) -> EnrollmentService:
    return EnrollmentService(store, challenge_lookup=challenge_lookup)


def _record(status: EnrollmentStatus = EnrollmentStatus.ACTIVE, **overrides) -> EnrollmentRecord:
    values = {
        "id": "enr-1",
        "user_id": "user-1",
        "challenge_slug": "test-challenge",
        "status": status,
        "survey_scores": {"week1StartDate": "2024-03-11"},
    }
    values.update(overrides)
    return EnrollmentRecord(**values)


def _mock_store(enrollment: EnrollmentRecord | None) -> MagicMock:
    store = MagicMock()
    store.get_enrollment = AsyncMock(return_value=enrollment)
    store.update_enrollment = AsyncMock(
        side_effect=lambda _id, partial: enrollment.model_copy(update=partial) if enrollment else None
    )
    store.delete_habit_rows_by_challenge = AsyncMock(return_value=2)
    store.delete_tracking_config_by_challenge = AsyncMock(return_value=1)
    return store


class TestStartChallenge:
    """Enrollment defers week 1 to the next Monday."""

    @pytest.mark.asyncio
    async def test_records_week1_start(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, {"sleep": 3}, None, ENROLL_DAY)

        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert enrollment.current_week == 1
        assert enrollment.survey_scores == {"sleep": 3, "week1StartDate": "2024-03-11"}
        assert (await service.get_active_enrollment("user-1")).id == enrollment.id

    @pytest.mark.asyncio
    async def test_saves_custom_order(self, service, challenge):
        order = ["movement", "sleep", "stress", "nutrition"]

        enrollment = await service.start_challenge("user-1", challenge.slug, None, order, ENROLL_DAY)

        assert enrollment.survey_scores["focusAreaOrder"] == order
        assert service.sequencer_for(enrollment).order() == order

    @pytest.mark.asyncio
    async def test_rejects_invalid_order(self, service, challenge):
        with pytest.raises(ValidationError):
            await service.start_challenge("user-1", challenge.slug, None, ["sleep", "movement"], ENROLL_DAY)

        assert await service.get_active_enrollment("user-1") is None

    @pytest.mark.asyncio
    async def test_unknown_challenge(self, service):
        with pytest.raises(NotFoundError):
            await service.start_challenge("user-1", "no-such-challenge", None, None, ENROLL_DAY)

    @pytest.mark.asyncio
    async def test_one_active_enrollment_per_user(self, service, challenge):
        await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        with pytest.raises(ActiveEnrollmentExistsError):
            await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

    @pytest.mark.asyncio
    async def test_can_restart_after_abandoning(self, service, challenge):
        first = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.abandon_challenge(first.id)

        second = await service.start_challenge("user-1", challenge.slug, None, None, date(2024, 3, 12))

        assert second.id != first.id
        assert second.survey_scores["week1StartDate"] == "2024-03-18"


class TestAdvanceWeek:
    @pytest.mark.asyncio
    async def test_advances_past_derived_week(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        result = await service.advance_week(enrollment.id, date(2024, 3, 19))

        assert result.advanced
        assert result.enrollment.current_week == 3

    @pytest.mark.asyncio
    async def test_never_moves_backwards(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.advance_week(enrollment.id, date(2024, 3, 12))
        await service.advance_week(enrollment.id, date(2024, 3, 12))

        result = await service.advance_week(enrollment.id, date(2024, 3, 12))

        assert result.enrollment.current_week == 4

    @pytest.mark.asyncio
    async def test_final_week_is_a_result_not_an_error(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        result = await service.advance_week(enrollment.id, date(2024, 4, 3))

        assert result.outcome == "already_at_final_week"
        assert not result.advanced
        assert result.enrollment.current_week == 1

    @pytest.mark.asyncio
    async def test_final_week_does_not_write(self):
        store = _mock_store(_record(current_week=4))

        result = await EnrollmentService(store).advance_week("enr-1", date(2024, 3, 12))

        assert result.outcome == "already_at_final_week"
        store.update_enrollment.assert_not_called()

    @pytest.mark.asyncio
    async def test_completed_enrollment_cannot_advance(self):
        store = _mock_store(_record(EnrollmentStatus.COMPLETED))

        with pytest.raises(TerminalStateError) as exc_info:
            await EnrollmentService(store).advance_week("enr-1", date(2024, 3, 12))
        assert exc_info.value.status == "completed"

    @pytest.mark.asyncio
    async def test_missing_enrollment(self, service):
        with pytest.raises(NotFoundError):
            await service.advance_week("missing", ENROLL_DAY)


class TestCompleteAndAbandon:
    """Completed and abandoned are terminal."""

    @pytest.mark.asyncio
    async def test_complete_keeps_reflection(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, {"sleep": 2}, None, ENROLL_DAY)
        finished_at = datetime(2024, 4, 8, 9, 0, tzinfo=timezone.utc)

        completed = await service.complete_challenge(enrollment.id, "Sleeping much better", now=finished_at)

        assert completed.status == EnrollmentStatus.COMPLETED
        assert completed.completed_at is not None
        assert completed.survey_scores["final_reflection"] == "Sleeping much better"
        assert completed.survey_scores["sleep"] == 2
        assert await service.get_active_enrollment("user-1") is None
        assert [e.id for e in await service.get_completed_enrollments("user-1")] == [enrollment.id]

    @pytest.mark.asyncio
    async def test_complete_twice_rejected(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.complete_challenge(enrollment.id, None)

        with pytest.raises(TerminalStateError):
            await service.complete_challenge(enrollment.id, None)

    @pytest.mark.asyncio
    async def test_abandon_is_idempotent(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        first = await service.abandon_challenge(enrollment.id)
        second = await service.abandon_challenge(enrollment.id)

        assert first.status == second.status == EnrollmentStatus.ABANDONED

    @pytest.mark.asyncio
    async def test_completed_cannot_be_abandoned(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.complete_challenge(enrollment.id, None)

        with pytest.raises(TerminalStateError):
            await service.abandon_challenge(enrollment.id)

    @pytest.mark.asyncio
    async def test_abandoned_cannot_be_completed(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.abandon_challenge(enrollment.id)

        with pytest.raises(TerminalStateError):
            await service.complete_challenge(enrollment.id, None)


class TestCancelChallenge:
    """Cancel = abandon, then delete tagged rows, then delete tagged configs."""

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self):
        store = _mock_store(_record())
        calls = MagicMock()
        calls.attach_mock(store.update_enrollment, "update_enrollment")
        calls.attach_mock(store.delete_habit_rows_by_challenge, "delete_habit_rows_by_challenge")
        calls.attach_mock(store.delete_tracking_config_by_challenge, "delete_tracking_config_by_challenge")

        result = await EnrollmentService(store).cancel_challenge("user-1", "enr-1", "test-challenge")

        assert result.status == EnrollmentStatus.ABANDONED
        assert calls.mock_calls == [
            call.update_enrollment("enr-1", {"status": "abandoned"}),
            call.delete_habit_rows_by_challenge("user-1", "test-challenge"),
            call.delete_tracking_config_by_challenge("user-1", "test-challenge"),
        ]

    @pytest.mark.asyncio
    async def test_retry_after_abandoned_still_deletes(self):
        store = _mock_store(_record(EnrollmentStatus.ABANDONED))

        await EnrollmentService(store).cancel_challenge("user-1", "enr-1", "test-challenge")

        store.update_enrollment.assert_not_called()
        store.delete_habit_rows_by_challenge.assert_awaited_once_with("user-1", "test-challenge")
        store.delete_tracking_config_by_challenge.assert_awaited_once_with("user-1", "test-challenge")

    @pytest.mark.asyncio
    async def test_failed_delete_propagates_after_status_update(self):
        store = _mock_store(_record())
        store.delete_habit_rows_by_challenge = AsyncMock(
            side_effect=PersistenceError("delete_habit_rows_by_challenge", "connection reset")
        )

        with pytest.raises(PersistenceError):
            await EnrollmentService(store).cancel_challenge("user-1", "enr-1", "test-challenge")

        store.update_enrollment.assert_awaited_once()
        store.delete_tracking_config_by_challenge.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_users_enrollment_not_found(self):
        store = _mock_store(_record())

        with pytest.raises(NotFoundError):
            await EnrollmentService(store).cancel_challenge("user-2", "enr-1", "test-challenge")
        store.update_enrollment.assert_not_called()

    @pytest.mark.asyncio
    async def test_slug_mismatch_rejected(self):
        store = _mock_store(_record())

        with pytest.raises(ValidationError):
            await EnrollmentService(store).cancel_challenge("user-1", "enr-1", "other-challenge")

    @pytest.mark.asyncio
    async def test_completed_enrollment_cannot_be_cancelled(self):
        store = _mock_store(_record(EnrollmentStatus.COMPLETED))

        with pytest.raises(TerminalStateError):
            await EnrollmentService(store).cancel_challenge("user-1", "enr-1", "test-challenge")
        store.delete_habit_rows_by_challenge.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_twice_converges(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        await service.cancel_challenge("user-1", enrollment.id, challenge.slug)
        again = await service.cancel_challenge("user-1", enrollment.id, challenge.slug)

        assert again.status == EnrollmentStatus.ABANDONED
        assert await service.get_active_enrollment("user-1") is None


class TestHabitLog:
    @pytest.mark.asyncio
    async def test_one_habit_per_week(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.log_challenge_habit(enrollment.id, 1, "sleep", "Lights out")

        with pytest.raises(ValidationError):
            await service.log_challenge_habit(enrollment.id, 1, "sleep", "No screens")

        await service.log_challenge_habit(enrollment.id, 2, "movement", "Walk")
        log = await service.get_challenge_habit_log(enrollment.id)
        assert [(entry.week_number, entry.habit_name) for entry in log] == [(1, "Lights out"), (2, "Walk")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("week", [0, 5])
    async def test_week_out_of_range(self, service, week):
        with pytest.raises(ValidationError):
            await service.log_challenge_habit("enr-1", week, "sleep", "Lights out")


class TestProgress:
    """Progress is recomputed from the start date on every read."""

    def test_habit_week_before_start_is_week_one(self):
        assert habit_week_for(_record(), ENROLL_DAY) == 1
        assert habit_week_for(_record(), date(2024, 3, 20)) == 2

    @pytest.mark.asyncio
    async def test_progress_before_start(self, service, challenge):
        await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        progress = await service.get_challenge_progress("user-1", challenge.slug, ENROLL_DAY)

        assert progress.effective_week == 0
        assert progress.habit_week == 1
        assert progress.week_start == date(2024, 3, 11)
        assert progress.week_end == date(2024, 3, 17)
        assert progress.focus_area_slug == "sleep"
        assert not progress.week_habit_chosen
        assert not progress.can_complete

    @pytest.mark.asyncio
    async def test_progress_mid_challenge(self, service, challenge):
        enrollment = await service.start_challenge(
            "user-1", challenge.slug, None, ["nutrition", "stress", "sleep", "movement"], ENROLL_DAY
        )
        await service.log_challenge_habit(enrollment.id, 2, "stress", "Box breathing")

        progress = await service.get_challenge_progress("user-1", challenge.slug, date(2024, 3, 20))

        assert progress.effective_week == 2
        assert progress.focus_area_slug == "stress"
        assert progress.days_remaining_in_week == 4
        assert progress.week_habit_chosen
        assert [entry.habit_name for entry in progress.habit_log] == ["Box breathing"]

    @pytest.mark.asyncio
    async def test_can_complete_in_final_week(self, service, challenge):
        await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        progress = await service.get_challenge_progress("user-1", challenge.slug, date(2024, 4, 2))

        assert progress.effective_week == 4
        assert progress.can_complete

    @pytest.mark.asyncio
    async def test_previously_completed(self, service, challenge):
        first = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)
        await service.complete_challenge(first.id, None)
        await service.start_challenge("user-1", challenge.slug, None, None, date(2024, 5, 1))

        progress = await service.get_challenge_progress("user-1", challenge.slug, date(2024, 5, 1))

        assert progress.previously_completed

    @pytest.mark.asyncio
    async def test_no_progress_without_active_enrollment(self, service, challenge):
        assert await service.get_challenge_progress("user-1", challenge.slug, ENROLL_DAY) is None

    @pytest.mark.asyncio
    async def test_log_entries_are_records(self, service, challenge):
        enrollment = await service.start_challenge("user-1", challenge.slug, None, None, ENROLL_DAY)

        entry = await service.log_challenge_habit(enrollment.id, 1, "sleep", "Lights out")

        assert isinstance(entry, HabitLogEntry)
        assert entry.logged_at is not None
