"""Challenge enrollment endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from cadence.api.dependencies import get_current_user_id, get_enrollment_service, get_habit_scheduler, get_today
from cadence.api.schemas import (
    AdvanceWeekResponse,
    CancelChallengeRequest,
    ChallengeHabitRequest,
    ChallengeResponse,
    CompleteChallengeRequest,
    FocusAreaResponse,
    ProgressResponse,
    ReorderFocusAreasRequest,
    StartChallengeRequest,
)
from cadence.challenges.catalog import ChallengeDefinition, list_challenges
from cadence.challenges.enrollment import EnrollmentService
from cadence.challenges.focus_areas import FocusAreaSequencer
from cadence.challenges.types import EnrollmentRecord
from cadence.scheduling.reminder_slots import HabitScheduleRow
from cadence.scheduling.service import HabitScheduler

router = APIRouter(prefix="/challenges", tags=["challenges"])


def _challenge_response(challenge: ChallengeDefinition, sequencer: FocusAreaSequencer | None = None) -> ChallengeResponse:
    sequencer = sequencer or FocusAreaSequencer(challenge)
    return ChallengeResponse(
        slug=challenge.slug,
        title=challenge.title,
        description=challenge.description,
        focus_areas=[
            FocusAreaResponse(
                slug=item.focus_area.slug,
                title=item.focus_area.title,
                week=item.week,
                description=item.focus_area.description,
                evidence=item.focus_area.evidence,
                survey_question=item.focus_area.survey_question,
                default_habits=list(item.focus_area.default_habits),
            )
            for item in sequencer.scheduled
        ],
    )


async def _owned_enrollment(service: EnrollmentService, enrollment_id: str, user_id: str) -> EnrollmentRecord:
    enrollment = await service.store.get_enrollment(enrollment_id)
    if enrollment is None or enrollment.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    return enrollment


@router.get("", response_model=list[ChallengeResponse])
def get_challenges() -> list[ChallengeResponse]:
    return [_challenge_response(challenge) for challenge in list_challenges()]


@router.get("/{slug}", response_model=ChallengeResponse)
def get_challenge(slug: str, service: EnrollmentService = Depends(get_enrollment_service)) -> ChallengeResponse:
    return _challenge_response(service.get_challenge(slug))


@router.post("/{slug}/focus-area-order", response_model=ChallengeResponse)
def preview_focus_area_order(
    slug: str,
    request: ReorderFocusAreasRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> ChallengeResponse:
    """Resolve a proposed order; stale or malformed orders come back in default order."""
    challenge = service.get_challenge(slug)
    return _challenge_response(challenge, FocusAreaSequencer.from_saved(challenge, request.focus_area_order))


@router.get("/{slug}/progress", response_model=ProgressResponse)
async def get_progress(
    slug: str,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_today),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> ProgressResponse:
    service.get_challenge(slug)
    progress = await service.get_challenge_progress(user_id, slug, today)
    if progress is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active enrollment in this challenge")
    return ProgressResponse(
        enrollment_id=progress.enrollment.id,
        status=progress.enrollment.status.value,
        effective_week=progress.effective_week,
        habit_week=progress.habit_week,
        week_start=progress.week_start,
        week_end=progress.week_end,
        days_remaining_in_week=progress.days_remaining_in_week,
        focus_area_slug=progress.focus_area_slug,
        focus_area_order=progress.focus_area_order,
        week_habit_chosen=progress.week_habit_chosen,
        previously_completed=progress.previously_completed,
        can_complete=progress.can_complete,
    )


@router.post("/{slug}/enroll", response_model=EnrollmentRecord, status_code=status.HTTP_201_CREATED)
async def start_challenge(
    slug: str,
    request: StartChallengeRequest,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_today),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentRecord:
    return await service.start_challenge(user_id, slug, request.survey_scores, request.focus_area_order, today)


@router.post("/{slug}/cancel", response_model=EnrollmentRecord)
async def cancel_challenge(
    slug: str,
    request: CancelChallengeRequest,
    user_id: str = Depends(get_current_user_id),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentRecord:
    return await service.cancel_challenge(user_id, request.enrollment_id, slug)


@router.post("/{slug}/habit", response_model=list[HabitScheduleRow], status_code=status.HTTP_201_CREATED)
async def schedule_challenge_habit(
    slug: str,
    request: ChallengeHabitRequest,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_today),
    scheduler: HabitScheduler = Depends(get_habit_scheduler),
) -> list[HabitScheduleRow]:
    result = await scheduler.schedule_challenge_habit(
        user_id, slug, request.habit_name, request.weekdays, request.time_of_day, today
    )
    return result.rows


@router.post("/enrollments/{enrollment_id}/advance", response_model=AdvanceWeekResponse)
async def advance_week(
    enrollment_id: str,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_today),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> AdvanceWeekResponse:
    await _owned_enrollment(service, enrollment_id, user_id)
    result = await service.advance_week(enrollment_id, today)
    return AdvanceWeekResponse(outcome=result.outcome, enrollment=result.enrollment)


@router.post("/enrollments/{enrollment_id}/complete", response_model=EnrollmentRecord)
async def complete_challenge(
    enrollment_id: str,
    request: CompleteChallengeRequest,
    user_id: str = Depends(get_current_user_id),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentRecord:
    await _owned_enrollment(service, enrollment_id, user_id)
    return await service.complete_challenge(enrollment_id, request.final_reflection)


@router.post("/enrollments/{enrollment_id}/abandon", response_model=EnrollmentRecord)
async def abandon_challenge(
    enrollment_id: str,
    user_id: str = Depends(get_current_user_id),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentRecord:
    await _owned_enrollment(service, enrollment_id, user_id)
    return await service.abandon_challenge(enrollment_id)
