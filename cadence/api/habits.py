"""Personal habit scheduling endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from cadence.api.dependencies import get_current_user_id, get_habit_scheduler
from cadence.api.schemas import HabitCountResponse, ReminderPreviewRequest, ScheduleHabitsRequest, TimeOfDayResponse
from cadence.constants import MAX_ACTIVE_HABITS
from cadence.scheduling.reminder_slots import HabitScheduleRow, build_reminder_rows, validate_custom_habit_name
from cadence.scheduling.service import HabitPlan, HabitScheduler
from cadence.scheduling.time_of_day import TIME_OF_DAY_OPTIONS

router = APIRouter(prefix="/habits", tags=["habits"])


@router.get("/time-of-day", response_model=list[TimeOfDayResponse])
def get_time_of_day_options() -> list[TimeOfDayResponse]:
    return [TimeOfDayResponse(key=o.key, label=o.label, hour=o.hour) for o in TIME_OF_DAY_OPTIONS]


@router.get("/count", response_model=HabitCountResponse)
async def get_habit_count(
    user_id: str = Depends(get_current_user_id),
    scheduler: HabitScheduler = Depends(get_habit_scheduler),
) -> HabitCountResponse:
    return HabitCountResponse(
        personal_habits=await scheduler.get_personal_habit_count(user_id),
        total_habits=len(await scheduler.store.get_existing_habit_names(user_id)),
        limit=MAX_ACTIVE_HABITS,
    )


@router.post("/reminder-rows", response_model=list[HabitScheduleRow])
def preview_reminder_rows(request: ReminderPreviewRequest) -> list[HabitScheduleRow]:
    """Expand a selection into reminder rows without saving them."""
    name = validate_custom_habit_name(request.habit_name)
    return build_reminder_rows(name, request.weekdays, request.time_of_day, request.timezone)


@router.post("/schedule", response_model=list[HabitScheduleRow], status_code=status.HTTP_201_CREATED)
async def schedule_habits(
    request: ScheduleHabitsRequest,
    user_id: str = Depends(get_current_user_id),
    scheduler: HabitScheduler = Depends(get_habit_scheduler),
) -> list[HabitScheduleRow]:
    plans = [HabitPlan(habit_name=h.habit_name, weekdays=h.weekdays, time_of_day=h.time_of_day) for h in request.habits]
    return await scheduler.schedule_personal_habits(user_id, plans)
