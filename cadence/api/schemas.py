"""Request and response bodies for the scheduler HTTP API."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from cadence.challenges.types import EnrollmentRecord
from cadence.scheduling.time_of_day import DEFAULT_TIME_OF_DAY
from cadence.scheduling.weekdays import Weekday


class FocusAreaResponse(BaseModel):
    slug: str
    title: str
    week: int
    description: str
    evidence: str
    survey_question: str
    default_habits: list[str]


class ChallengeResponse(BaseModel):
    slug: str
    title: str
    description: str
    focus_areas: list[FocusAreaResponse]


class StartChallengeRequest(BaseModel):
    survey_scores: dict[str, Any] = Field(default_factory=dict)
    focus_area_order: list[str] | None = Field(default=None, description="Custom week order of focus area slugs")


class CompleteChallengeRequest(BaseModel):
    final_reflection: str | None = None


class CancelChallengeRequest(BaseModel):
    enrollment_id: str


class AdvanceWeekResponse(BaseModel):
    outcome: str
    enrollment: EnrollmentRecord


class ReorderFocusAreasRequest(BaseModel):
    focus_area_order: list[str]


class HabitSelection(BaseModel):
    habit_name: str
    weekdays: list[Weekday | str] = Field(default_factory=list, description="Sunday = 0 or short day names")
    time_of_day: str = DEFAULT_TIME_OF_DAY


class ChallengeHabitRequest(HabitSelection):
    pass


class ScheduleHabitsRequest(BaseModel):
    habits: list[HabitSelection]


class ReminderPreviewRequest(HabitSelection):
    timezone: str | None = None


class TimeOfDayResponse(BaseModel):
    key: str
    label: str
    hour: int


class HabitCountResponse(BaseModel):
    personal_habits: int
    total_habits: int
    limit: int


class ProgressResponse(BaseModel):
    enrollment_id: str
    status: str
    effective_week: int
    habit_week: int
    week_start: date | None
    week_end: date | None
    days_remaining_in_week: int
    focus_area_slug: str | None
    focus_area_order: list[str]
    week_habit_chosen: bool
    previously_completed: bool
    can_complete: bool
