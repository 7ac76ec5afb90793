"""Types for challenge enrollments and progress.

Store implementations return these records rather than ORM rows so the
enrollment service never holds a live database session.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class EnrollmentRecord(BaseModel):
    """A user's enrollment in one challenge.

    Attributes:
        id: Enrollment identifier
        user_id: Enrolled user
        challenge_slug: Challenge definition slug
        status: Lifecycle state
        current_week: Stored week counter, used when no start date is recorded
        survey_scores: Per-focus-area scores plus week1StartDate, focusAreaOrder
            and final_reflection
        completed_at: Completion timestamp (completed enrollments only)
        created_at: Creation timestamp
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    challenge_slug: str
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    current_week: int = 1
    survey_scores: dict[str, Any] = Field(default_factory=dict)
    completed_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE


class HabitLogEntry(BaseModel):
    """The habit a user picked for one week of an enrollment."""

    model_config = ConfigDict(from_attributes=True)

    enrollment_id: str
    week_number: int = Field(ge=1, le=4)
    focus_area_slug: str
    habit_name: str
    logged_at: datetime | None = None


class TrackingConfig(BaseModel):
    """Per-habit tracking preferences."""

    model_config = ConfigDict(from_attributes=True)

    habit_name: str
    tracking_enabled: bool = False
    tracking_type: str = "boolean"
    challenge_slug: str | None = None


class Profile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    timezone: str | None = None


class AdvanceWeekResult(BaseModel):
    """Outcome of a week advance.

    ``already_at_final_week`` is an expected terminal outcome: callers should
    route the user to completion instead of retrying.
    """

    outcome: Literal["advanced", "already_at_final_week"]
    enrollment: EnrollmentRecord

    @property
    def advanced(self) -> bool:
        return self.outcome == "advanced"


class ChallengeProgress(BaseModel):
    """Where a user stands in an active challenge, computed for one day."""

    enrollment: EnrollmentRecord
    effective_week: int
    habit_week: int
    week_start: date | None
    week_end: date | None
    days_remaining_in_week: int
    focus_area_slug: str | None
    focus_area_order: list[str]
    week_habit_chosen: bool
    habit_log: list[HabitLogEntry]
    previously_completed: bool
    can_complete: bool
