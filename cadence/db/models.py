from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class Profile(Base):
    """User profile fields the scheduler reads (timezone only)."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    timezone: Mapped[str | None] = mapped_column(String, nullable=True)


class ChallengeEnrollment(Base):
    """A user's enrollment in a 4-week challenge.

    Schema:
    - id: UUID primary key
    - user_id: Enrolled user
    - challenge_slug: Slug of the static challenge definition
    - status: "active" | "completed" | "abandoned"
    - current_week: Legacy week counter, only read when survey_scores has no week1StartDate
    - survey_scores: JSON map of per-focus-area scores plus week1StartDate,
      focusAreaOrder and final_reflection
    - completed_at: Set when the challenge is completed
    - created_at: Record creation timestamp

    At most one active enrollment per user; enforced by the enrollment service,
    not by a constraint.
    """

    __tablename__ = "challenge_enrollments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    challenge_slug: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    current_week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    survey_scores: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_challenge_enrollments_user_status", "user_id", "status"),  # Common query: active enrollment
    )


class ChallengeHabitLog(Base):
    """Append-only record of the habit picked for each week of an enrollment."""

    __tablename__ = "challenge_habit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    enrollment_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    focus_area_slug: Mapped[str] = mapped_column(String, nullable=False)
    habit_name: Mapped[str] = mapped_column(String, nullable=False)
    logged_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("enrollment_id", "week_number", name="uq_challenge_habit_log_week"),
    )


class WeeklyHabit(Base):
    """One reminder slot: a habit on one weekday.

    day_of_week uses Sunday = 0 ... Saturday = 6.
    reminder_time is a zero-padded "HH:00:00" string in the row's timezone.
    challenge_slug is NULL for personal habits.
    """

    __tablename__ = "weekly_habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    habit_name: Mapped[str] = mapped_column(String(200), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    reminder_time: Mapped[str] = mapped_column(String(8), nullable=False)
    timezone: Mapped[str] = mapped_column(String, nullable=False)
    challenge_slug: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "habit_name", "day_of_week", name="uq_weekly_habits_user_habit_day"),
    )


class HabitTrackingConfig(Base):
    """Per-habit tracking preferences."""

    __tablename__ = "habit_tracking_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    habit_name: Mapped[str] = mapped_column(String(200), nullable=False)
    tracking_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tracking_type: Mapped[str] = mapped_column(String, nullable=False, default="boolean")
    challenge_slug: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "habit_name", name="uq_habit_tracking_config_user_habit"),
    )
