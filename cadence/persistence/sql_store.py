"""SQLAlchemy implementation of the challenge and profile stores.

Each method runs in its own session and commits on exit. ORM rows are turned
into records before the session closes. Any SQLAlchemy failure is logged and
re-raised as PersistenceError so callers can retry the whole operation.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Sequence
from contextlib import AbstractContextManager, contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cadence.challenges.types import EnrollmentRecord, EnrollmentStatus, HabitLogEntry, Profile, TrackingConfig
from cadence.db.models import ChallengeEnrollment, ChallengeHabitLog, HabitTrackingConfig, WeeklyHabit
from cadence.db.models import Profile as ProfileRow
from cadence.db.session import get_session
from cadence.errors import PersistenceError
from cadence.scheduling.reminder_slots import HabitScheduleRow

SessionFactory = Callable[[], AbstractContextManager[Session]]

_ENROLLMENT_FIELDS = {"status", "current_week", "survey_scores", "completed_at"}


@contextmanager
def _store_operation(session_factory: SessionFactory, operation: str, **context: Any) -> Generator[Session, None, None]:
    try:
        with session_factory() as session:
            yield session
    except SQLAlchemyError as e:
        logger.bind(operation=operation, **context).error(f"Persistence operation failed: {e}")
        raise PersistenceError(operation, str(e)) from e


def _to_enrollment(row: ChallengeEnrollment) -> EnrollmentRecord:
    return EnrollmentRecord(
        id=row.id,
        user_id=row.user_id,
        challenge_slug=row.challenge_slug,
        status=EnrollmentStatus(row.status),
        current_week=row.current_week,
        survey_scores=dict(row.survey_scores or {}),
        completed_at=row.completed_at,
        created_at=row.created_at,
    )


class SqlChallengeStore:
    """Challenge store backed by the relational database."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def get_active_enrollment(self, user_id: str) -> EnrollmentRecord | None:
        with _store_operation(self._session_factory, "get_active_enrollment", user_id=user_id) as session:
            row = session.execute(
                select(ChallengeEnrollment)
                .where(
                    ChallengeEnrollment.user_id == user_id,
                    ChallengeEnrollment.status == EnrollmentStatus.ACTIVE.value,
                )
                .order_by(ChallengeEnrollment.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_enrollment(row) if row else None

    async def get_completed_enrollments(self, user_id: str) -> list[EnrollmentRecord]:
        with _store_operation(self._session_factory, "get_completed_enrollments", user_id=user_id) as session:
            rows = session.execute(
                select(ChallengeEnrollment)
                .where(
                    ChallengeEnrollment.user_id == user_id,
                    ChallengeEnrollment.status == EnrollmentStatus.COMPLETED.value,
                )
                .order_by(ChallengeEnrollment.completed_at.desc())
            ).scalars()
            return [_to_enrollment(row) for row in rows]

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentRecord | None:
        with _store_operation(self._session_factory, "get_enrollment", enrollment_id=enrollment_id) as session:
            row = session.get(ChallengeEnrollment, enrollment_id)
            return _to_enrollment(row) if row else None

    async def insert_enrollment(self, data: dict[str, Any]) -> EnrollmentRecord:
        with _store_operation(self._session_factory, "insert_enrollment", user_id=data.get("user_id")) as session:
            row = ChallengeEnrollment(
                user_id=data["user_id"],
                challenge_slug=data["challenge_slug"],
                status=data.get("status", EnrollmentStatus.ACTIVE.value),
                current_week=data.get("current_week", 1),
                survey_scores=dict(data.get("survey_scores") or {}),
            )
            session.add(row)
            session.flush()
            return _to_enrollment(row)

    async def update_enrollment(self, enrollment_id: str, partial: dict[str, Any]) -> EnrollmentRecord | None:
        unknown = set(partial) - _ENROLLMENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update enrollment fields: {sorted(unknown)}")

        with _store_operation(self._session_factory, "update_enrollment", enrollment_id=enrollment_id) as session:
            row = session.get(ChallengeEnrollment, enrollment_id)
            if row is None:
                return None
            for field, value in partial.items():
                if field == "status" and isinstance(value, EnrollmentStatus):
                    value = value.value
                if field == "survey_scores":
                    # New dict so the JSON column registers the change
                    value = dict(value)
                setattr(row, field, value)
            session.flush()
            return _to_enrollment(row)

    async def delete_habit_rows_by_challenge(self, user_id: str, challenge_slug: str) -> int:
        with _store_operation(
            self._session_factory, "delete_habit_rows_by_challenge", user_id=user_id, challenge_slug=challenge_slug
        ) as session:
            result = session.execute(
                delete(WeeklyHabit).where(
                    WeeklyHabit.user_id == user_id,
                    WeeklyHabit.challenge_slug == challenge_slug,
                )
            )
            return result.rowcount or 0

    async def delete_tracking_config_by_challenge(self, user_id: str, challenge_slug: str) -> int:
        with _store_operation(
            self._session_factory, "delete_tracking_config_by_challenge", user_id=user_id, challenge_slug=challenge_slug
        ) as session:
            result = session.execute(
                delete(HabitTrackingConfig).where(
                    HabitTrackingConfig.user_id == user_id,
                    HabitTrackingConfig.challenge_slug == challenge_slug,
                )
            )
            return result.rowcount or 0

    async def upsert_habit_rows(self, user_id: str, rows: Sequence[HabitScheduleRow]) -> int:
        """Insert rows, replacing time and timezone of existing (habit, weekday) slots.

        An existing slot keeps its challenge_slug, so a personal row is never
        re-tagged and later removed by a challenge cancellation.
        """
        with _store_operation(self._session_factory, "upsert_habit_rows", user_id=user_id) as session:
            for row in rows:
                existing = session.execute(
                    select(WeeklyHabit).where(
                        WeeklyHabit.user_id == user_id,
                        WeeklyHabit.habit_name == row.habit_name,
                        WeeklyHabit.day_of_week == int(row.day_of_week),
                    )
                ).scalar_one_or_none()
                if existing:
                    existing.reminder_time = row.reminder_time
                    existing.timezone = row.timezone
                else:
                    session.add(
                        WeeklyHabit(
                            user_id=user_id,
                            habit_name=row.habit_name,
                            day_of_week=int(row.day_of_week),
                            reminder_time=row.reminder_time,
                            timezone=row.timezone,
                            challenge_slug=row.challenge_slug,
                        )
                    )
            return len(rows)

    async def get_existing_habit_names(self, user_id: str) -> set[str]:
        with _store_operation(self._session_factory, "get_existing_habit_names", user_id=user_id) as session:
            names = session.execute(
                select(WeeklyHabit.habit_name).where(WeeklyHabit.user_id == user_id).distinct()
            ).scalars()
            return set(names)

    async def get_personal_habit_names(self, user_id: str) -> set[str]:
        with _store_operation(self._session_factory, "get_personal_habit_names", user_id=user_id) as session:
            names = session.execute(
                select(WeeklyHabit.habit_name)
                .where(WeeklyHabit.user_id == user_id, WeeklyHabit.challenge_slug.is_(None))
                .distinct()
            ).scalars()
            return set(names)

    async def get_habit_rows(self, user_id: str) -> list[HabitScheduleRow]:
        with _store_operation(self._session_factory, "get_habit_rows", user_id=user_id) as session:
            rows = session.execute(
                select(WeeklyHabit)
                .where(WeeklyHabit.user_id == user_id)
                .order_by(WeeklyHabit.habit_name, WeeklyHabit.day_of_week)
            ).scalars()
            return [
                HabitScheduleRow(
                    habit_name=row.habit_name,
                    day_of_week=row.day_of_week,
                    reminder_time=row.reminder_time,
                    timezone=row.timezone,
                    challenge_slug=row.challenge_slug,
                )
                for row in rows
            ]

    async def upsert_tracking_config(self, user_id: str, config: TrackingConfig) -> None:
        with _store_operation(self._session_factory, "upsert_tracking_config", user_id=user_id) as session:
            row = session.execute(
                select(HabitTrackingConfig).where(
                    HabitTrackingConfig.user_id == user_id,
                    HabitTrackingConfig.habit_name == config.habit_name,
                )
            ).scalar_one_or_none()
            if row is None:
                row = HabitTrackingConfig(
                    user_id=user_id, habit_name=config.habit_name, challenge_slug=config.challenge_slug
                )
                session.add(row)
            row.tracking_enabled = config.tracking_enabled
            row.tracking_type = config.tracking_type

    async def insert_habit_log(self, entry: HabitLogEntry) -> HabitLogEntry:
        with _store_operation(self._session_factory, "insert_habit_log", enrollment_id=entry.enrollment_id) as session:
            row = ChallengeHabitLog(
                enrollment_id=entry.enrollment_id,
                week_number=entry.week_number,
                focus_area_slug=entry.focus_area_slug,
                habit_name=entry.habit_name,
            )
            session.add(row)
            session.flush()
            return HabitLogEntry.model_validate(row)

    async def get_habit_log(self, enrollment_id: str) -> list[HabitLogEntry]:
        with _store_operation(self._session_factory, "get_habit_log", enrollment_id=enrollment_id) as session:
            rows = session.execute(
                select(ChallengeHabitLog)
                .where(ChallengeHabitLog.enrollment_id == enrollment_id)
                .order_by(ChallengeHabitLog.week_number.asc())
            ).scalars()
            return [HabitLogEntry.model_validate(row) for row in rows]


class SqlProfileStore:
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def get_profile(self, user_id: str) -> Profile | None:
        with _store_operation(self._session_factory, "get_profile", user_id=user_id) as session:
            row = session.get(ProfileRow, user_id)
            return Profile.model_validate(row) if row else None
