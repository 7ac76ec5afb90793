"""FastAPI dependencies for the scheduler API.

Authentication is handled upstream; the gateway forwards the authenticated
user as the X-User-Id header.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from fastapi import Depends, Header, HTTPException, status

from cadence.challenges.enrollment import EnrollmentService
from cadence.persistence.sql_store import SqlChallengeStore, SqlProfileStore
from cadence.persistence.store import ChallengeStore, ProfileStore
from cadence.scheduling.service import HabitScheduler


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id


def get_now() -> datetime:
    return datetime.now(UTC)


def get_challenge_store() -> ChallengeStore:
    return SqlChallengeStore()


def get_profile_store() -> ProfileStore:
    return SqlProfileStore()


def get_enrollment_service(store: ChallengeStore = Depends(get_challenge_store)) -> EnrollmentService:
    return EnrollmentService(store)


def get_habit_scheduler(
    store: ChallengeStore = Depends(get_challenge_store),
    profiles: ProfileStore = Depends(get_profile_store),
    enrollments: EnrollmentService = Depends(get_enrollment_service),
) -> HabitScheduler:
    return HabitScheduler(store, profiles, enrollments)


async def get_today(
    user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    scheduler: HabitScheduler = Depends(get_habit_scheduler),
) -> date:
    """The user's local calendar day; week boundaries follow the user, not the server."""
    return await scheduler.local_today(user_id, now)
