"""Persistence interfaces consumed by the enrollment service.

Implementations must make every delete idempotent: deleting rows that no
longer exist is a no-op, so a retried cancellation converges to the same state.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from cadence.challenges.types import EnrollmentRecord, HabitLogEntry, Profile, TrackingConfig
from cadence.scheduling.reminder_slots import HabitScheduleRow


class ChallengeStore(Protocol):
    async def get_active_enrollment(self, user_id: str) -> EnrollmentRecord | None: ...

    async def get_completed_enrollments(self, user_id: str) -> list[EnrollmentRecord]: ...

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentRecord | None: ...

    async def insert_enrollment(self, data: dict[str, Any]) -> EnrollmentRecord: ...

    async def update_enrollment(self, enrollment_id: str, partial: dict[str, Any]) -> EnrollmentRecord | None: ...

    async def delete_habit_rows_by_challenge(self, user_id: str, challenge_slug: str) -> int: ...

    async def delete_tracking_config_by_challenge(self, user_id: str, challenge_slug: str) -> int: ...

    async def upsert_habit_rows(self, user_id: str, rows: Sequence[HabitScheduleRow]) -> int: ...

    async def get_existing_habit_names(self, user_id: str) -> set[str]: ...

    async def get_personal_habit_names(self, user_id: str) -> set[str]: ...

    async def upsert_tracking_config(self, user_id: str, config: TrackingConfig) -> None: ...

    async def insert_habit_log(self, entry: HabitLogEntry) -> HabitLogEntry: ...

    async def get_habit_log(self, enrollment_id: str) -> list[HabitLogEntry]: ...


class ProfileStore(Protocol):
    async def get_profile(self, user_id: str) -> Profile | None: ...
