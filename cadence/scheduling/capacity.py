"""Habit ceiling shared by personal and challenge habit selection."""

from __future__ import annotations

from collections.abc import Iterable

from cadence.constants import MAX_ACTIVE_HABITS
from cadence.errors import HabitCapacityError
from cadence.scheduling.reminder_slots import validate_custom_habit_name


class HabitCapacityGuard:
    """Tracks pending habit choices against the habits a user already holds.

    The invariant is ``|existing ∪ pending| <= limit``, counted on distinct
    names. Pending names keep the order they were chosen in.
    """

    def __init__(self, existing_names: Iterable[str], limit: int = MAX_ACTIVE_HABITS):
        self.existing = frozenset(existing_names)
        self.limit = limit
        self._pending: list[str] = []

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def in_use(self) -> int:
        return len(self.existing | set(self._pending))

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.in_use)

    @property
    def is_full(self) -> bool:
        return self.in_use >= self.limit

    def can_add(self, name: str) -> bool:
        if name in self.existing or name in self._pending:
            return True
        return self.in_use < self.limit

    def _require_room(self, name: str) -> None:
        if not self.can_add(name):
            raise HabitCapacityError(limit=self.limit, current=self.in_use)

    def toggle(self, name: str) -> bool:
        """Add a name to the pending set, or remove it if already pending.

        Returns:
            True if the name is pending after the call

        Raises:
            HabitCapacityError: If adding the name would exceed the ceiling
        """
        if name in self._pending:
            self._pending.remove(name)
            return False
        self._require_room(name)
        self._pending.append(name)
        return True

    def add_custom(self, text: str) -> str:
        """Validate free-text input and add it to the pending set.

        Returns:
            The trimmed habit name

        Raises:
            ValidationError: If the text is empty or too long
            HabitCapacityError: If the ceiling is already reached
        """
        name = validate_custom_habit_name(text)
        self._require_room(name)
        if name not in self._pending:
            self._pending.append(name)
        return name


def ensure_capacity(existing_names: Iterable[str], new_names: Iterable[str], limit: int = MAX_ACTIVE_HABITS) -> None:
    """Check a batch of new names against the ceiling in one go.

    Raises:
        HabitCapacityError: If existing plus new distinct names exceed the limit
    """
    guard = HabitCapacityGuard(existing_names, limit=limit)
    for name in dict.fromkeys(new_names):
        guard.toggle(name)
