"""Reorderable week <-> focus-area mapping for a challenge.

Users may reorder a challenge's focus areas before starting. Only the ordered
slug list is persisted; week numbers are always position + 1. A saved order is
trusted only while it is an exact permutation of the current definition, so a
definition that gains or loses focus areas falls back to its default order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from cadence.challenges.catalog import ChallengeDefinition, FocusArea
from cadence.errors import ValidationError


@dataclass(frozen=True)
class ScheduledFocusArea:
    week: int
    focus_area: FocusArea

    @property
    def slug(self) -> str:
        return self.focus_area.slug


def validate_focus_area_order(saved: Sequence[str] | None, definition_slugs: Sequence[str]) -> bool:
    """Check that a saved order is an exact permutation of the definition's slugs.

    Rejects missing, extra and duplicated slugs.
    """
    if not saved:
        return False
    saved_list = list(saved)
    if len(saved_list) != len(definition_slugs):
        return False
    if len(set(saved_list)) != len(saved_list):
        return False
    return set(saved_list) == set(definition_slugs)


class FocusAreaSequencer:
    """Ordered focus areas of one challenge, with weeks numbered by position."""

    def __init__(self, definition: ChallengeDefinition, order: Sequence[str] | None = None):
        self.definition = definition
        by_slug = {fa.slug: fa for fa in definition.focus_areas}
        slugs = list(order) if order is not None else definition.focus_area_slugs
        self._areas: list[FocusArea] = [by_slug[slug] for slug in slugs]

    @classmethod
    def from_saved(cls, definition: ChallengeDefinition, saved: Sequence[str] | None) -> FocusAreaSequencer:
        """Restore a saved order, falling back to the default order when it is stale."""
        if saved is not None and not validate_focus_area_order(saved, definition.focus_area_slugs):
            logger.bind(challenge_slug=definition.slug, saved_order=list(saved)).warning(
                "Discarding saved focus area order that no longer matches the challenge definition"
            )
            return cls(definition)
        return cls(definition, saved)

    @property
    def scheduled(self) -> list[ScheduledFocusArea]:
        return [ScheduledFocusArea(week=i + 1, focus_area=fa) for i, fa in enumerate(self._areas)]

    def order(self) -> list[str]:
        """Slug list to persist as focusAreaOrder."""
        return [fa.slug for fa in self._areas]

    def is_default_order(self) -> bool:
        return self.order() == self.definition.focus_area_slugs

    def move(self, old_index: int, new_index: int) -> list[ScheduledFocusArea]:
        """Move one focus area to a new position and renumber weeks.

        Raises:
            ValidationError: If either index is out of range
        """
        size = len(self._areas)
        if not (0 <= old_index < size and 0 <= new_index < size):
            raise ValidationError(f"Focus area positions must be within 0..{size - 1}")
        area = self._areas.pop(old_index)
        self._areas.insert(new_index, area)
        return self.scheduled

    def move_slug(self, slug: str, target_slug: str) -> list[ScheduledFocusArea]:
        """Move a focus area into the position currently held by another.

        Raises:
            ValidationError: If either slug is not part of this challenge
        """
        slugs = self.order()
        unknown = {slug, target_slug} - set(slugs)
        if unknown:
            raise ValidationError(f"Unknown focus areas for '{self.definition.slug}': {sorted(unknown)}")
        return self.move(slugs.index(slug), slugs.index(target_slug))

    def reorder(self, slugs: Sequence[str]) -> list[ScheduledFocusArea]:
        """Replace the whole order at once.

        Raises:
            ValidationError: If slugs is not a permutation of the definition's focus areas
        """
        if not validate_focus_area_order(slugs, self.definition.focus_area_slugs):
            raise ValidationError(f"Order must contain each focus area of '{self.definition.slug}' exactly once")
        by_slug = {fa.slug: fa for fa in self.definition.focus_areas}
        self._areas = [by_slug[slug] for slug in slugs]
        return self.scheduled

    def focus_area_for_week(self, week: int) -> FocusArea | None:
        if 1 <= week <= len(self._areas):
            return self._areas[week - 1]
        return None
