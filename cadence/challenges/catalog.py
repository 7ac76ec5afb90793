"""Challenge catalog loader.

Challenge definitions are static configuration read from a YAML file. They are
parsed once into immutable objects and never change at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml
from loguru import logger

from cadence.config.settings import settings


@dataclass(frozen=True)
class FocusArea:
    """One weekly theme of a challenge.

    Attributes:
        slug: Focus area identifier, unique within its challenge
        title: Display title
        default_week: Week the area falls in when the user keeps the default order
        description: Short explanation of the theme
        evidence: Research summary shown alongside the theme
        survey_question: Self-assessment question asked at enrollment
        default_habits: Suggestions used when no tailored suggestion is available
    """

    slug: str
    title: str
    default_week: int
    description: str = ""
    evidence: str = ""
    survey_question: str = ""
    default_habits: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChallengeDefinition:
    slug: str
    title: str
    focus_areas: tuple[FocusArea, ...]
    description: str = ""

    @property
    def focus_area_slugs(self) -> list[str]:
        return [fa.slug for fa in self.focus_areas]

    def get_focus_area(self, slug: str) -> FocusArea | None:
        return next((fa for fa in self.focus_areas if fa.slug == slug), None)

    def focus_area_for_week(self, week: int) -> FocusArea | None:
        """Focus area scheduled for a week under the default order."""
        return next((fa for fa in self.focus_areas if fa.default_week == week), None)


def _parse_focus_area(raw: dict, index: int) -> FocusArea:
    return FocusArea(
        slug=str(raw["slug"]),
        title=str(raw["title"]),
        default_week=int(raw.get("default_week", index + 1)),
        description=str(raw.get("description", "")),
        evidence=str(raw.get("evidence", "")),
        survey_question=str(raw.get("survey_question", "")),
        default_habits=tuple(str(h) for h in raw.get("default_habits") or ()),
    )


def _parse_challenge(raw: dict) -> ChallengeDefinition:
    focus_areas = tuple(_parse_focus_area(fa, i) for i, fa in enumerate(raw.get("focus_areas") or []))
    slugs = [fa.slug for fa in focus_areas]
    if len(set(slugs)) != len(slugs):
        raise ValueError(f"Duplicate focus area slugs in challenge '{raw.get('slug')}': {slugs}")
    # Default order is the default_week order, whatever order the file lists them in
    ordered = tuple(sorted(focus_areas, key=lambda fa: fa.default_week))
    return ChallengeDefinition(
        slug=str(raw["slug"]),
        title=str(raw["title"]),
        description=str(raw.get("description", "")),
        focus_areas=ordered,
    )


def load_catalog(path: str | Path) -> dict[str, ChallengeDefinition]:
    """Load challenge definitions from a YAML file.

    Args:
        path: YAML file with a top-level ``challenges`` list

    Returns:
        Definitions keyed by slug

    Raises:
        ValueError: If the file is malformed
    """
    catalog_path = Path(path)
    try:
        content = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid challenge catalog YAML at {catalog_path}: {e}") from e

    if not isinstance(content, dict) or not isinstance(content.get("challenges"), list):
        raise ValueError(f"Challenge catalog at {catalog_path} must contain a 'challenges' list")

    definitions: dict[str, ChallengeDefinition] = {}
    for raw in content["challenges"]:
        try:
            challenge = _parse_challenge(raw)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid challenge entry in {catalog_path}: {e}") from e
        definitions[challenge.slug] = challenge

    logger.info(f"Loaded {len(definitions)} challenge definitions from {catalog_path}")
    return definitions


@lru_cache(maxsize=1)
def _default_catalog() -> dict[str, ChallengeDefinition]:
    return load_catalog(settings.challenge_catalog_path)


def list_challenges() -> list[ChallengeDefinition]:
    return list(_default_catalog().values())


def get_challenge_by_slug(slug: str) -> ChallengeDefinition | None:
    """Look up a challenge definition, None if the slug is unknown."""
    return _default_catalog().get(slug)
