"""Activity-level technical profiles and the exercise-count policy.

This module is the single source of truth for per-level session caps.
Both the plan generator and the plan validator read their limits from
``get_training_profile`` so the two can never disagree.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

ABSOLUTE_MIN_EXERCISES = 3
ABSOLUTE_MAX_EXERCISES = 12


class ActivityLevel(str, Enum):
    IDOSO = "Idoso"
    INICIANTE = "Iniciante"
    MODERADO = "Moderado"
    ATLETA = "Atleta"
    ATLETA_ALTO_RENDIMENTO = "Atleta Alto Rendimento"


@dataclass(frozen=True)
class Prescription:
    """Default load prescription for one exercise role."""
    sets: int
    reps: str
    rest_seconds: int

    @property
    def rest(self) -> str:
        return f"{self.rest_seconds}s"


@dataclass(frozen=True)
class TechnicalProfile:
    level: ActivityLevel
    max_exercises_per_session: int
    max_exercises_per_muscle: int
    structural: Prescription
    isolated: Prescription


PROFILES: dict[ActivityLevel, TechnicalProfile] = {
    ActivityLevel.IDOSO: TechnicalProfile(
        level=ActivityLevel.IDOSO,
        max_exercises_per_session=5,
        max_exercises_per_muscle=2,
        structural=Prescription(sets=3, reps="10-12", rest_seconds=90),
        isolated=Prescription(sets=2, reps="12-15", rest_seconds=60),
    ),
    ActivityLevel.INICIANTE: TechnicalProfile(
        level=ActivityLevel.INICIANTE,
        max_exercises_per_session=6,
        max_exercises_per_muscle=3,
        structural=Prescription(sets=3, reps="10-12", rest_seconds=90),
        isolated=Prescription(sets=3, reps="12-15", rest_seconds=60),
    ),
    ActivityLevel.MODERADO: TechnicalProfile(
        level=ActivityLevel.MODERADO,
        max_exercises_per_session=8,
        max_exercises_per_muscle=4,
        structural=Prescription(sets=3, reps="8-12", rest_seconds=90),
        isolated=Prescription(sets=3, reps="10-15", rest_seconds=60),
    ),
    ActivityLevel.ATLETA: TechnicalProfile(
        level=ActivityLevel.ATLETA,
        max_exercises_per_session=10,
        max_exercises_per_muscle=6,
        structural=Prescription(sets=4, reps="6-10", rest_seconds=120),
        isolated=Prescription(sets=3, reps="10-12", rest_seconds=60),
    ),
    ActivityLevel.ATLETA_ALTO_RENDIMENTO: TechnicalProfile(
        level=ActivityLevel.ATLETA_ALTO_RENDIMENTO,
        max_exercises_per_session=12,
        max_exercises_per_muscle=6,
        structural=Prescription(sets=4, reps="5-8", rest_seconds=150),
        isolated=Prescription(sets=3, reps="8-12", rest_seconds=75),
    ),
}

# Unknown labels fall back to the most conservative profile.
DEFAULT_LEVEL = ActivityLevel.IDOSO

_LEVEL_ALIASES: dict[str, ActivityLevel] = {
    "idoso": ActivityLevel.IDOSO,
    "senior": ActivityLevel.IDOSO,
    "limitado": ActivityLevel.IDOSO,
    "iniciante": ActivityLevel.INICIANTE,
    "beginner": ActivityLevel.INICIANTE,
    "sedentario": ActivityLevel.INICIANTE,
    "sedentaria": ActivityLevel.INICIANTE,
    "sedentary": ActivityLevel.INICIANTE,
    "moderado": ActivityLevel.MODERADO,
    "intermediario": ActivityLevel.MODERADO,
    "moderate": ActivityLevel.MODERADO,
    "atleta": ActivityLevel.ATLETA,
    "avancado": ActivityLevel.ATLETA,
    "athlete": ActivityLevel.ATLETA,
    "advanced": ActivityLevel.ATLETA,
    "atleta_alto_rendimento": ActivityLevel.ATLETA_ALTO_RENDIMENTO,
    "atleta_altorendimento": ActivityLevel.ATLETA_ALTO_RENDIMENTO,
    "alto_rendimento": ActivityLevel.ATLETA_ALTO_RENDIMENTO,
    "high_performance": ActivityLevel.ATLETA_ALTO_RENDIMENTO,
}

_SEDENTARY_LABELS = {"sedentario", "sedentaria", "sedentary"}


def normalize_label(label: str | None) -> str:
    """Lowercase, strip accents, and join words with underscores."""
    if not label:
        return ""
    decomposed = unicodedata.normalize("NFD", str(label))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return "_".join(stripped.strip().lower().replace("-", " ").split())


def resolve_activity_level(label: str | ActivityLevel | None) -> ActivityLevel | None:
    """Map a free-form level label to an ActivityLevel, or None if unknown."""
    if isinstance(label, ActivityLevel):
        return label
    return _LEVEL_ALIASES.get(normalize_label(label))


def get_training_profile(label: str | ActivityLevel | None) -> TechnicalProfile:
    level = resolve_activity_level(label)
    if level is None:
        logger.warning(
            "Unknown activity level %r; using %s profile",
            label,
            DEFAULT_LEVEL.value,
            extra={"ctx_activity_level": label},
        )
        level = DEFAULT_LEVEL
    return PROFILES[level]


def exercise_count_bounds(label: str | ActivityLevel | None) -> tuple[int, int]:
    """(min, max) exercises allowed per session for a level."""
    cap = get_training_profile(label).max_exercises_per_session
    return ABSOLUTE_MIN_EXERCISES, min(ABSOLUTE_MAX_EXERCISES, cap)


def validate_exercises_count_by_level(count: int, label: str | ActivityLevel | None) -> bool:
    """True iff ``3 <= count <= min(12, level cap)``."""
    lo, hi = exercise_count_bounds(label)
    return lo <= count <= hi


def is_sedentary(label: str | ActivityLevel | None) -> bool:
    """Only explicit sedentary labels count; they share the Iniciante profile."""
    if isinstance(label, ActivityLevel):
        return False
    return normalize_label(label) in _SEDENTARY_LABELS
