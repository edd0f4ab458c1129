"""Weekly training plan records and their camel-case wire shape.

Plans are built by the generator as dataclasses, but the validator also has
to judge plans that arrive as JSON (for example plans authored by the text
generation collaborator), so ``TrainingPlan.from_dict`` is deliberately
tolerant: it never raises on odd field values and leaves judgement to the
validator.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

EXECUTION_SECONDS_PER_SET = 30
DEFAULT_REST_SECONDS = 60
DEFAULT_SETS = 3

_FIRST_NUMBER = re.compile(r"(\d+)")


@dataclass
class ExerciseInstance:
    """An exercise selected for a day plus its load prescription."""
    name: str
    primary_muscle: str
    sets: int
    reps: str
    rest: str
    notes: str = ""
    role: str = ""           # "structural" | "isolated" ("" when unknown)
    environment: str = ""    # catalog environment tag
    secondary_muscles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "primaryMuscle": self.primary_muscle,
            "sets": self.sets,
            "reps": self.reps,
            "rest": self.rest,
        }
        if self.notes:
            data["notes"] = self.notes
        if self.role:
            data["role"] = self.role
        if self.environment:
            data["environment"] = self.environment
        if self.secondary_muscles:
            data["secondaryMuscles"] = list(self.secondary_muscles)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExerciseInstance":
        return cls(
            name=str(data.get("name") or ""),
            primary_muscle=str(data.get("primaryMuscle") or data.get("primary_muscle") or ""),
            sets=parse_sets(data.get("sets")),
            reps=str(data.get("reps") or ""),
            rest=str(data.get("rest") or ""),
            notes=str(data.get("notes") or ""),
            role=str(data.get("role") or ""),
            environment=str(data.get("environment") or ""),
            secondary_muscles=_muscle_list(data.get("secondaryMuscles", data.get("secondary_muscles"))),
        )


@dataclass
class TrainingDay:
    day: str
    type: str
    exercises: list[ExerciseInstance] = field(default_factory=list)
    # Muscle groups the catalog could not fill under the active filters.
    unfilled_groups: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "day": self.day,
            "type": self.type,
            "exercises": [ex.to_dict() for ex in self.exercises],
        }
        if self.unfilled_groups:
            data["unfilledGroups"] = list(self.unfilled_groups)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrainingDay":
        raw = data.get("exercises") or []
        exercises = [ExerciseInstance.from_dict(ex) for ex in raw if isinstance(ex, Mapping)]
        return cls(
            day=str(data.get("day") or ""),
            type=str(data.get("type") or ""),
            exercises=exercises,
            unfilled_groups=list(data.get("unfilledGroups") or data.get("unfilled_groups") or []),
        )


@dataclass
class TrainingPlan:
    overview: str
    progression: str
    weekly_schedule: list[TrainingDay] = field(default_factory=list)
    split: str = ""

    @property
    def has_unfilled_groups(self) -> bool:
        return any(day.unfilled_groups for day in self.weekly_schedule)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "overview": self.overview,
            "progression": self.progression,
            "weeklySchedule": [day.to_dict() for day in self.weekly_schedule],
        }
        if self.split:
            data["split"] = self.split
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrainingPlan | None":
        """Parse a wire-shaped plan; None when ``weeklySchedule`` is not a list."""
        schedule = data.get("weeklySchedule", data.get("weekly_schedule"))
        if not isinstance(schedule, list):
            return None
        return cls(
            overview=str(data.get("overview") or ""),
            progression=str(data.get("progression") or ""),
            weekly_schedule=[TrainingDay.from_dict(d) for d in schedule if isinstance(d, Mapping)],
            split=str(data.get("split") or ""),
        )


def _muscle_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(m) for m in value if m]


def parse_sets(value: Any) -> int:
    """Sets as an int; strings like "3" or "3-4" use the first number, default 3."""
    if isinstance(value, bool):
        return DEFAULT_SETS
    if isinstance(value, (int, float)):
        return int(value) if value > 0 else DEFAULT_SETS
    match = _FIRST_NUMBER.search(str(value or ""))
    return int(match.group(1)) if match and int(match.group(1)) > 0 else DEFAULT_SETS


def parse_rest_seconds(rest: str | None) -> int:
    """Parse a rest prescription ("60s", "2min", "90-120s") into seconds.

    Ranges use their first number; anything unreadable counts as 60 s.
    """
    text = (rest or "").strip().lower()
    match = _FIRST_NUMBER.search(text)
    if not match:
        return DEFAULT_REST_SECONDS
    value = int(match.group(1))
    if "min" in text:
        return value * 60
    return value


def estimate_exercise_seconds(exercise: ExerciseInstance) -> int:
    return exercise.sets * (EXECUTION_SECONDS_PER_SET + parse_rest_seconds(exercise.rest))


def estimate_day_minutes(exercises: list[ExerciseInstance]) -> int:
    """Session duration in whole minutes (rounded up)."""
    total = sum(estimate_exercise_seconds(ex) for ex in exercises)
    return math.ceil(total / 60)
