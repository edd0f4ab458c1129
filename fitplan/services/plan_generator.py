"""Deterministic weekly training plan generator.

Builds a ``TrainingPlan`` from the exercise catalog:
1. Resolve the split (explicit label, or from weekly frequency)
2. For each distinct day type, allocate exercise counts per muscle block
   within the level cap, the per-muscle cap, the validator's concentration
   and coverage rules, catalog availability and the session time budget
3. Pick exercises per block (structural first), prescribe sets/reps/rest
4. Repeat identical exercise lists on days of the same type

When the catalog cannot cover a required group under the location and joint
filters, the group is reported in ``TrainingDay.unfilled_groups``; no
exercise is invented for it.
"""

from __future__ import annotations

import logging
import math
import re
import unicodedata
from dataclasses import dataclass, replace

from fitplan.services.exercise_catalog import (
    BICEPS,
    COSTAS,
    GLUTEOS,
    OMBROS,
    PANTURRILHAS,
    PEITORAL,
    POSTERIOR,
    QUADRICEPS,
    TRAPEZIO,
    TRICEPS,
    Environment,
    Exercise,
    eligible_exercises,
    resolve_training_location,
)
from fitplan.services.plan_validator import (
    concentration_limit,
    coverage_rules_for,
    muscle_cap,
    normalize_day_type,
)
from fitplan.services.training_plan import (
    ExerciseInstance,
    TrainingDay,
    TrainingPlan,
    estimate_day_minutes,
)
from fitplan.services.training_profiles import (
    TechnicalProfile,
    exercise_count_bounds,
    get_training_profile,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MuscleSlot:
    """One muscle block of a day; higher weight earns more of the spare slots."""
    muscle: str
    weight: float = 1.0


@dataclass(frozen=True)
class SplitDefinition:
    key: str
    label: str
    day_types: tuple[str, ...]


SPLITS: dict[str, SplitDefinition] = {
    "FULL_BODY": SplitDefinition("FULL_BODY", "Full Body", ("FullBody",)),
    "UPPER_LOWER": SplitDefinition("UPPER_LOWER", "Upper/Lower", ("Upper", "Lower")),
    "PPL": SplitDefinition("PPL", "PPL", ("Push", "Pull", "Legs")),
    "PPL_ARMS": SplitDefinition("PPL_ARMS", "PPL + Ombros/Braços", ("Push", "Pull", "Legs", "ShouldersArms")),
}

_SPLIT_ALIASES: dict[str, str] = {
    "fullbody": "FULL_BODY",
    "full": "FULL_BODY",
    "corpointeiro": "FULL_BODY",
    "upperlower": "UPPER_LOWER",
    "ul": "UPPER_LOWER",
    "superioresinferiores": "UPPER_LOWER",
    "ppl": "PPL",
    "pushpulllegs": "PPL",
    "pplarms": "PPL_ARMS",
    "pplombrosbracos": "PPL_ARMS",
    "pushpulllegsshouldersarms": "PPL_ARMS",
    "pushpulllegsarms": "PPL_ARMS",
}

# Large block first, then medium, then small accessories.
DAY_BLUEPRINTS: dict[str, tuple[MuscleSlot, ...]] = {
    "push": (MuscleSlot(PEITORAL, 2.0), MuscleSlot(OMBROS, 1.5), MuscleSlot(TRICEPS, 1.0)),
    "pull": (MuscleSlot(COSTAS, 2.0), MuscleSlot(TRAPEZIO, 1.0), MuscleSlot(BICEPS, 1.0)),
    "legs": (
        MuscleSlot(QUADRICEPS, 2.0), MuscleSlot(POSTERIOR, 1.5),
        MuscleSlot(GLUTEOS, 1.5), MuscleSlot(PANTURRILHAS, 1.0),
    ),
    "upper": (
        MuscleSlot(PEITORAL, 2.0), MuscleSlot(COSTAS, 2.0), MuscleSlot(OMBROS, 1.5),
        MuscleSlot(BICEPS, 1.0), MuscleSlot(TRICEPS, 1.0),
    ),
    "fullbody": (
        MuscleSlot(PEITORAL, 1.5), MuscleSlot(COSTAS, 1.5), MuscleSlot(QUADRICEPS, 1.5),
        MuscleSlot(POSTERIOR, 1.0), MuscleSlot(OMBROS, 1.0),
        MuscleSlot(BICEPS, 0.5), MuscleSlot(TRICEPS, 0.5),
    ),
    "shouldersarms": (MuscleSlot(OMBROS, 2.0), MuscleSlot(BICEPS, 1.5), MuscleSlot(TRICEPS, 1.5)),
}
DAY_BLUEPRINTS["lower"] = DAY_BLUEPRINTS["legs"]

DAY_LABELS: dict[str, str] = {
    "push": "Peito/Ombros/Tríceps",
    "pull": "Costas/Bíceps",
    "legs": "Pernas",
    "upper": "Superiores",
    "lower": "Inferiores",
    "fullbody": "Corpo Inteiro",
    "shouldersarms": "Ombros/Braços",
}

PROGRESSION_TEXT = (
    "Aumentar a carga em 2-5% quando conseguir realizar o topo da faixa de repetições "
    "em todas as séries. Após 4-6 semanas, considerar aumentar o número de séries para "
    "exercícios principais, se a recuperação permitir."
)

_STRUCTURAL_NOTE = "Exercício estrutural: priorize técnica e progressão de carga."
_ISOLATED_NOTE = "Exercício acessório: controle a fase excêntrica."


@dataclass(frozen=True)
class RepAdjustmentBand:
    """Rep-range targets for one IMC band.

    Weight-loss objectives move both ends toward ``loss_target``; mass-gain
    objectives only raise the top end, and only when it sits below
    ``mass_applies_below``.
    """
    min_imc: float
    max_imc: float | None
    label: str
    loss_target: tuple[int, int]
    mass_target_max: int
    mass_applies_below: int


REP_ADJUSTMENT_BANDS: tuple[RepAdjustmentBand, ...] = (
    RepAdjustmentBand(25.0, 30.0, "sobrepeso", (10, 15), 12, 9),
    RepAdjustmentBand(30.0, 35.0, "obesidade grau I", (12, 18), 15, 10),
    RepAdjustmentBand(35.0, None, "obesidade grau II/III", (15, 20), 18, 12),
)
REP_ADJUSTMENT_CAP = 0.3

_REP_RANGE = re.compile(r"(\d+)\s*-\s*(\d+)")


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").lower()


def resolve_split(split_type: str | None, training_days_per_week: int) -> SplitDefinition:
    """Explicit split label when recognised, otherwise chosen by frequency."""
    if split_type:
        compact = "".join(ch for ch in _fold(split_type) if ch.isalnum())
        key = _SPLIT_ALIASES.get(compact)
        if key:
            return SPLITS[key]
        logger.warning("Unknown split %r; choosing by frequency", split_type, extra={"ctx_split": split_type})
    if training_days_per_week <= 3:
        return SPLITS["FULL_BODY"]
    if training_days_per_week == 4:
        return SPLITS["UPPER_LOWER"]
    return SPLITS["PPL"]


def adjust_reps_for_imc_and_objective(
    reps: str,
    imc: float | None,
    objective: str | None,
) -> tuple[str, str | None]:
    """Shift a rep range for IMC and objective, by at most 30% of the range.

    Strength objectives are never changed. Returns ``(reps, reason)`` where
    reason is None when nothing changed.
    """
    if not imc or not objective:
        return reps, None
    goal = _fold(objective)
    if "forca" in goal:
        return reps, None
    match = _REP_RANGE.search(reps)
    if not match:
        return reps, None

    band = next(
        (b for b in REP_ADJUSTMENT_BANDS if imc >= b.min_imc and (b.max_imc is None or imc < b.max_imc)),
        None,
    )
    if band is None:
        return reps, None

    low, high = int(match.group(1)), int(match.group(2))
    cap = math.ceil((high - low) * REP_ADJUSTMENT_CAP)
    new_low, new_high = low, high
    if "emagrec" in goal or "perder" in goal:
        new_low = low + min(cap, max(0, band.loss_target[0] - low))
        new_high = high + min(cap, max(0, band.loss_target[1] - high))
    elif "ganhar" in goal or "massa" in goal:
        if high < band.mass_applies_below:
            new_high = high + min(cap, max(0, band.mass_target_max - high))

    if (new_low, new_high) == (low, high):
        return reps, None
    adjusted = f"{new_low}-{new_high}"
    reason = f"IMC {imc:.1f} ({band.label}): repetições ajustadas de {reps} para {adjusted}"
    return adjusted, reason


def _rotate(items: list[Exercise], variant: int) -> list[Exercise]:
    if not items or not variant:
        return items
    k = variant % len(items)
    rotated = items[k:] + items[:k]
    # Stable sort keeps structural entries ahead of isolated ones.
    return sorted(rotated, key=lambda ex: 0 if ex.is_structural else 1)


def _allocate(
    blueprint: tuple[MuscleSlot, ...],
    day_type: str,
    total: int,
    availability: dict[str, int],
    max_per_muscle: int,
) -> dict[str, int] | None:
    """Exercise count per muscle summing to ``total``, or None if impossible."""
    room = {}
    for slot in blueprint:
        cap = muscle_cap(slot.muscle, day_type, max_per_muscle)
        room[slot.muscle] = min(
            availability[slot.muscle],
            total if cap is None else cap,
            concentration_limit(slot.muscle, day_type, total),
        )
    counts = {slot.muscle: 0 for slot in blueprint}
    order = [slot.muscle for slot in blueprint]

    for rule in coverage_rules_for(day_type):
        for group in rule.groups:
            if any(counts.get(m, 0) for m in group):
                continue
            pick = next((m for m in order if m in group and room[m] > 0), None)
            if pick is not None:
                counts[pick] = 1

    if sum(counts.values()) > total:
        return None

    weights = {slot.muscle: slot.weight for slot in blueprint}
    while sum(counts.values()) < total:
        open_slots = [m for m in order if counts[m] < room[m]]
        if not open_slots:
            return None
        best = min(open_slots, key=lambda m: ((counts[m] + 1) / weights[m], order.index(m)))
        counts[best] += 1
    return counts


def _prescribe(
    exercise: Exercise,
    profile: TechnicalProfile,
    imc: float | None,
    objective: str | None,
) -> ExerciseInstance:
    rx = profile.structural if exercise.is_structural else profile.isolated
    reps, reason = adjust_reps_for_imc_and_objective(rx.reps, imc, objective)
    notes = _STRUCTURAL_NOTE if exercise.is_structural else _ISOLATED_NOTE
    if reason:
        notes = f"{notes} {reason}."
    return ExerciseInstance(
        name=exercise.name,
        primary_muscle=exercise.primary_muscle,
        sets=rx.sets,
        reps=reps,
        rest=rx.rest,
        notes=notes,
        role=exercise.role.value,
        environment=exercise.environment.value,
        secondary_muscles=list(exercise.secondary_muscles),
    )


def _build_exercises(
    counts: dict[str, int],
    blueprint: tuple[MuscleSlot, ...],
    pools: dict[str, list[Exercise]],
    profile: TechnicalProfile,
    imc: float | None,
    objective: str | None,
) -> list[ExerciseInstance]:
    exercises: list[ExerciseInstance] = []
    for slot in blueprint:
        for exercise in pools[slot.muscle][: counts[slot.muscle]]:
            exercises.append(_prescribe(exercise, profile, imc, objective))
    return exercises


def _unfillable_groups(day_type: str, availability: dict[str, int]) -> list[str]:
    missing = []
    for rule in coverage_rules_for(day_type):
        for group in rule.groups:
            if not any(availability.get(m, 0) for m in group):
                missing.append("/".join(sorted(group)))
    return missing


def build_day_exercises(
    day_type_label: str,
    profile: TechnicalProfile,
    location: str | Environment | None = None,
    available_minutes: int | None = None,
    imc: float | None = None,
    objective: str | None = None,
    has_shoulder_restriction: bool = False,
    has_knee_restriction: bool = False,
    variant: int = 0,
) -> tuple[list[ExerciseInstance], list[str]]:
    """Exercises for one day type plus the required groups left unfilled."""
    day_type = normalize_day_type(day_type_label)
    blueprint = DAY_BLUEPRINTS.get(day_type, DAY_BLUEPRINTS["fullbody"])
    pools = {
        slot.muscle: _rotate(
            eligible_exercises(slot.muscle, location, has_shoulder_restriction, has_knee_restriction),
            variant,
        )
        for slot in blueprint
    }
    availability = {m: len(pool) for m, pool in pools.items()}
    unfilled = _unfillable_groups(day_type, availability)

    lo, hi = exercise_count_bounds(profile.level)
    # Smallest session meeting the minimum, else the largest one below it.
    shortest: list[ExerciseInstance] | None = None
    undersized: list[ExerciseInstance] | None = None
    for total in range(hi, 0, -1):
        counts = _allocate(blueprint, day_type, total, availability, profile.max_exercises_per_muscle)
        if counts is None:
            continue
        exercises = _build_exercises(counts, blueprint, pools, profile, imc, objective)
        if total >= lo:
            if not available_minutes or estimate_day_minutes(exercises) <= available_minutes:
                return exercises, unfilled
            shortest = exercises
        elif undersized is None:
            undersized = exercises
    return shortest or undersized or [], unfilled


def generate_training_plan_structure(
    training_days_per_week: int,
    activity_level: str | None,
    split_type: str | None = None,
    available_minutes_per_session: int | None = None,
    imc: float | None = None,
    objective: str | None = None,
    has_shoulder_restriction: bool = False,
    has_knee_restriction: bool = False,
    training_location: str | None = None,
    variant: int = 0,
) -> TrainingPlan:
    """Build a complete weekly plan with exactly ``training_days_per_week`` days.

    The same arguments always produce the same plan. ``variant`` rotates the
    exercise choice inside each muscle block so that a retry can produce a
    different, equally deterministic, candidate.
    """
    profile = get_training_profile(activity_level)
    split = resolve_split(split_type, training_days_per_week)
    location = resolve_training_location(training_location)

    by_type: dict[str, tuple[list[ExerciseInstance], list[str]]] = {}
    schedule: list[TrainingDay] = []
    for i in range(max(0, training_days_per_week)):
        day_type = split.day_types[i % len(split.day_types)]
        if day_type not in by_type:
            by_type[day_type] = build_day_exercises(
                day_type,
                profile,
                location=location,
                available_minutes=available_minutes_per_session,
                imc=imc,
                objective=objective,
                has_shoulder_restriction=has_shoulder_restriction,
                has_knee_restriction=has_knee_restriction,
                variant=variant,
            )
        exercises, unfilled = by_type[day_type]
        label = DAY_LABELS.get(normalize_day_type(day_type), day_type)
        schedule.append(TrainingDay(
            day=f"Treino {chr(ord('A') + i)} – {label}",
            type=day_type,
            exercises=[replace(ex) for ex in exercises],
            unfilled_groups=list(unfilled),
        ))
        if unfilled:
            logger.warning(
                "No eligible exercises for required groups on %s day",
                day_type,
                extra={
                    "ctx_day_type": day_type,
                    "ctx_groups": unfilled,
                    "ctx_location": location.value,
                },
            )

    return TrainingPlan(
        overview=(
            f"Plano de treino {split.label} para {training_days_per_week}x por semana, "
            f"nível {profile.level.value}."
        ),
        progression=PROGRESSION_TEXT,
        weekly_schedule=schedule,
        split=split.key,
    )
