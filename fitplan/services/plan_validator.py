"""Multi-rule usability check for a weekly training plan.

The validator is a pure function of its arguments. It returns a
``PlanVerdict`` naming the first rule that failed; recording that rejection
is the caller's job (see ``plan_pipeline``).

Distribution rules are data rather than branches:
- ``ConcentrationRule``: no primary muscle in a set may exceed a share of a
  day's exercises, optionally waived when the day type focuses on it.
- ``CoverageRule``: a day type must contain at least one exercise from each
  listed group of muscles.
The generator allocates exercises against the same records, so a plan it
builds from a sufficient catalog always passes.
"""

from __future__ import annotations

import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from fitplan.services.exercise_catalog import (
    BICEPS,
    CORE,
    COSTAS,
    GLUTEOS,
    OMBROS,
    PANTURRILHAS,
    PEITORAL,
    POSTERIOR,
    QUADRICEPS,
    SMALL_MUSCLES,
    TRAPEZIO,
    TRICEPS,
    normalize_muscle,
)
from fitplan.services.training_plan import TrainingDay, TrainingPlan, estimate_day_minutes
from fitplan.services.training_profiles import (
    ABSOLUTE_MAX_EXERCISES,
    ABSOLUTE_MIN_EXERCISES,
    get_training_profile,
)


class RejectionReason(str, Enum):
    WEEKLY_SCHEDULE_INVALID = "weeklySchedule_invalido"
    DAY_COUNT_MISMATCH = "numero_dias_incompativel"
    SAME_TYPE_DAYS_DIFFER = "dias_mesmo_tipo_exercicios_diferentes"
    EMPTY_DAY = "dia_sem_exercicios"
    CRITICAL_LOW_VOLUME = "volume_insuficiente_critico"
    LEVEL_CAP_EXCEEDED = "excesso_exercicios_nivel"
    MISSING_PRIMARY_MUSCLE = "exercicio_sem_primaryMuscle"
    FORBIDDEN_MUSCLE = "grupo_muscular_proibido"
    LOWER_MISSING_GROUPS = "lower_sem_grupos_obrigatorios"
    FULL_BODY_MISSING_GROUPS = "full_body_sem_grupos_obrigatorios"
    REQUIRED_GROUP_MISSING = "grupo_obrigatorio_ausente"
    MUSCLE_CAP_EXCEEDED = "excesso_exercicios_musculo_primario"
    DISTRIBUTION_INVALID = "distribuicao_inteligente_invalida"
    SESSION_TOO_LONG = "tempo_treino_excede_disponivel"


# -- Day types --

LOWER = "lower"
LEGS = "legs"
UPPER = "upper"
PUSH = "push"
PULL = "pull"
FULLBODY = "fullbody"
SHOULDERS_ARMS = "shouldersarms"

_DAY_TYPE_ALIASES: dict[str, str] = {
    "lower": LOWER,
    "inferior": LOWER,
    "inferiores": LOWER,
    "membrosinferiores": LOWER,
    "legs": LEGS,
    "leg": LEGS,
    "pernas": LEGS,
    "perna": LEGS,
    "upper": UPPER,
    "superior": UPPER,
    "superiores": UPPER,
    "membrossuperiores": UPPER,
    "push": PUSH,
    "empurrar": PUSH,
    "pull": PULL,
    "puxar": PULL,
    "fullbody": FULLBODY,
    "full": FULLBODY,
    "corpointeiro": FULLBODY,
    "shouldersarms": SHOULDERS_ARMS,
    "ombrosbracos": SHOULDERS_ARMS,
    "ombrosebracos": SHOULDERS_ARMS,
    "armsshoulders": SHOULDERS_ARMS,
}

LOWER_DAY_TYPES = frozenset({LOWER, LEGS})


def normalize_day_type(label: str | None) -> str:
    """Canonical day type key; unrecognised labels come back compacted."""
    if not label:
        return ""
    decomposed = unicodedata.normalize("NFD", str(label))
    folded = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").lower()
    compact = "".join(ch for ch in folded if ch.isalnum())
    return _DAY_TYPE_ALIASES.get(compact, compact)


_LEG_MUSCLES = frozenset({QUADRICEPS, POSTERIOR, GLUTEOS, PANTURRILHAS, CORE})

# Muscles a day type may contain. Day types missing here are not restricted.
ALLOWED_MUSCLES: dict[str, frozenset[str]] = {
    PUSH: frozenset({PEITORAL, OMBROS, TRICEPS}),
    PULL: frozenset({COSTAS, TRAPEZIO, BICEPS, OMBROS}),
    LEGS: _LEG_MUSCLES,
    LOWER: _LEG_MUSCLES,
    UPPER: frozenset({PEITORAL, COSTAS, OMBROS, BICEPS, TRICEPS}),
    FULLBODY: frozenset({PEITORAL, COSTAS, QUADRICEPS, POSTERIOR, GLUTEOS, OMBROS, BICEPS, TRICEPS, CORE}),
    SHOULDERS_ARMS: frozenset({OMBROS, BICEPS, TRICEPS}),
}

# Muscles a day type exists to train; small-muscle caps do not apply to them.
DAY_FOCUS: dict[str, frozenset[str]] = {
    SHOULDERS_ARMS: frozenset({OMBROS, BICEPS, TRICEPS}),
}


def is_focus_muscle(muscle: str, day_type: str) -> bool:
    return muscle in DAY_FOCUS.get(day_type, frozenset())


def muscle_cap(muscle: str, day_type: str, max_per_muscle: int) -> int | None:
    """Per-muscle ceiling for a day, or None when only the session cap applies."""
    return None if is_focus_muscle(muscle, day_type) else max_per_muscle


@dataclass(frozen=True)
class ConcentrationRule:
    name: str
    max_percent: int
    muscles: frozenset[str] | None = None      # None: every muscle
    day_types: frozenset[str] | None = None    # None: every day type
    focus_exempt: bool = False

    def applies_to_day(self, day_type: str) -> bool:
        return self.day_types is None or day_type in self.day_types

    def applies_to_muscle(self, muscle: str, day_type: str) -> bool:
        if self.muscles is not None and muscle not in self.muscles:
            return False
        if self.focus_exempt and is_focus_muscle(muscle, day_type):
            return False
        return True

    def max_count(self, total: int) -> int:
        """Largest count that still respects the threshold (ties accepted)."""
        return (self.max_percent * total) // 100

    def is_violated(self, count: int, total: int) -> bool:
        return count * 100 > self.max_percent * total


@dataclass(frozen=True)
class CoverageRule:
    day_types: frozenset[str]
    # Each inner set is "at least one of"; every set must be satisfied.
    groups: tuple[frozenset[str], ...]
    reason: RejectionReason

    def missing_groups(self, counts: Mapping[str, int]) -> list[frozenset[str]]:
        return [g for g in self.groups if not any(counts.get(m, 0) > 0 for m in g)]


CONCENTRATION_RULES: tuple[ConcentrationRule, ...] = (
    ConcentrationRule(name="grupo_grande", max_percent=50, day_types=LOWER_DAY_TYPES),
    ConcentrationRule(name="grupo_pequeno", max_percent=30, muscles=SMALL_MUSCLES, focus_exempt=True),
)

COVERAGE_RULES: tuple[CoverageRule, ...] = (
    CoverageRule(
        day_types=LOWER_DAY_TYPES,
        groups=(frozenset({QUADRICEPS}), frozenset({POSTERIOR}), frozenset({GLUTEOS, PANTURRILHAS})),
        reason=RejectionReason.LOWER_MISSING_GROUPS,
    ),
    CoverageRule(
        day_types=frozenset({FULLBODY}),
        groups=(
            frozenset({PEITORAL}),
            frozenset({COSTAS}),
            frozenset({QUADRICEPS, POSTERIOR, GLUTEOS}),
            frozenset({OMBROS}),
        ),
        reason=RejectionReason.FULL_BODY_MISSING_GROUPS,
    ),
    CoverageRule(
        day_types=frozenset({UPPER}),
        groups=(frozenset({PEITORAL}), frozenset({COSTAS}), frozenset({OMBROS})),
        reason=RejectionReason.REQUIRED_GROUP_MISSING,
    ),
    CoverageRule(
        day_types=frozenset({PUSH}),
        groups=(frozenset({PEITORAL, OMBROS}),),
        reason=RejectionReason.REQUIRED_GROUP_MISSING,
    ),
    CoverageRule(
        day_types=frozenset({PULL}),
        groups=(frozenset({COSTAS}),),
        reason=RejectionReason.REQUIRED_GROUP_MISSING,
    ),
    CoverageRule(
        day_types=frozenset({SHOULDERS_ARMS}),
        groups=(frozenset({OMBROS}), frozenset({BICEPS, TRICEPS})),
        reason=RejectionReason.REQUIRED_GROUP_MISSING,
    ),
)


def coverage_rules_for(day_type: str) -> list[CoverageRule]:
    return [r for r in COVERAGE_RULES if day_type in r.day_types]


def concentration_limit(muscle: str, day_type: str, total: int) -> int:
    """Most exercises ``muscle`` may take in a day of ``total`` exercises."""
    limit = total
    for rule in CONCENTRATION_RULES:
        if rule.applies_to_day(day_type) and rule.applies_to_muscle(muscle, day_type):
            limit = min(limit, rule.max_count(total))
    return limit


@dataclass(frozen=True)
class PlanVerdict:
    usable: bool
    reason: RejectionReason | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.usable


def _reject(reason: RejectionReason, base: dict[str, Any], **details: Any) -> PlanVerdict:
    return PlanVerdict(usable=False, reason=reason, context={**base, **details})


def _exercise_signature(day: TrainingDay) -> list[tuple[str, int, str, str]]:
    return [(ex.name, ex.sets, ex.reps, ex.rest) for ex in day.exercises]


def _check_same_type_days(plan: TrainingPlan, base: dict[str, Any]) -> PlanVerdict | None:
    first_by_type: dict[str, TrainingDay] = {}
    for day in plan.weekly_schedule:
        key = normalize_day_type(day.type)
        first = first_by_type.setdefault(key, day)
        if first is not day and _exercise_signature(first) != _exercise_signature(day):
            return _reject(
                RejectionReason.SAME_TYPE_DAYS_DIFFER, base,
                dayType=key, day=day.day, firstDay=first.day,
            )
    return None


def _check_day(
    day: TrainingDay,
    max_per_session: int,
    max_per_muscle: int,
    available_minutes: int | None,
    base: dict[str, Any],
) -> PlanVerdict | None:
    day_type = normalize_day_type(day.type)
    total = len(day.exercises)
    ctx = {**base, "dayType": day_type, "day": day.day, "exerciseCount": total}

    if total == 0:
        return _reject(RejectionReason.EMPTY_DAY, ctx)
    if total < ABSOLUTE_MIN_EXERCISES:
        return _reject(RejectionReason.CRITICAL_LOW_VOLUME, ctx, minimum=ABSOLUTE_MIN_EXERCISES)
    if total > min(ABSOLUTE_MAX_EXERCISES, max_per_session):
        return _reject(
            RejectionReason.LEVEL_CAP_EXCEEDED, ctx,
            maxAllowed=min(ABSOLUTE_MAX_EXERCISES, max_per_session),
        )

    counts: Counter[str] = Counter()
    allowed = ALLOWED_MUSCLES.get(day_type)
    for ex in day.exercises:
        muscle = normalize_muscle(ex.primary_muscle)
        if not muscle:
            return _reject(RejectionReason.MISSING_PRIMARY_MUSCLE, ctx, exercise=ex.name)
        if allowed is not None and muscle not in allowed:
            return _reject(RejectionReason.FORBIDDEN_MUSCLE, ctx, exercise=ex.name, muscle=muscle)
        counts[muscle] += 1

    for rule in coverage_rules_for(day_type):
        missing = rule.missing_groups(counts)
        if missing:
            return _reject(
                rule.reason, ctx,
                missingGroups=[sorted(g) for g in missing],
            )

    # Sorted iteration keeps the reported muscle stable across runs.
    for muscle in sorted(counts):
        cap = muscle_cap(muscle, day_type, max_per_muscle)
        if cap is not None and counts[muscle] > cap:
            return _reject(
                RejectionReason.MUSCLE_CAP_EXCEEDED, ctx,
                muscle=muscle, count=counts[muscle], maxAllowed=cap,
            )

    for rule in CONCENTRATION_RULES:
        if not rule.applies_to_day(day_type):
            continue
        for muscle in sorted(counts):
            if rule.applies_to_muscle(muscle, day_type) and rule.is_violated(counts[muscle], total):
                return _reject(
                    RejectionReason.DISTRIBUTION_INVALID, ctx,
                    rule=rule.name, muscle=muscle, count=counts[muscle],
                    maxPercent=rule.max_percent,
                )

    if available_minutes is not None and available_minutes > 0:
        required = estimate_day_minutes(day.exercises)
        if required > available_minutes:
            return _reject(
                RejectionReason.SESSION_TOO_LONG, ctx,
                required=required, available=available_minutes,
            )
    return None


def evaluate_training_plan(
    plan: TrainingPlan | Mapping[str, Any] | None,
    training_days_per_week: int,
    activity_level: str | None,
    available_minutes_per_session: int | None = None,
) -> PlanVerdict:
    """Check a plan against every rule and report the first failure.

    Plan-level checks run first (shape, day count, same-type consistency),
    then each day in order. Unknown activity levels are judged with the
    most conservative profile.
    """
    base: dict[str, Any] = {"activityLevel": activity_level, "trainingDays": training_days_per_week}

    if isinstance(plan, Mapping):
        plan = TrainingPlan.from_dict(plan)
    if not isinstance(plan, TrainingPlan):
        return _reject(RejectionReason.WEEKLY_SCHEDULE_INVALID, base)

    received = len(plan.weekly_schedule)
    if received != training_days_per_week:
        return _reject(
            RejectionReason.DAY_COUNT_MISMATCH, base,
            expected=training_days_per_week, received=received,
        )

    verdict = _check_same_type_days(plan, base)
    if verdict is not None:
        return verdict

    profile = get_training_profile(activity_level)
    for day in plan.weekly_schedule:
        verdict = _check_day(
            day,
            profile.max_exercises_per_session,
            profile.max_exercises_per_muscle,
            available_minutes_per_session,
            base,
        )
        if verdict is not None:
            return verdict
    return PlanVerdict(usable=True)


def is_training_plan_usable(
    plan: TrainingPlan | Mapping[str, Any] | None,
    training_days_per_week: int,
    activity_level: str | None,
    available_minutes_per_session: int | None = None,
) -> bool:
    return evaluate_training_plan(
        plan, training_days_per_week, activity_level, available_minutes_per_session
    ).usable
