"""Generate → validate → record → retry loop, nutrition and cardio preparation.

``generate_usable_training_plan`` is the engine-side half of the retry
cycle: each attempt uses a different ``variant`` so the generator explores
other exercise choices, and every rejected candidate is recorded with its
reason and context before the next attempt.

``prepare_nutrition_plan`` and ``prepare_cardio_progression`` apply the
pure correction rules and record every change they make as a correction
metric.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fitplan.config import get_settings
from fitplan.services.cardio import CardioProgression, determine_cardio_progression
from fitplan.services.correction_metrics import (
    PlanCorrectionRecorder,
    get_default_correction_recorder,
    record_cardio_progression,
    record_nutrition_correction,
    record_objective_conversion,
)
from fitplan.services.nutrition import NutritionCorrection, validate_and_correct_nutrition
from fitplan.services.objective import ObjectiveInterpretation, interpret_objective
from fitplan.services.plan_generator import generate_training_plan_structure
from fitplan.services.plan_metrics import PlanMetric
from fitplan.services.plan_validator import PlanVerdict, evaluate_training_plan
from fitplan.services.rejection_metrics import PlanRejectionRecorder, get_default_recorder
from fitplan.services.training_plan import TrainingPlan
from fitplan.validators import GenerationRequest, UserProfile, parse_user_profile

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    plan: TrainingPlan | None
    usable: bool
    attempts: int
    rejections: list[PlanVerdict] = field(default_factory=list)


@dataclass
class NutritionOutcome:
    objective: ObjectiveInterpretation
    correction: NutritionCorrection
    corrections: list[PlanMetric] = field(default_factory=list)

    @property
    def plan(self) -> Mapping[str, Any]:
        return self.correction.plan


def generate_usable_training_plan(
    request: GenerationRequest | Mapping[str, Any],
    recorder: PlanRejectionRecorder | None = None,
    max_attempts: int | None = None,
) -> GenerationOutcome:
    """Generate candidates until one passes validation or attempts run out.

    The last candidate is returned even when unusable, so the orchestrator
    can decide how to fall back.
    """
    if not isinstance(request, GenerationRequest):
        request = GenerationRequest.model_validate(request)
    recorder = recorder or get_default_recorder()
    attempts_allowed = max(1, max_attempts or get_settings().generation_max_attempts)

    rejections: list[PlanVerdict] = []
    plan: TrainingPlan | None = None
    for attempt in range(attempts_allowed):
        plan = generate_training_plan_structure(
            training_days_per_week=request.training_days_per_week,
            activity_level=request.activity_level,
            split_type=request.split_type,
            available_minutes_per_session=request.available_minutes_per_session,
            imc=request.imc,
            objective=request.objective,
            has_shoulder_restriction=request.has_shoulder_restriction,
            has_knee_restriction=request.has_knee_restriction,
            training_location=request.training_location,
            variant=attempt,
        )
        verdict = evaluate_training_plan(
            plan,
            request.training_days_per_week,
            request.activity_level,
            request.available_minutes_per_session,
        )
        if verdict.usable:
            return GenerationOutcome(plan=plan, usable=True, attempts=attempt + 1, rejections=rejections)

        rejections.append(verdict)
        recorder.record(verdict.reason, {**verdict.context, "attempt": attempt + 1})

    logger.error(
        "No usable plan after %d attempts",
        attempts_allowed,
        extra={
            "ctx_activity_level": request.activity_level,
            "ctx_training_days": request.training_days_per_week,
            "ctx_last_reason": rejections[-1].reason.value if rejections else None,
        },
    )
    return GenerationOutcome(plan=plan, usable=False, attempts=attempts_allowed, rejections=rejections)


def prepare_nutrition_plan(
    nutrition_plan: Mapping[str, Any],
    profile: UserProfile | Mapping[str, Any],
    recorder: PlanCorrectionRecorder | None = None,
) -> NutritionOutcome:
    """Reinterpret the objective, then cap the plan's protein."""
    profile, dropped = parse_user_profile(profile)
    objective = interpret_objective(profile)
    correction = validate_and_correct_nutrition(nutrition_plan, profile)
    if dropped:
        correction.warnings.append(f"Campos de perfil inválidos ignorados: {', '.join(dropped)}.")
    recorder = recorder or get_default_correction_recorder()
    corrections = [
        metric
        for metric in (
            record_objective_conversion(objective, profile, recorder),
            record_nutrition_correction(correction, profile, recorder),
        )
        if metric is not None
    ]
    return NutritionOutcome(objective=objective, correction=correction, corrections=corrections)


def prepare_cardio_progression(
    profile: UserProfile | Mapping[str, Any],
    recorder: PlanCorrectionRecorder | None = None,
) -> CardioProgression:
    """Initial cardio prescription; reductions are recorded as corrections."""
    profile, _ = parse_user_profile(profile)
    progression = determine_cardio_progression(profile)
    record_cardio_progression(progression, profile, recorder or get_default_correction_recorder())
    return progression
