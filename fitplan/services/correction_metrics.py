"""Plan correction metrics: what the engine changed in a user's request.

Protein caps, objective conversions and cardio reductions are each counted
by reason and activity level, with the before/after values kept in the
metric context. Storage and aggregation are shared with rejection metrics
(``plan_metrics``); rows go to the ``plan_correction_metrics`` table.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping

from fitplan.config import Settings, get_settings
from fitplan.db import get_session_factory
from fitplan.models import PlanCorrectionMetric
from fitplan.services.cardio import CardioProgression
from fitplan.services.nutrition import NutritionCorrection
from fitplan.services.objective import ObjectiveInterpretation
from fitplan.services.plan_metrics import MetricRecorder, PlanMetric, SqlMetricStore
from fitplan.validators import UserProfile

logger = logging.getLogger(__name__)


class CorrectionReason(str, Enum):
    PROTEIN_CAPPED = "proteina_ajustada_limite_seguranca"
    OBJECTIVE_CONVERTED = "objetivo_convertido_fisiologico"
    CARDIO_REDUCED = "cardio_frequencia_reduzida_adaptacao"
    WEEKLY_STIMULI_EXCEEDED = "estimulos_totais_excedidos"


class SqlCorrectionStore(SqlMetricStore):
    """Corrections persisted to the ``plan_correction_metrics`` table."""
    model = PlanCorrectionMetric


class PlanCorrectionRecorder(MetricRecorder):
    event_message = "Plan corrected: %s"
    event_level = logging.INFO
    log = logger


def build_correction_recorder(settings: Settings | None = None) -> PlanCorrectionRecorder:
    settings = settings or get_settings()
    store = None
    if settings.persists_metrics:
        store = SqlCorrectionStore(get_session_factory(settings.metrics_database_url))
    return PlanCorrectionRecorder(store=store, settings=settings)


@lru_cache(maxsize=1)
def get_default_correction_recorder() -> PlanCorrectionRecorder:
    """Process-wide recorder for callers that do not inject their own."""
    return build_correction_recorder()


def _profile_context(profile: UserProfile) -> dict[str, Any]:
    return {
        "activityLevel": profile.nivel_atividade,
        "imc": profile.bmi,
        "gender": profile.gender,
        "age": profile.age,
    }


def record_plan_correction(
    reason: CorrectionReason | str,
    context: Mapping[str, Any] | None = None,
    recorder: PlanCorrectionRecorder | None = None,
) -> PlanMetric:
    return (recorder or get_default_correction_recorder()).record(reason, context)


def record_nutrition_correction(
    correction: NutritionCorrection,
    profile: UserProfile,
    recorder: PlanCorrectionRecorder | None = None,
) -> PlanMetric | None:
    if not correction.was_adjusted:
        return None
    return record_plan_correction(
        CorrectionReason.PROTEIN_CAPPED,
        {
            **_profile_context(profile),
            "originalProtein": correction.original_protein,
            "correctedProtein": correction.corrected_protein,
            "leanMass": round(correction.lean_mass, 1) if correction.lean_mass is not None else None,
            "capSource": correction.cap_source,
        },
        recorder,
    )


def record_objective_conversion(
    interpretation: ObjectiveInterpretation,
    profile: UserProfile,
    recorder: PlanCorrectionRecorder | None = None,
) -> PlanMetric | None:
    if not interpretation.was_converted:
        return None
    return record_plan_correction(
        CorrectionReason.OBJECTIVE_CONVERTED,
        {
            **_profile_context(profile),
            "originalObjective": interpretation.original_objective,
            "correctedObjective": interpretation.interpreted_objective,
        },
        recorder,
    )


def record_cardio_progression(
    progression: CardioProgression,
    profile: UserProfile,
    recorder: PlanCorrectionRecorder | None = None,
    settings: Settings | None = None,
) -> PlanMetric | None:
    """Count a cardio reduction; ``None`` when the request passed through.

    Requests whose cardio plus strength sessions exceeded the weekly ceiling
    are told apart from plain reductions of the at-risk starting dose.
    """
    if not progression.was_adjusted:
        return None
    settings = settings or get_settings()
    requested_total = progression.requested_frequency + progression.training_frequency
    if requested_total > settings.weekly_stimulus_ceiling:
        reason = CorrectionReason.WEEKLY_STIMULI_EXCEEDED
        details = {
            "trainingFrequency": progression.training_frequency,
            "originalCardio": progression.requested_frequency,
            "correctedCardio": progression.initial_frequency,
            "totalStimuli": requested_total,
        }
    else:
        reason = CorrectionReason.CARDIO_REDUCED
        details = {
            "originalFrequency": progression.requested_frequency,
            "correctedFrequency": progression.initial_frequency,
            "intensity": progression.initial_intensity,
        }
    return record_plan_correction(reason, {**_profile_context(profile), **details}, recorder)
