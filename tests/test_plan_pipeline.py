"""Tests for the generate → validate → record loop and nutrition and cardio preparation."""

from __future__ import annotations

import logging

import pytest

from fitplan.services.correction_metrics import PlanCorrectionRecorder
from fitplan.services.plan_pipeline import (
    generate_usable_training_plan,
    prepare_cardio_progression,
    prepare_nutrition_plan,
)
from fitplan.services.plan_validator import RejectionReason
from fitplan.services.rejection_metrics import PlanRejectionRecorder


@pytest.fixture
def recorder():
    rec = PlanRejectionRecorder(max_metrics=100, recent_limit=10)
    yield rec
    rec.close()


@pytest.fixture
def corrections():
    rec = PlanCorrectionRecorder(max_metrics=100, recent_limit=10)
    yield rec
    rec.close()


def test_usable_plan_on_first_attempt(recorder):
    outcome = generate_usable_training_plan(
        {"trainingDaysPerWeek": 4, "activityLevel": "Moderado", "trainingLocation": "academia"},
        recorder=recorder,
    )
    assert outcome.usable
    assert outcome.attempts == 1
    assert outcome.rejections == []
    assert recorder.statistics().total == 0
    assert len(outcome.plan.weekly_schedule) == 4


def test_unfillable_request_records_each_rejection(recorder, caplog):
    request = {
        "trainingDaysPerWeek": 4,
        "activityLevel": "Moderado",
        "splitType": "UPPER_LOWER",
        "trainingLocation": "ar livre",
        "hasKneeRestriction": True,
    }
    with caplog.at_level(logging.ERROR, logger="fitplan.services.plan_pipeline"):
        outcome = generate_usable_training_plan(request, recorder=recorder, max_attempts=3)

    assert not outcome.usable
    assert outcome.attempts == 3
    assert outcome.plan is not None
    assert [v.reason for v in outcome.rejections] == [RejectionReason.LOWER_MISSING_GROUPS] * 3

    stats = recorder.statistics()
    assert stats.total == 3
    assert stats.by_reason == {"lower_sem_grupos_obrigatorios": 3}
    assert stats.by_activity_level == {"Moderado": 3}
    assert stats.by_day_type == {"lower": 3}
    assert sorted(m.context["attempt"] for m in stats.recent) == [1, 2, 3]
    assert any("No usable plan" in r.getMessage() for r in caplog.records)


def test_time_budget_respected_through_pipeline(recorder):
    outcome = generate_usable_training_plan(
        {"trainingDaysPerWeek": 3, "activityLevel": "Atleta", "availableMinutesPerSession": 60},
        recorder=recorder,
    )
    assert outcome.usable


def test_prepare_nutrition_plan_converts_and_caps(corrections):
    plan = {"dailyCalories": 1800, "macros": {"protein": "336g", "carbs": "150g", "fats": "60g"}}
    profile = {
        "weight": 148.7, "height": 160, "gender": "Feminino", "imc": 58.1,
        "nivelAtividade": "Sedentário", "objective": "Ganho de Massa",
    }
    outcome = prepare_nutrition_plan(plan, profile, recorder=corrections)
    assert outcome.objective.was_converted
    assert "Recomposição" in outcome.objective.interpreted_objective
    assert outcome.correction.was_adjusted
    assert outcome.plan["macros"]["protein"] == "180g"
    assert plan["macros"]["protein"] == "336g"

    assert [m.reason for m in outcome.corrections] == [
        "objetivo_convertido_fisiologico",
        "proteina_ajustada_limite_seguranca",
    ]
    protein = outcome.corrections[1]
    assert protein.context["originalProtein"] == 336
    assert protein.context["correctedProtein"] == 180
    assert protein.context["capSource"] == "cap_absoluto"
    assert protein.activity_level == "Sedentário"
    assert corrections.statistics().by_activity_level == {"Sedentário": 2}


def test_prepare_nutrition_plan_passthrough(corrections):
    plan = {"dailyCalories": 2500, "macros": {"protein": "120g"}}
    outcome = prepare_nutrition_plan(plan, {"weight": 75, "height": 178, "gender": "Masculino",
                                            "objective": "Ganho de Massa"}, recorder=corrections)
    assert not outcome.objective.was_converted
    assert outcome.plan is plan
    assert outcome.corrections == []
    assert corrections.statistics().total == 0


def test_prepare_nutrition_plan_tolerates_invalid_profile_fields(corrections):
    plan = {"dailyCalories": 1800, "macros": {"protein": "336g"}}
    profile = {"imc": 58.1, "gender": "Feminino", "objective": "Ganho de Massa", "age": 200}
    outcome = prepare_nutrition_plan(plan, profile, recorder=corrections)
    assert outcome.objective.was_converted
    assert outcome.plan["macros"]["protein"] == "180g"
    assert any("age" in w for w in outcome.correction.warnings)


def test_cardio_over_weekly_ceiling_recorded(corrections):
    profile = {"imc": 38.0, "nivelAtividade": "Sedentário", "cardioFrequency": 4, "trainingFrequency": 4}
    progression = prepare_cardio_progression(profile, recorder=corrections)
    assert progression.initial_frequency == 2
    stats = corrections.statistics()
    assert stats.by_reason == {"estimulos_totais_excedidos": 1}
    metric = stats.recent[0]
    assert metric.context["originalCardio"] == 4
    assert metric.context["correctedCardio"] == 2
    assert metric.context["totalStimuli"] == 8


def test_cardio_reduction_within_ceiling_recorded(corrections):
    profile = {"imc": 36.0, "nivelAtividade": "Sedentário", "cardioFrequency": 3, "trainingFrequency": 2}
    progression = prepare_cardio_progression(profile, recorder=corrections)
    assert progression.initial_frequency == 2
    assert corrections.statistics().by_reason == {"cardio_frequencia_reduzida_adaptacao": 1}


def test_cardio_passthrough_not_recorded(corrections):
    progression = prepare_cardio_progression(
        {"imc": 24.0, "nivelAtividade": "Moderado", "cardioFrequency": 4, "trainingFrequency": 4},
        recorder=corrections,
    )
    assert progression.initial_frequency == 4
    assert corrections.statistics().total == 0
