"""Tests for plan correction metrics."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from fitplan.db import build_engine, build_session_factory
from fitplan.services.cardio import determine_cardio_progression
from fitplan.services.correction_metrics import (
    CorrectionReason,
    PlanCorrectionRecorder,
    SqlCorrectionStore,
    record_cardio_progression,
    record_nutrition_correction,
    record_objective_conversion,
    record_plan_correction,
)
from fitplan.services.nutrition import validate_and_correct_nutrition
from fitplan.services.objective import interpret_objective
from fitplan.services.rejection_metrics import PlanRejectionRecorder, SqlRejectionStore
from fitplan.validators import UserProfile

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

LEAN_MAN = UserProfile(weight=80, height=182, gender="Masculino", imc=24.0, nivel_atividade="Moderado",
                       objective="Ganho de Massa")


@pytest.fixture
def recorder():
    rec = PlanCorrectionRecorder(max_metrics=100, recent_limit=10)
    yield rec
    rec.close()


def test_protein_cap_recorded_with_lean_mass_source(recorder):
    correction = validate_and_correct_nutrition({"macros": {"protein": "200g"}}, LEAN_MAN)
    metric = record_nutrition_correction(correction, LEAN_MAN, recorder)
    assert metric.reason == "proteina_ajustada_limite_seguranca"
    assert metric.context["capSource"] == "massa_magra"
    assert metric.context["leanMass"] == 68.0
    assert metric.context["correctedProtein"] == 149
    assert metric.activity_level == "Moderado"


def test_unchanged_results_are_not_recorded(recorder):
    correction = validate_and_correct_nutrition({"macros": {"protein": "100g"}}, LEAN_MAN)
    assert record_nutrition_correction(correction, LEAN_MAN, recorder) is None
    assert record_objective_conversion(interpret_objective(LEAN_MAN), LEAN_MAN, recorder) is None
    progression = determine_cardio_progression(LEAN_MAN)
    assert record_cardio_progression(progression, LEAN_MAN, recorder) is None
    assert recorder.statistics().total == 0


def test_objective_conversion_recorded(recorder):
    profile = UserProfile(imc=45.0, gender="Feminino", objective="Ganhar massa", nivel_atividade="Sedentária")
    metric = record_objective_conversion(interpret_objective(profile), profile, recorder)
    assert metric.reason == CorrectionReason.OBJECTIVE_CONVERTED.value
    assert metric.context["originalObjective"] == "Ganhar massa"
    assert metric.context["imc"] == 45.0


def test_light_intensity_only_change_counts_as_cardio_reduction(recorder):
    profile = UserProfile(imc=37.0, nivel_atividade="Sedentário", cardio_frequency=1,
                          training_frequency=3, cardio_intensity="intensa")
    progression = determine_cardio_progression(profile)
    metric = record_cardio_progression(progression, profile, recorder)
    assert metric.reason == "cardio_frequencia_reduzida_adaptacao"
    assert metric.context["correctedFrequency"] == 1
    assert metric.context["intensity"] == "leve"


def test_corrections_logged_at_info(recorder, caplog):
    with caplog.at_level(logging.INFO, logger="fitplan.services.correction_metrics"):
        record_plan_correction(CorrectionReason.PROTEIN_CAPPED, {"activityLevel": "Idoso"}, recorder=recorder)
    assert any(
        r.levelno == logging.INFO and "proteina_ajustada_limite_seguranca" in r.getMessage()
        for r in caplog.records
    )


def test_correction_and_rejection_tables_are_separate(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'metrics.db'}")
    factory = build_session_factory(engine)
    corrections = PlanCorrectionRecorder(store=SqlCorrectionStore(factory), max_metrics=100)
    rejections = PlanRejectionRecorder(store=SqlRejectionStore(factory), max_metrics=100)

    corrections.record(CorrectionReason.WEEKLY_STIMULI_EXCEEDED,
                       {"activityLevel": "Sedentário", "totalStimuli": 8}, timestamp=NOW)
    rejections.record("dia_sem_exercicios", {"activityLevel": "Idoso"}, timestamp=NOW)
    assert corrections.flush(timeout=5)
    assert rejections.flush(timeout=5)

    stored = SqlCorrectionStore(factory).fetch()
    assert [m.reason for m in stored] == ["estimulos_totais_excedidos"]
    assert stored[0].context["totalStimuli"] == 8
    assert stored[0].timestamp == NOW
    assert [m.reason for m in SqlRejectionStore(factory).fetch()] == ["dia_sem_exercicios"]

    corrections.close()
    rejections.close()
    engine.dispose()
