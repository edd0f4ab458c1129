"""Tests for Pydantic input validation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fitplan.validators import GenerationRequest, UserProfile, parse_user_profile


# --- UserProfile ---

def test_profile_accepts_camel_case_aliases():
    p = UserProfile.model_validate({
        "weight": 150, "height": 160, "gender": "Feminino", "imc": 58.1,
        "nivelAtividade": "Sedentário", "objective": "Ganho de Massa",
        "trainingFrequency": 4, "cardioFrequency": 4,
    })
    assert p.nivel_atividade == "Sedentário"
    assert p.training_frequency == 4
    assert p.cardio_frequency == 4


def test_profile_accepts_snake_case_names():
    p = UserProfile(nivel_atividade="Moderado", cardio_frequency=2)
    assert p.nivel_atividade == "Moderado"
    assert p.cardio_frequency == 2


def test_profile_bmi_prefers_stated_imc():
    assert UserProfile(weight=80, height=180, imc=30.0).bmi == 30.0


def test_profile_bmi_derived_from_centimetres():
    assert UserProfile(weight=80, height=200).bmi == 20.0


def test_profile_bmi_derived_from_metres():
    assert UserProfile(weight=81, height=1.8).bmi == 25.0


def test_profile_bmi_missing_data():
    assert UserProfile(weight=80).bmi is None


def test_profile_rejects_negative_weight():
    with pytest.raises(ValidationError):
        UserProfile(weight=-1)


def test_profile_is_frozen():
    p = UserProfile(weight=70)
    with pytest.raises(ValidationError):
        p.weight = 80


def test_parse_profile_drops_only_invalid_fields():
    profile, dropped = parse_user_profile({
        "weight": 148.7, "imc": 58.1, "gender": "Feminino",
        "trainingFrequency": 10, "age": 130,
    })
    assert dropped == ["age", "training_frequency"]
    assert profile.imc == 58.1
    assert profile.training_frequency is None
    assert profile.age is None


def test_parse_profile_drops_snake_case_field():
    profile, dropped = parse_user_profile({"imc": 0, "weight": 80, "height": 182})
    assert dropped == ["imc"]
    assert profile.bmi == 24.2


def test_parse_profile_passes_valid_input_through():
    existing = UserProfile(imc=22.0)
    assert parse_user_profile(existing) == (existing, [])
    assert parse_user_profile({"imc": 22.0})[1] == []
    assert parse_user_profile(None) == (UserProfile(), [])


# --- GenerationRequest ---

def test_request_valid():
    r = GenerationRequest.model_validate({
        "trainingDaysPerWeek": 4, "activityLevel": "Atleta", "trainingLocation": "Casa",
    })
    assert r.training_days_per_week == 4
    assert r.training_location == "casa"
    assert r.has_knee_restriction is False


def test_request_days_out_of_range():
    with pytest.raises(ValidationError):
        GenerationRequest(training_days_per_week=0)
    with pytest.raises(ValidationError):
        GenerationRequest(training_days_per_week=8)


def test_request_rejects_unknown_location():
    with pytest.raises(ValidationError):
        GenerationRequest(training_days_per_week=3, training_location="praia")


def test_request_normalizes_outdoor_label():
    r = GenerationRequest(training_days_per_week=3, training_location="ar livre")
    assert r.training_location == "ar_livre"


def test_request_minutes_must_be_positive():
    with pytest.raises(ValidationError):
        GenerationRequest(training_days_per_week=3, available_minutes_per_session=0)
