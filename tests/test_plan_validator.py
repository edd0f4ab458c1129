"""Tests for the multi-rule plan validator."""

from __future__ import annotations

from fitplan.services.plan_validator import (
    CONCENTRATION_RULES,
    RejectionReason,
    concentration_limit,
    evaluate_training_plan,
    is_training_plan_usable,
    normalize_day_type,
)


def _ex(name, muscle, sets=3, rest="60s"):
    return {"name": name, "primaryMuscle": muscle, "sets": sets, "reps": "8-12", "rest": rest}


def _plan(*days):
    return {"overview": "", "progression": "", "weeklySchedule": list(days)}


def _day(day_type, exercises, label="Dia 1"):
    return {"day": label, "type": day_type, "exercises": exercises}


def _upper_day(chest):
    exercises = [_ex(f"Supino variação {i}", "peitoral") for i in range(chest)]
    exercises += [_ex(f"Remada variação {i}", "costas") for i in range(10 - chest - 1)]
    exercises += [_ex("Desenvolvimento", "ombros")]
    return _day("Upper", exercises)


# --- Concrete scenarios ---

def test_advanced_upper_day_with_six_chest_of_ten_is_usable():
    plan = _plan(_upper_day(6))
    assert len(plan["weeklySchedule"][0]["exercises"]) == 10
    assert is_training_plan_usable(plan, 1, "Atleta") is True


def test_advanced_upper_day_with_seven_chest_is_rejected():
    plan = _plan(_upper_day(7))
    assert len(plan["weeklySchedule"][0]["exercises"]) == 10
    verdict = evaluate_training_plan(plan, 1, "Atleta")
    assert verdict.usable is False
    assert verdict.reason is RejectionReason.MUSCLE_CAP_EXCEEDED
    assert verdict.context["muscle"] == "peitoral"


def test_advanced_leg_day_with_sixty_percent_quadriceps_is_rejected():
    exercises = (
        [_ex(f"Agachamento {i}", "quadriceps") for i in range(6)]
        + [_ex("Stiff", "posterior de coxa"), _ex("Mesa flexora", "posterior de coxa")]
        + [_ex("Panturrilha em pé", "panturrilhas"), _ex("Panturrilha sentado", "panturrilhas")]
    )
    verdict = evaluate_training_plan(_plan(_day("Legs", exercises)), 1, "Atleta")
    assert verdict.usable is False
    assert verdict.reason is RejectionReason.DISTRIBUTION_INVALID
    assert verdict.context["muscle"] == "quadriceps"
    assert verdict.context["maxPercent"] == 50


# --- Threshold ties ---

def test_fifty_percent_tie_is_accepted():
    exercises = (
        [_ex(f"Agachamento {i}", "quadriceps") for i in range(4)]
        + [_ex("Stiff", "posterior de coxa"), _ex("Mesa flexora", "posterior de coxa")]
        + [_ex("Elevação pélvica", "gluteos"), _ex("Panturrilha", "panturrilhas")]
    )
    assert is_training_plan_usable(_plan(_day("Lower", exercises)), 1, "Moderado") is True


def test_thirty_percent_tie_is_accepted():
    exercises = (
        [_ex(f"Remada {i}", "costas") for i in range(5)]
        + [_ex("Encolhimento", "trapezio"), _ex("Encolhimento 2", "trapezio")]
        + [_ex(f"Rosca {i}", "biceps") for i in range(3)]
    )
    assert len(exercises) == 10
    assert is_training_plan_usable(_plan(_day("Pull", exercises)), 1, "Atleta") is True


def test_biceps_over_thirty_percent_on_pull_day_rejected():
    exercises = (
        [_ex(f"Remada {i}", "costas") for i in range(4)]
        + [_ex("Encolhimento", "trapezio")]
        + [_ex(f"Rosca {i}", "biceps") for i in range(3)]
    )
    verdict = evaluate_training_plan(_plan(_day("Pull", exercises)), 1, "Moderado")
    assert verdict.reason is RejectionReason.DISTRIBUTION_INVALID
    assert verdict.context["muscle"] == "biceps"


def test_focus_day_waives_small_muscle_rule():
    exercises = (
        [_ex("Desenvolvimento", "ombros"), _ex("Elevação lateral", "ombros")]
        + [_ex(f"Rosca {i}", "biceps") for i in range(3)]
        + [_ex(f"Tríceps {i}", "triceps") for i in range(3)]
    )
    assert is_training_plan_usable(_plan(_day("ShouldersArms", exercises)), 1, "Moderado") is True


def test_focus_muscles_exempt_from_per_muscle_cap():
    exercises = (
        [_ex(f"Rosca {i}", "biceps") for i in range(7)]
        + [_ex("Desenvolvimento", "ombros"), _ex("Tríceps testa", "triceps")]
    )
    verdict = evaluate_training_plan(_plan(_day("ShouldersArms", exercises)), 1, "Atleta")
    assert verdict.usable, verdict


def test_per_muscle_cap_still_applies_off_focus_day():
    exercises = [_ex(f"Remada {i}", "costas") for i in range(7)] + [_ex("Rosca", "biceps"), _ex("Face pull", "ombros")]
    verdict = evaluate_training_plan(_plan(_day("Pull", exercises)), 1, "Atleta")
    assert verdict.reason is RejectionReason.MUSCLE_CAP_EXCEEDED
    assert verdict.context["muscle"] == "costas"


def test_focus_day_still_bound_by_level_cap():
    exercises = [_ex(f"Rosca {i}", "biceps") for i in range(5)] + [_ex("Desenvolvimento", "ombros")]
    verdict = evaluate_training_plan(_plan(_day("ShouldersArms", exercises)), 1, "Idoso")
    assert verdict.reason is RejectionReason.LEVEL_CAP_EXCEEDED


# --- Coverage ---

def test_lower_day_without_posterior_rejected():
    exercises = [
        _ex("Agachamento", "quadriceps"), _ex("Afundo", "quadriceps"),
        _ex("Elevação pélvica", "gluteos"), _ex("Ponte", "gluteos"),
    ]
    verdict = evaluate_training_plan(_plan(_day("Lower", exercises)), 1, "Moderado")
    assert verdict.reason is RejectionReason.LOWER_MISSING_GROUPS
    assert verdict.context["missingGroups"] == [["posterior de coxa"]]


def test_full_body_requires_legs():
    exercises = [_ex("Supino", "peitoral"), _ex("Remada", "costas"), _ex("Desenvolvimento", "ombros")]
    verdict = evaluate_training_plan(_plan(_day("Full Body", exercises)), 1, "Moderado")
    assert verdict.reason is RejectionReason.FULL_BODY_MISSING_GROUPS


def test_upper_body_muscle_on_leg_day_forbidden():
    exercises = [
        _ex("Agachamento", "quadriceps"), _ex("Stiff", "posterior de coxa"),
        _ex("Ponte", "gluteos"), _ex("Supino", "peitoral"),
    ]
    verdict = evaluate_training_plan(_plan(_day("Pernas", exercises)), 1, "Moderado")
    assert verdict.reason is RejectionReason.FORBIDDEN_MUSCLE
    assert verdict.context["muscle"] == "peitoral"


# --- Counts and shape ---

def test_none_plan_is_invalid_schedule():
    assert evaluate_training_plan(None, 3, "Moderado").reason is RejectionReason.WEEKLY_SCHEDULE_INVALID
    assert evaluate_training_plan({"overview": "x"}, 3, "Moderado").reason is RejectionReason.WEEKLY_SCHEDULE_INVALID


def test_day_count_must_match_frequency():
    day = _day("Push", [_ex("Supino", "peitoral"), _ex("Desenvolvimento", "ombros"), _ex("Tríceps", "triceps")])
    verdict = evaluate_training_plan(_plan(day), 2, "Moderado")
    assert verdict.reason is RejectionReason.DAY_COUNT_MISMATCH
    assert verdict.context["expected"] == 2
    assert verdict.context["received"] == 1


def test_empty_day_rejected():
    verdict = evaluate_training_plan(_plan(_day("Push", [])), 1, "Moderado")
    assert verdict.reason is RejectionReason.EMPTY_DAY


def test_two_exercises_below_absolute_minimum():
    day = _day("Push", [_ex("Supino", "peitoral"), _ex("Desenvolvimento", "ombros")])
    assert evaluate_training_plan(_plan(day), 1, "Moderado").reason is RejectionReason.CRITICAL_LOW_VOLUME


def test_missing_primary_muscle_rejected():
    day = _day("Push", [_ex("Supino", "peitoral"), _ex("Desenvolvimento", "ombros"), _ex("Mistério", "")])
    assert evaluate_training_plan(_plan(day), 1, "Moderado").reason is RejectionReason.MISSING_PRIMARY_MUSCLE


def test_same_type_days_must_match():
    push_a = _day("Push", [_ex("Supino", "peitoral"), _ex("Desenvolvimento", "ombros"), _ex("Tríceps", "triceps")], "A")
    push_b = _day("Push", [_ex("Crucifixo", "peitoral"), _ex("Desenvolvimento", "ombros"), _ex("Tríceps", "triceps")], "B")
    verdict = evaluate_training_plan(_plan(push_a, push_b), 2, "Moderado")
    assert verdict.reason is RejectionReason.SAME_TYPE_DAYS_DIFFER


def test_session_longer_than_available_time_rejected():
    day = _day("Push", [
        _ex("Supino", "peitoral", sets=4, rest="120s"),
        _ex("Supino inclinado", "peitoral", sets=4, rest="120s"),
        _ex("Desenvolvimento", "ombros", sets=4, rest="120s"),
    ])
    # 3 × 4 × 150 s = 30 min
    assert is_training_plan_usable(_plan(day), 1, "Moderado", 30) is True
    verdict = evaluate_training_plan(_plan(day), 1, "Moderado", 29)
    assert verdict.reason is RejectionReason.SESSION_TOO_LONG
    assert verdict.context["required"] == 30


def test_unknown_level_uses_conservative_cap():
    day = _day("Push", [_ex(f"Ex {i}", m) for i, m in enumerate(
        ["peitoral", "peitoral", "ombros", "ombros", "triceps", "peitoral"]
    )])
    assert evaluate_training_plan(_plan(day), 1, "desconhecido").reason is RejectionReason.LEVEL_CAP_EXCEEDED


# --- Purity ---

def test_validator_is_deterministic():
    plan = _plan(_upper_day(7))
    first = evaluate_training_plan(plan, 1, "Atleta")
    second = evaluate_training_plan(plan, 1, "Atleta")
    assert first == second
    assert is_training_plan_usable(plan, 1, "Atleta") == is_training_plan_usable(plan, 1, "Atleta")


def test_validator_does_not_mutate_input():
    plan = _plan(_upper_day(6))
    before = repr(plan)
    evaluate_training_plan(plan, 1, "Atleta")
    assert repr(plan) == before


# --- Rule helpers ---

def test_day_type_aliases():
    assert normalize_day_type("Pernas") == "legs"
    assert normalize_day_type("Full Body") == "fullbody"
    assert normalize_day_type("Ombros/Braços") == "shouldersarms"
    assert normalize_day_type("Inferiores") == "lower"


def test_concentration_limits_use_integer_math():
    assert concentration_limit("quadriceps", "lower", 10) == 5
    assert concentration_limit("biceps", "pull", 10) == 3
    assert concentration_limit("biceps", "shouldersarms", 10) == 10
    assert concentration_limit("peitoral", "upper", 10) == 10
    assert [r.max_percent for r in CONCENTRATION_RULES] == [50, 30]
