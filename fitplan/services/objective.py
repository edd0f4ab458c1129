"""Reinterpretation of mass-gain objectives for high-adiposity profiles.

A literal calorie-surplus "ganho de massa" plan is not appropriate when the
estimated body fat is already high, so the objective is redirected to body
recomposition instead of being rejected.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import Any, Mapping

from fitplan.services.nutrition import FEMALE, MALE, classify_gender, estimate_body_fat_percent
from fitplan.validators import UserProfile, parse_user_profile

logger = logging.getLogger(__name__)

RECOMPOSITION_OBJECTIVE = "Recomposição corporal com foco em força + preservação de massa magra"

# Estimated body fat % from which a surplus is no longer advised.
HIGH_ADIPOSITY_BODY_FAT = {FEMALE: 38.0, MALE: 32.0}
HIGH_ADIPOSITY_BODY_FAT_OTHER = 35.0


@dataclass(frozen=True)
class ObjectiveInterpretation:
    original_objective: str | None
    interpreted_objective: str | None
    reason: str
    was_converted: bool


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").lower()


def is_mass_gain_objective(objective: str | None) -> bool:
    if not objective:
        return False
    goal = _fold(objective)
    if "hipertrofia" in goal or "bulk" in goal:
        return True
    return ("ganho" in goal or "ganhar" in goal) and ("massa" in goal or "peso" in goal)


def has_high_adiposity(imc: float | None, gender: str | None) -> bool:
    if imc is None:
        return False
    threshold = HIGH_ADIPOSITY_BODY_FAT.get(classify_gender(gender), HIGH_ADIPOSITY_BODY_FAT_OTHER)
    return estimate_body_fat_percent(imc, gender) >= threshold


def interpret_objective(profile: UserProfile | Mapping[str, Any]) -> ObjectiveInterpretation:
    profile, _ = parse_user_profile(profile)
    objective = profile.objective
    imc = profile.bmi

    if is_mass_gain_objective(objective) and has_high_adiposity(imc, profile.gender):
        body_fat = estimate_body_fat_percent(imc, profile.gender)
        reason = (
            f"IMC {imc:.1f} (gordura estimada {body_fat:.0f}%). \"Ganho de massa\" com superávit "
            "calórico não é fisiologicamente apropriado; convertido para recomposição com "
            "déficit calórico e treino de força."
        )
        logger.info(
            "Objective converted to recomposition",
            extra={"ctx_original_objective": objective, "ctx_imc": imc, "ctx_body_fat": body_fat},
        )
        return ObjectiveInterpretation(
            original_objective=objective,
            interpreted_objective=RECOMPOSITION_OBJECTIVE,
            reason=reason,
            was_converted=True,
        )

    return ObjectiveInterpretation(
        original_objective=objective,
        interpreted_objective=objective,
        reason="Objetivo apropriado para o perfil do usuário.",
        was_converted=False,
    )
