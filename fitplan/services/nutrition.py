"""Protein ceiling for nutrition plans, based on estimated lean mass.

Rules:
- Body fat is estimated from IMC bands, with separate female/male curves
  ("other" uses the midpoint of the two)
- Lean mass = weight × (1 − body fat), never below 40% of body weight
- Protein ceiling = lean mass × 2.2 g/kg, except in the obesity range where
  an absolute per-gender cap applies
- Only the protein string is ever rewritten; every other field of the plan
  passes through untouched
"""

from __future__ import annotations

import copy
import logging
import math
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Mapping

from fitplan.config import Settings, get_settings
from fitplan.validators import UserProfile, parse_user_profile

logger = logging.getLogger(__name__)

FEMALE = "female"
MALE = "male"
OTHER = "other"

# (upper IMC bound, female %, male %); the last band has no upper bound.
BODY_FAT_BANDS: tuple[tuple[float | None, float, float], ...] = (
    (18.5, 15.0, 10.0),
    (25.0, 22.0, 15.0),
    (30.0, 30.0, 25.0),
    (35.0, 38.0, 32.0),
    (40.0, 42.0, 36.0),
    (None, 45.0, 40.0),
)
MIN_LEAN_MASS_FRACTION = 0.4
MAX_PROTEIN_CALORIE_PERCENT = 75.0
KCAL_PER_GRAM_PROTEIN = 4

CAP_SOURCE_LEAN_MASS = "massa_magra"
CAP_SOURCE_ABSOLUTE = "cap_absoluto"

_GRAMS = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*(?:g|gr|gramas?)?\s*$", re.IGNORECASE)


def classify_gender(gender: str | None) -> str:
    if not gender:
        return OTHER
    decomposed = unicodedata.normalize("NFD", gender)
    g = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").strip().lower()
    if g in {"f", "female", "mulher", "woman"} or g.startswith("femin"):
        return FEMALE
    if g in {"m", "male", "homem", "man"} or g.startswith("mascul"):
        return MALE
    return OTHER


def estimate_body_fat_percent(imc: float, gender: str | None) -> float:
    """Body fat % for an IMC; monotonic non-decreasing in IMC for every gender."""
    kind = classify_gender(gender)
    for upper, female, male in BODY_FAT_BANDS:
        if upper is None or imc < upper:
            if kind == FEMALE:
                return female
            if kind == MALE:
                return male
            return (female + male) / 2
    raise AssertionError("unreachable: last band is open-ended")


def estimate_lean_mass(weight: float, imc: float, gender: str | None) -> float:
    body_fat = estimate_body_fat_percent(imc, gender)
    return max(weight * (1 - body_fat / 100), weight * MIN_LEAN_MASS_FRACTION)


def absolute_protein_cap(gender: str | None, settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    kind = classify_gender(gender)
    if kind == FEMALE:
        return settings.protein_cap_female_g
    if kind == MALE:
        return settings.protein_cap_male_g
    return settings.protein_cap_other_g


def parse_grams(value: Any) -> float | None:
    """Grams from "180g", "180", "180.5 g" or a number; None when unreadable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    if not isinstance(value, str):
        return None
    match = _GRAMS.match(value)
    if not match:
        return None
    return float(match.group(1).replace(",", "."))


@dataclass
class NutritionCorrection:
    plan: Mapping[str, Any]
    was_adjusted: bool
    lean_mass: float | None = None
    protein_cap: int | None = None
    cap_source: str | None = None
    original_protein: float | None = None
    corrected_protein: int | None = None
    adjustments: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def protein_ceiling(profile: UserProfile, settings: Settings | None = None) -> tuple[int, str, float | None] | None:
    """(cap grams, cap source, lean mass) for a profile, or None without enough data."""
    settings = settings or get_settings()
    imc = profile.bmi
    if imc is None:
        return None
    lean_mass = estimate_lean_mass(profile.weight, imc, profile.gender) if profile.weight else None
    if imc >= settings.obesity_imc_threshold:
        return absolute_protein_cap(profile.gender, settings), CAP_SOURCE_ABSOLUTE, lean_mass
    if lean_mass is None:
        return None
    # Floor keeps a corrected plan at or under its own ceiling.
    return math.floor(lean_mass * settings.protein_per_kg_lean_mass), CAP_SOURCE_LEAN_MASS, lean_mass


def validate_and_correct_nutrition(
    plan: Mapping[str, Any],
    profile: UserProfile | Mapping[str, Any],
    settings: Settings | None = None,
) -> NutritionCorrection:
    """Cap the plan's protein target at the user's physiological ceiling.

    Returns the input object itself when nothing changes. When protein is
    capped, a copy is returned with only ``macros.protein`` rewritten to an
    integer-gram string. Unreadable protein values and profiles without IMC
    leave the plan unchanged with a warning.
    """
    settings = settings or get_settings()
    profile, dropped = parse_user_profile(profile)
    warnings: list[str] = []
    if dropped:
        warnings.append(f"Campos de perfil inválidos ignorados: {', '.join(dropped)}.")

    macros = plan.get("macros") if isinstance(plan, Mapping) else None
    raw_protein = macros.get("protein") if isinstance(macros, Mapping) else None
    protein = parse_grams(raw_protein)
    if protein is None:
        logger.warning("Unreadable protein target %r; plan left unchanged", raw_protein,
                       extra={"ctx_protein": raw_protein})
        warnings.append(f"Proteína ilegível: {raw_protein!r}")
        return NutritionCorrection(plan=plan, was_adjusted=False, warnings=warnings)

    calories = plan.get("dailyCalories")
    if isinstance(calories, (int, float)) and calories > 0:
        percent = protein * KCAL_PER_GRAM_PROTEIN / calories * 100
        if percent > MAX_PROTEIN_CALORIE_PERCENT:
            warnings.append(f"Proteína representa {percent:.1f}% das calorias (meta: <75%).")

    ceiling = protein_ceiling(profile, settings)
    if ceiling is None:
        logger.warning("Profile lacks IMC or weight; protein not checked")
        warnings.append("Perfil sem IMC ou peso: proteína não verificada.")
        return NutritionCorrection(plan=plan, was_adjusted=False, original_protein=protein, warnings=warnings)

    cap, source, lean_mass = ceiling
    if protein <= cap:
        return NutritionCorrection(
            plan=plan, was_adjusted=False, lean_mass=lean_mass, protein_cap=cap,
            cap_source=source, original_protein=protein, warnings=warnings,
        )

    corrected = copy.deepcopy(dict(plan))
    corrected["macros"] = {**corrected["macros"], "protein": f"{cap}g"}
    note = f"Proteína reduzida de {protein:.0f}g para {cap}g ({source})"
    logger.info(
        "Protein target capped",
        extra={
            "ctx_original_protein": protein,
            "ctx_corrected_protein": cap,
            "ctx_cap_source": source,
            "ctx_lean_mass": round(lean_mass, 1) if lean_mass is not None else None,
            "ctx_imc": profile.bmi,
        },
    )
    return NutritionCorrection(
        plan=corrected,
        was_adjusted=True,
        lean_mass=lean_mass,
        protein_cap=cap,
        cap_source=source,
        original_protein=protein,
        corrected_protein=cap,
        adjustments=[note],
        warnings=warnings,
    )
