"""Conservative initial cardio prescription for at-risk profiles.

Sedentary users with IMC ≥ 35 start with at most 2 light sessions a week,
and cardio plus strength sessions may not exceed 6 weekly stimuli. Only the
cardio side is ever reduced to meet that ceiling. Everyone else gets the
requested frequency and intensity back unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from fitplan.config import Settings, get_settings
from fitplan.services.training_profiles import is_sedentary
from fitplan.validators import UserProfile, parse_user_profile

logger = logging.getLogger(__name__)

LIGHT_INTENSITY = "leve"
DEFAULT_INTENSITY = "moderada"
AT_RISK_PROGRESSION_WEEKS = 4


@dataclass(frozen=True)
class CardioProgression:
    initial_frequency: int
    initial_intensity: str
    progression_weeks: int
    max_initial_frequency: int
    reason: str
    was_adjusted: bool
    training_frequency: int = 0
    requested_frequency: int = 0

    @property
    def combined_weekly_stimulus(self) -> int:
        return self.initial_frequency + self.training_frequency


def is_cardio_at_risk(profile: UserProfile, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    imc = profile.bmi
    return imc is not None and imc >= settings.cardio_at_risk_imc and is_sedentary(profile.nivel_atividade)


def determine_cardio_progression(
    profile: UserProfile | Mapping[str, Any],
    settings: Settings | None = None,
) -> CardioProgression:
    settings = settings or get_settings()
    profile, _ = parse_user_profile(profile)

    requested = profile.cardio_frequency or 0
    training = profile.training_frequency or 0

    if not is_cardio_at_risk(profile, settings):
        return CardioProgression(
            initial_frequency=requested,
            initial_intensity=profile.cardio_intensity or DEFAULT_INTENSITY,
            progression_weeks=0,
            max_initial_frequency=requested,
            reason="Frequência de cardio apropriada para o perfil do usuário.",
            was_adjusted=False,
            training_frequency=training,
            requested_frequency=requested,
        )

    ceiling = settings.weekly_stimulus_ceiling
    max_initial = min(settings.cardio_at_risk_max_sessions, max(0, ceiling - training))
    initial = min(requested, max_initial)
    was_adjusted = initial != requested or (profile.cardio_intensity or DEFAULT_INTENSITY) != LIGHT_INTENSITY
    reason = (
        f"Nível sedentário + IMC {profile.bmi:.1f}. Início conservador com {initial}x/semana leve "
        f"({training + initial} estímulos semanais, limite {ceiling}). "
        f"Progressão após {AT_RISK_PROGRESSION_WEEKS} semanas."
    )
    if was_adjusted:
        logger.info(
            "Cardio progression reduced",
            extra={
                "ctx_requested_frequency": requested,
                "ctx_initial_frequency": initial,
                "ctx_training_frequency": training,
                "ctx_imc": profile.bmi,
            },
        )
    return CardioProgression(
        initial_frequency=initial,
        initial_intensity=LIGHT_INTENSITY,
        progression_weeks=AT_RISK_PROGRESSION_WEEKS,
        max_initial_frequency=max_initial,
        reason=reason,
        was_adjusted=was_adjusted,
        training_frequency=training,
        requested_frequency=requested,
    )
