"""Pydantic validation models for the engine's entry points.

Requests arrive from the orchestrator in camel case (``nivelAtividade``,
``trainingDaysPerWeek``); snake-case field names are accepted as well.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

ALLOWED_TRAINING_LOCATIONS = {"academia", "casa", "ambos", "ar_livre", "gym", "home", "both", "outdoor"}


class UserProfile(BaseModel):
    """Read-only profile of the user a plan is generated for.

    Every field is optional: nutrition and cardio rules fall back to safe
    defaults when data is missing instead of rejecting the request.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    weight: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: Optional[str] = None
    imc: Optional[float] = Field(default=None, gt=0)
    nivel_atividade: Optional[str] = Field(default=None, alias="nivelAtividade")
    objective: Optional[str] = None
    training_frequency: Optional[int] = Field(default=None, ge=0, le=7, alias="trainingFrequency")
    cardio_frequency: Optional[int] = Field(default=None, ge=0, le=7, alias="cardioFrequency")
    cardio_intensity: Optional[str] = Field(default=None, alias="cardioIntensity")

    @property
    def bmi(self) -> Optional[float]:
        """Stated IMC, or weight/height² when it was not provided."""
        if self.imc:
            return self.imc
        if not self.weight or not self.height:
            return None
        # Heights above 3 are centimetres.
        meters = self.height / 100 if self.height > 3 else self.height
        return round(self.weight / (meters * meters), 1)


def parse_user_profile(data: UserProfile | Mapping[str, Any] | None) -> tuple[UserProfile, list[str]]:
    """Profile from orchestrator input, dropping fields that fail validation.

    Returns the profile and the names of the dropped fields. Rules treat a
    dropped field as missing data and fall back accordingly.
    """
    if isinstance(data, UserProfile):
        return data, []
    if not isinstance(data, Mapping):
        return UserProfile(), []
    try:
        return UserProfile.model_validate(data), []
    except ValidationError as exc:
        bad = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}

    dropped = sorted(
        name for name, info in UserProfile.model_fields.items()
        if name in bad or (info.alias and info.alias in bad)
    )
    keys = set(dropped) | {UserProfile.model_fields[name].alias for name in dropped}
    cleaned = {k: v for k, v in data.items() if k not in keys}
    logger.warning(
        "Invalid profile fields ignored: %s",
        ", ".join(dropped),
        extra={"ctx_fields": dropped},
    )
    try:
        return UserProfile.model_validate(cleaned), dropped
    except ValidationError:
        return UserProfile(), sorted(UserProfile.model_fields)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    training_days_per_week: int = Field(ge=1, le=7, alias="trainingDaysPerWeek")
    activity_level: Optional[str] = Field(default=None, alias="activityLevel")
    split_type: Optional[str] = Field(default=None, alias="splitType")
    available_minutes_per_session: Optional[int] = Field(
        default=None, gt=0, le=300, alias="availableMinutesPerSession"
    )
    imc: Optional[float] = Field(default=None, gt=0)
    objective: Optional[str] = None
    has_shoulder_restriction: bool = Field(default=False, alias="hasShoulderRestriction")
    has_knee_restriction: bool = Field(default=False, alias="hasKneeRestriction")
    training_location: Optional[str] = Field(default=None, alias="trainingLocation")

    @field_validator("training_location")
    @classmethod
    def valid_training_location(cls, v):
        if v is None:
            return v
        normalized = v.strip().lower().replace(" ", "_")
        if normalized not in ALLOWED_TRAINING_LOCATIONS:
            raise ValueError(f"training_location must be one of {sorted(ALLOWED_TRAINING_LOCATIONS)}")
        return normalized
