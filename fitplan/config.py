"""Engine configuration with environment-specific profiles.

Supports dev, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Immutable engine settings resolved from environment."""

    app_env: str = "dev"
    log_level: str = "INFO"
    metrics_database_url: str | None = None

    # Nutrition caps
    protein_per_kg_lean_mass: float = 2.2
    obesity_imc_threshold: float = 30.0
    protein_cap_female_g: int = 180
    protein_cap_male_g: int = 220
    protein_cap_other_g: int = 200

    # Cardio safety band
    cardio_at_risk_imc: float = 35.0
    cardio_at_risk_max_sessions: int = 2
    weekly_stimulus_ceiling: int = 6

    # Rejection metrics
    rejection_metrics_max: int = 10_000
    rejection_recent_limit: int = 100

    generation_max_attempts: int = 3

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def persists_metrics(self) -> bool:
        return bool(self.metrics_database_url)


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "rejection_metrics_max": 10_000,
    },
    "staging": {
        "log_level": "INFO",
        "rejection_metrics_max": 10_000,
    },
    "production": {
        "log_level": "WARNING",
        "rejection_metrics_max": 5_000,
        "generation_max_attempts": 2,
    },
}


def get_metrics_database_url() -> str | None:
    """Resolve the metrics store URL.

    Resolution order:
    1. METRICS_DATABASE_URL environment variable
    2. DATABASE_URL environment variable
    3. None (rejections stay in memory only)
    """
    return os.getenv("METRICS_DATABASE_URL") or os.getenv("DATABASE_URL") or None


def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        metrics_database_url=get_metrics_database_url(),
        protein_per_kg_lean_mass=float(os.getenv("PROTEIN_PER_KG_LEAN_MASS", "2.2")),
        obesity_imc_threshold=float(os.getenv("OBESITY_IMC_THRESHOLD", "30.0")),
        protein_cap_female_g=int(os.getenv("PROTEIN_CAP_FEMALE_G", "180")),
        protein_cap_male_g=int(os.getenv("PROTEIN_CAP_MALE_G", "220")),
        protein_cap_other_g=int(os.getenv("PROTEIN_CAP_OTHER_G", "200")),
        cardio_at_risk_imc=float(os.getenv("CARDIO_AT_RISK_IMC", "35.0")),
        cardio_at_risk_max_sessions=int(os.getenv("CARDIO_AT_RISK_MAX_SESSIONS", "2")),
        weekly_stimulus_ceiling=int(os.getenv("WEEKLY_STIMULUS_CEILING", "6")),
        rejection_metrics_max=int(
            os.getenv("REJECTION_METRICS_MAX", str(profile.get("rejection_metrics_max", 10_000)))
        ),
        rejection_recent_limit=int(os.getenv("REJECTION_RECENT_LIMIT", "100")),
        generation_max_attempts=int(
            os.getenv("GENERATION_MAX_ATTEMPTS", str(profile.get("generation_max_attempts", 3)))
        ),
    )
