"""Tests for configuration module."""

from __future__ import annotations

from fitplan.config import Settings, _ENV_PROFILES, get_metrics_database_url, get_settings


def test_settings_defaults():
    s = Settings()
    assert s.app_env == "dev"
    assert s.metrics_database_url is None
    assert s.protein_per_kg_lean_mass == 2.2
    assert s.protein_cap_female_g == 180
    assert s.protein_cap_male_g == 220
    assert s.weekly_stimulus_ceiling == 6


def test_settings_frozen():
    s = Settings()
    try:
        s.app_env = "production"
        assert False, "Should raise"
    except AttributeError:
        pass


def test_settings_is_production():
    s = Settings(app_env="production")
    assert s.is_production is True
    assert s.is_dev is False


def test_persists_metrics_only_with_url():
    assert Settings().persists_metrics is False
    assert Settings(metrics_database_url="sqlite://").persists_metrics is True


def test_metrics_url_prefers_dedicated_var(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://app/db")
    monkeypatch.setenv("METRICS_DATABASE_URL", "sqlite:///metrics.db")
    assert get_metrics_database_url() == "sqlite:///metrics.db"


def test_metrics_url_falls_back_to_database_url(monkeypatch):
    monkeypatch.delenv("METRICS_DATABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://app/db")
    assert get_metrics_database_url() == "postgresql://app/db"


def test_metrics_url_absent(monkeypatch):
    monkeypatch.delenv("METRICS_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert get_metrics_database_url() is None


def test_env_profiles_exist():
    assert set(_ENV_PROFILES) == {"dev", "staging", "production"}


def test_dev_profile_debug_logging():
    assert _ENV_PROFILES["dev"]["log_level"] == "DEBUG"


def test_get_settings_production_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("REJECTION_METRICS_MAX", raising=False)
    monkeypatch.delenv("GENERATION_MAX_ATTEMPTS", raising=False)
    s = get_settings()
    assert s.is_production
    assert s.log_level == "WARNING"
    assert s.rejection_metrics_max == 5_000
    assert s.generation_max_attempts == 2


def test_get_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("PROTEIN_PER_KG_LEAN_MASS", "2.0")
    monkeypatch.setenv("PROTEIN_CAP_FEMALE_G", "160")
    monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "5")
    s = get_settings()
    assert s.protein_per_kg_lean_mass == 2.0
    assert s.protein_cap_female_g == 160
    assert s.generation_max_attempts == 5


def test_unknown_env_uses_dev_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "qa")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    s = get_settings()
    assert s.app_env == "qa"
    assert s.log_level == "DEBUG"
