"""Tests for configuration module."""

from __future__ import annotations

import dataclasses

import pytest

from core.config import Settings, _ENV_PROFILES, get_database_url, get_settings


def test_settings_dataclass():
    s = Settings(database_url="postgres://localhost/test")
    assert s.database_url == "postgres://localhost/test"
    assert s.app_env == "dev"
    assert s.debounce_ms == 300
    assert s.max_default_players == 15
    assert s.duration_ema_weight == 0.3
    assert s.intensity_promotion_threshold == 3


def test_settings_frozen():
    s = Settings(database_url="x")
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.database_url = "y"


def test_settings_is_production():
    s = Settings(database_url="x", app_env="production")
    assert s.is_production is True


def test_debounce_seconds():
    assert Settings(database_url="x", debounce_ms=250).debounce_seconds == 0.25


def test_get_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://from-env/db")
    assert get_database_url() == "postgres://from-env/db"


def test_get_database_url_default(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert get_database_url().startswith("sqlite:///")


def test_get_settings_uses_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://test/db")
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("MAX_DEFAULT_PLAYERS", "8")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
    s = get_settings()
    assert s.database_url == "postgres://test/db"
    assert s.app_env == "production"
    assert s.max_default_players == 8
    assert s.cors_origins == ["http://a.test", "http://b.test"]


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("APP_ENV", "staging")
    first = get_settings()
    monkeypatch.setenv("APP_ENV", "production")
    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().app_env == "production"


def test_env_profiles_exist():
    for name in ("dev", "staging", "test", "production"):
        assert name in _ENV_PROFILES


def test_dev_profile_debug_logging():
    assert _ENV_PROFILES["dev"]["log_level"] == "DEBUG"


def test_settings_profile_defaults(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DEBOUNCE_MS", raising=False)
    s = get_settings()
    assert s.log_level == "WARNING"
    assert s.debounce_ms == 10


def test_unknown_env_falls_back_to_dev_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "qa")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DEBOUNCE_MS", raising=False)
    s = get_settings()
    assert s.app_env == "qa"
    assert s.log_level == "DEBUG"
    assert s.debounce_ms == 300


def test_production_env_sets_is_production(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert get_settings().is_production is True
