import pytest
from pydantic import ValidationError

from festa.core.config import EnvironmentMode, Settings, get_settings


def test_defaults_to_development(monkeypatch):
    monkeypatch.delenv("ENV_MODE", raising=False)
    settings = Settings(_env_file=None)

    assert settings.env_mode == EnvironmentMode.DEVELOPMENT
    assert settings.is_development
    assert not settings.use_real_services
    assert settings.validate_production_config() == []


def test_env_mode_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "PRODUCTION")
    settings = Settings(_env_file=None)

    assert settings.is_production
    assert settings.use_real_services


def test_invalid_env_mode_is_rejected(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "party")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_production_requires_supabase_credentials(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "staging")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    settings = Settings(_env_file=None)

    assert settings.validate_production_config() == ["SUPABASE_URL", "SUPABASE_KEY"]


def test_rest_url_drops_trailing_slash(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://festa.supabase.co/")
    settings = Settings(_env_file=None)

    assert settings.supabase_rest_url == "https://festa.supabase.co/rest/v1"


def test_settings_are_cached():
    assert get_settings() is get_settings()
