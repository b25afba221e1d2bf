"""Tests for application settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from studyhall.core.config.settings import StudyHallSettings, get_settings, load_settings
from studyhall.core.exceptions import ConfigurationError


class TestStudyHallSettings:
    """Tests for StudyHallSettings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("API_BASE_URL", raising=False)
        settings = StudyHallSettings(_env_file=None)

        assert settings.api_base_url == "http://localhost:5000/api"
        assert settings.api_token is None
        assert settings.request_timeout == 30.0
        assert settings.default_membership_months == 1
        assert settings.log_level == "INFO"

    def test_env_auto_detected_under_pytest(self, monkeypatch):
        monkeypatch.delenv("ENV", raising=False)
        settings = StudyHallSettings(_env_file=None)

        assert settings.env == "testing"
        assert not settings.is_production()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", "https://desk.example.com/api/")
        monkeypatch.setenv("API_TOKEN", "tok")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DEFAULT_MEMBERSHIP_MONTHS", "3")

        settings = StudyHallSettings(_env_file=None)

        assert settings.api_base_url == "https://desk.example.com/api"
        assert settings.api_token.get_secret_value() == "tok"
        assert settings.log_level == "DEBUG"
        assert settings.default_membership_months == 3

    def test_invalid_url_rejected(self):
        with pytest.raises(PydanticValidationError):
            StudyHallSettings(_env_file=None, api_base_url="ftp://desk")

    def test_invalid_env_rejected(self):
        with pytest.raises(PydanticValidationError):
            StudyHallSettings(_env_file=None, env="moon")

    def test_membership_months_bounds(self):
        with pytest.raises(PydanticValidationError):
            StudyHallSettings(_env_file=None, default_membership_months=0)

    def test_token_is_masked(self, monkeypatch):
        monkeypatch.setenv("API_TOKEN", "super-secret")
        settings = StudyHallSettings(_env_file=None)

        assert "super-secret" not in repr(settings)


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_load_settings_wraps_invalid_values(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "loud")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.details["fields"] == ["log_level"]
