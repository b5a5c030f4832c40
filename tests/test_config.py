"""
Settings tests.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from hotel_manage.config import PasswordPolicy, Settings, get_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("PasswordComplexityActive", "MinimumPasswordCharacters", "ENVIRONMENT", "DATABASE_URL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.PasswordComplexityActive is False
        assert settings.MinimumPasswordCharacters == 4
        assert settings.API_USER == "ApiUser"
        assert settings.ENVIRONMENT == "development"
        assert settings.password_policy == PasswordPolicy(active=False, min_length=4)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PasswordComplexityActive", "true")
        monkeypatch.setenv("MinimumPasswordCharacters", "8")
        settings = Settings(_env_file=None)
        assert settings.password_policy == PasswordPolicy(active=True, min_length=8)

    def test_minimum_characters_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, MinimumPasswordCharacters=0)

    def test_unknown_environment_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, ENVIRONMENT="staging")

    def test_database_url_composed(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(
            _env_file=None,
            POSTGRES_HOST="db.internal",
            POSTGRES_PORT=6543,
            POSTGRES_DB="hotel",
            POSTGRES_USER="svc",
            POSTGRES_PASSWORD="pw",
        )
        assert settings.database_url == "postgresql+psycopg2://svc:pw@db.internal:6543/hotel"

    def test_database_url_override(self):
        settings = Settings(_env_file=None, DATABASE_URL="sqlite://")
        assert settings.database_url == "sqlite://"

    def test_is_production(self):
        assert Settings(_env_file=None, ENVIRONMENT="production").is_production is True
        assert Settings(_env_file=None, ENVIRONMENT="test").is_production is False

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
