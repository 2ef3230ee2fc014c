#!/usr/bin/env python3
"""
Unit Tests for Configuration Management
Tests for docvault/core/config.py
"""

import pytest
from pydantic import ValidationError

from docvault.core.config import Settings

SECRET = "x" * 32


def _settings(**overrides) -> Settings:
    """Settings built without reading a .env file"""
    return Settings(_env_file=None, SECRET_KEY=overrides.pop("SECRET_KEY", SECRET), **overrides)


@pytest.mark.unit
class TestSettingsDefaults:
    """Test default settings values"""

    def test_application_defaults(self, monkeypatch):
        for name in ("DEBUG", "ENVIRONMENT", "ANNOTATION_ENABLED", "MAX_UPLOAD_SIZE_MB"):
            monkeypatch.delenv(name, raising=False)
        settings = _settings()

        assert settings.APP_NAME == "DocVault Document Management"
        assert settings.DEBUG is False
        assert settings.ENVIRONMENT == "development"
        assert settings.ANNOTATION_ENABLED is False
        assert settings.MAX_UPLOAD_SIZE_MB == 50

    def test_jwt_defaults(self, monkeypatch):
        monkeypatch.delenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
        monkeypatch.delenv("JWT_REFRESH_TOKEN_EXPIRE_DAYS", raising=False)
        settings = _settings()

        assert settings.JWT_ALGORITHM == "HS256"
        assert settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES == 15
        assert settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS == 7

    def test_minio_bucket_default(self, monkeypatch):
        monkeypatch.delenv("MINIO_BUCKET", raising=False)
        assert _settings().MINIO_BUCKET == "documents"


@pytest.mark.unit
class TestDatabaseUrl:
    """Test database URL composition"""

    def test_composed_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = _settings(
            POSTGRES_USER="u",
            POSTGRES_PASSWORD="p",
            POSTGRES_HOST="db",
            POSTGRES_PORT=5433,
            POSTGRES_DB="vault",
        )
        assert settings.POSTGRES_URL == "postgresql+asyncpg://u:p@db:5433/vault"

    def test_database_url_overrides_parts(self):
        settings = _settings(DATABASE_URL="sqlite+aiosqlite:///:memory:")
        assert settings.POSTGRES_URL == "sqlite+aiosqlite:///:memory:"


@pytest.mark.unit
class TestSettingsValidation:
    """Test settings validators"""

    def test_secret_key_too_short(self):
        with pytest.raises(ValidationError):
            _settings(SECRET_KEY="short")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            _settings(ENVIRONMENT="testing")

    @pytest.mark.parametrize("env", ["development", "staging", "production"])
    def test_valid_environments(self, env):
        assert _settings(ENVIRONMENT=env).ENVIRONMENT == env

    def test_log_level_upper_cased(self):
        assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            _settings(LOG_LEVEL="verbose")
