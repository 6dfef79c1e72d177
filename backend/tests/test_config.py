"""Tests for configuration validation.

Tests the Settings validation to ensure invalid configurations
are rejected at startup. Settings are instantiated directly rather than
reloading the module so the process-wide settings object is left intact.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.core.config import Settings


class TestJwtSecretKeyValidation:
    """Tests for JWT signing key validation."""

    def test_valid_key_accepted(self):
        """Test that a 32+ character key is accepted."""
        with patch.dict(os.environ, {"JWT_SECRET_KEY": "k" * 32}, clear=False):
            settings = Settings()
        assert settings.jwt_secret_key == "k" * 32
        assert settings.effective_jwt_secret_key == "k" * 32

    def test_short_key_rejected(self):
        """Test that a short key is rejected."""
        with patch.dict(os.environ, {"JWT_SECRET_KEY": "too-short"}, clear=False):
            with pytest.raises(ValidationError) as exc_info:
                Settings()
        assert "32 characters" in str(exc_info.value)

    def test_missing_key_uses_ephemeral_key_and_warns(self):
        """Test that an unset key falls back to a random one with a warning."""
        with patch.dict(os.environ, {"JWT_SECRET_KEY": ""}, clear=False):
            settings = Settings()
        assert settings.jwt_secret_key is None
        assert len(settings.effective_jwt_secret_key) >= 32
        warnings = settings.check_security_configuration()
        assert any("JWT_SECRET_KEY" in w for w in warnings)

    def test_configured_key_no_warning(self):
        settings = Settings(jwt_secret_key="k" * 32, cors_origins="https://app.example.com")
        assert settings.check_security_configuration() == []


class TestSettingsValues:
    """Tests for defaults and derived values."""

    def test_defaults(self):
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///./x.db")
        assert settings.session_ttl_hours == 24
        assert settings.session_ttl_seconds == 86400
        assert settings.session_cookie_name == "access_token"
        assert settings.jwt_algorithm == "HS256"
        assert settings.is_sqlite is True

    def test_postgres_url_is_not_sqlite(self):
        settings = Settings(database_url="postgresql+asyncpg://u:p@localhost/taskboard")
        assert settings.is_sqlite is False

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a.example.com, http://b.example.com,")
        assert settings.cors_origins_list == ["http://a.example.com", "http://b.example.com"]

    def test_wildcard_cors_warns(self):
        settings = Settings(jwt_secret_key="k" * 32, cors_origins="*")
        assert any("CORS_ORIGINS" in w for w in settings.check_security_configuration())

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_realtime_owner_scoped_from_env(self):
        with patch.dict(os.environ, {"REALTIME_OWNER_SCOPED": "true"}, clear=False):
            assert Settings().realtime_owner_scoped is True

    def test_queue_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(realtime_queue_size=0)
