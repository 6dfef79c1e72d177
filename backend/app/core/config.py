"""Taskboard Configuration - environment-driven settings."""

import secrets
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Generated once per process when JWT_SECRET_KEY is not configured.
# Tokens signed with it do not survive a restart.
_EPHEMERAL_JWT_SECRET = secrets.token_urlsafe(48)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Taskboard"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./taskboard.db"
    db_pool_size: int = Field(default=20, ge=1)
    db_max_overflow: int = Field(default=20, ge=0)
    db_pool_timeout: int = Field(default=30, ge=1)
    db_pool_recycle: int = Field(default=1800, ge=1)
    auto_create_tables: bool = True

    # Sessions
    jwt_secret_key: str | None = None
    jwt_algorithm: str = "HS256"
    session_ttl_hours: int = Field(default=24, ge=1)
    session_cookie_name: str = "access_token"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Realtime channel
    realtime_owner_scoped: bool = False
    realtime_queue_size: int = Field(default=1000, ge=1)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str | None) -> str | None:
        """Reject short signing keys; an empty value means 'not configured'."""
        if v is None or v.strip() == "":
            return None
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @property
    def effective_jwt_secret_key(self) -> str:
        """The key used to sign session tokens."""
        return self.jwt_secret_key or _EPHEMERAL_JWT_SECRET

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_hours * 3600

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS origins parsed from the comma-separated setting."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def check_security_configuration(self) -> list[str]:
        """Return human-readable warnings about insecure configuration."""
        warnings: list[str] = []
        if self.jwt_secret_key is None:
            warnings.append(
                "JWT_SECRET_KEY is not set; using a random per-process key. "
                "Sessions will be invalidated on restart."
            )
        if "*" in self.cors_origins_list:
            warnings.append("CORS_ORIGINS contains '*'; credentialed requests will be rejected")
        if self.debug:
            warnings.append("DEBUG is enabled; API docs are exposed")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
