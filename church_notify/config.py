"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./church_notify.db",
        description="Database connection URL used by SQLAlchemy",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key for signing JWT tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone name or UTC offset used for notification timestamps",
    )
    environment: str = Field(
        default="development",
        description="Deployment environment name (development, staging, production)",
    )
    heartbeat_interval_seconds: float = Field(
        default=30.0,
        description="Seconds between heartbeat frames on an open notification stream",
        gt=0,
    )
    stream_max_lifetime_seconds: float = Field(
        default=290.0,
        description="Seconds after which the server closes a stream so clients reconnect",
        gt=0,
    )
    stream_history_limit: int = Field(
        default=100,
        description="Number of recent notifications the stream keeps in memory",
        gt=0,
    )
    initial_notifications_limit: int = Field(
        default=20,
        description="Number of notifications sent to a client right after it connects",
        gt=0,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return value.strip().lower() or "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
