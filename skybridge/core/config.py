"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the session resolver and
the operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_secret: str = Field(
        ...,
        validation_alias="SKYBRIDGE_TOKEN_SECRET",
        description="Secret used to derive the symmetric key sealing bearer tokens.",
    )

    @field_validator("token_secret")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("SKYBRIDGE_TOKEN_SECRET must not be blank.")
        return value


class ProviderSettings(BaseSettings):
    """Identity provider (PDS) connection settings."""

    service_url: AnyHttpUrl = Field(
        "https://bsky.social",
        validation_alias="SKYBRIDGE_PROVIDER_URL",
    )
    timeout_seconds: float = Field(10.0, validation_alias="SKYBRIDGE_PROVIDER_TIMEOUT")
    retries: int = Field(
        2,
        validation_alias="SKYBRIDGE_PROVIDER_RETRIES",
        description="Extra attempts for transient transport or 5xx failures.",
    )


class RateLimitSettings(BaseSettings):
    """Brute-force protection for credential checks."""

    max_attempts: int = Field(5, validation_alias="SKYBRIDGE_AUTH_MAX_ATTEMPTS")
    lockout_minutes: int = Field(30, validation_alias="SKYBRIDGE_AUTH_LOCKOUT_MINUTES")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_path: str = Field("data/skybridge.db", validation_alias="SKYBRIDGE_DB_PATH")
    session_cache_ttl_seconds: int = Field(
        60,
        validation_alias="SKYBRIDGE_SESSION_CACHE_TTL",
        description="Lifetime of the process-local session shadow. 0 disables it.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "ProviderSettings",
    "RateLimitSettings",
    "SecuritySettings",
    "get_settings",
]
