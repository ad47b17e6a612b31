"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token lifecycle
manager and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


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


class GoogleSettings(BaseSettings):
    """Client credentials registered with Google's identity provider."""

    client_id: str = Field(..., validation_alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="GOOGLE_CLIENT_SECRET")
    token_uri: str = Field(
        "https://oauth2.googleapis.com/token",
        validation_alias="GOOGLE_TOKEN_URI",
        description="Token endpoint used for refresh_token grants.",
    )


class OAuthSettings(BaseSettings):
    """Token lifecycle tuning."""

    provider: str = Field("google", validation_alias="OAUTH_PROVIDER")
    refresh_timeout_seconds: float = Field(
        10.0,
        validation_alias="OAUTH_REFRESH_TIMEOUT",
        description="Upper bound for a single call to the token endpoint.",
    )
    refresh_leeway_seconds: int = Field(
        0,
        validation_alias="OAUTH_REFRESH_LEEWAY",
        description="Treat tokens as stale this many seconds before expiry.",
    )
    assumed_token_ttl_seconds: Optional[int] = Field(
        None,
        validation_alias="OAUTH_ASSUMED_TOKEN_TTL",
        description=(
            "When set, records without an expiry are considered stale this many "
            "seconds after their last update instead of being trusted until rejected."
        ),
    )
    transient_retry_attempts: int = Field(2, validation_alias="OAUTH_RETRY_ATTEMPTS")
    transient_retry_backoff_seconds: float = Field(
        0.5, validation_alias="OAUTH_RETRY_BACKOFF"
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_token_encryption_secrets: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Comma-separated retired secrets still accepted for decryption.",
    )

    @field_validator("previous_token_encryption_secrets", mode="before")
    @classmethod
    def _split_secrets(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        if isinstance(value, (tuple, list)):
            return tuple(value)
        return tuple(secret.strip() for secret in value.split(",") if secret.strip())


class YouTubeSettings(BaseSettings):
    """Configuration for the YouTube Data API."""

    video_id: Optional[str] = Field(
        None,
        validation_alias="YOUTUBE_VIDEO_ID",
        description="The video managed by the dashboard.",
    )
    category_id: str = Field(
        "28",
        validation_alias="YOUTUBE_CATEGORY_ID",
        description="Category applied when updating video details.",
    )
    comment_page_size: int = Field(20, validation_alias="YOUTUBE_COMMENT_PAGE_SIZE")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_path: str = Field("data/dashboard.db", validation_alias="DASHBOARD_DB_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GoogleSettings",
    "OAuthSettings",
    "SecuritySettings",
    "YouTubeSettings",
    "get_settings",
]
