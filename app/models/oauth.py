"""
Domain models for OAuth token persistence.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenRecord(BaseModel):
    """The current delegated credential for one (user, provider) pair."""

    user_id: str
    provider: str = "google"
    provider_account_id: str = Field(
        ..., description="Stable identifier of the provider account."
    )
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = Field(
        None, description="Instant after which the access token must not be used."
    )
    version: int = Field(
        0, description="Row version used for optimistic concurrency control."
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_stale(
        self,
        now: datetime,
        *,
        leeway: timedelta = timedelta(0),
        assumed_ttl: Optional[timedelta] = None,
    ) -> bool:
        """Return whether the access token should be refreshed before use."""
        if self.expires_at is None:
            if assumed_ttl is None:
                return False
            return now >= _as_utc(self.updated_at) + assumed_ttl
        return now >= _as_utc(self.expires_at) - leeway


class RefreshedToken(BaseModel):
    """Result of a successful refresh_token grant."""

    access_token: str
    expires_at: datetime
    refresh_token: Optional[str] = Field(
        None, description="Present only when the provider rotated the refresh token."
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = ["RefreshedToken", "TokenRecord", "utcnow"]
