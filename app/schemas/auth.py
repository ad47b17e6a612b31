"""Schemas related to linked OAuth credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LinkCredentialsPayload(BaseModel):
    """Result of the external consent flow, handed over for storage."""

    user_id: str = Field(..., description="Application-level identifier for the user.")
    provider_account_id: str = Field(
        ..., description="Stable identifier of the Google account."
    )
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = Field(
        None, description="Present when offline access was granted."
    )
    expires_at: Optional[datetime] = Field(
        None, description="Absolute expiry of the access token."
    )


class TokenStatusResponse(BaseModel):
    """Non-secret view of a user's stored credential."""

    linked: bool
    has_refresh_token: bool = False
    expires_at: Optional[datetime] = None
    stale: bool = False


__all__ = ["LinkCredentialsPayload", "TokenStatusResponse"]
