"""
Google OAuth utilities.

These helpers perform the refresh_token grant and classify the identity
provider's answer into the error taxonomy used by the token lifecycle manager.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from fastapi import status

from app.core.config import GoogleSettings
from app.models.oauth import RefreshedToken

logger = logging.getLogger(__name__)

_DEFAULT_EXPIRES_IN = 3600


class AuthError(Exception):
    """Base class for failures surfaced by ``TokenLifecycleManager.acquire``."""


class UnauthenticatedError(AuthError):
    """Raised when no credential is on file for the user."""


class RefreshUnavailableError(AuthError):
    """Raised when the refresh grant is missing or was revoked."""


class TransientProviderError(AuthError):
    """Raised for network, timeout and provider-side failures worth retrying."""


class InvalidGrantError(Exception):
    """Raised when the token endpoint permanently rejects the refresh token."""


def classify_refresh_response(
    status_code: int,
    body: Any,
    *,
    requested_at: datetime,
) -> RefreshedToken:
    """
    Turn a token endpoint response into a ``RefreshedToken`` or a typed error.

    ``body`` is the decoded JSON payload, or ``None`` when the response body
    could not be decoded.
    """
    if status_code == status.HTTP_200_OK:
        if not isinstance(body, dict):
            raise TransientProviderError("Token endpoint returned a malformed body.")
        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TransientProviderError("Token endpoint returned no access token.")
        refresh_token = body.get("refresh_token") or None
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TransientProviderError("Token endpoint returned a malformed refresh token.")

        raw_expires_in = body.get("expires_in", _DEFAULT_EXPIRES_IN)
        try:
            expires_in = int(raw_expires_in)
            if expires_in <= 0:
                raise ValueError("expires_in must be positive")
            return RefreshedToken(
                access_token=access_token,
                expires_at=requested_at + timedelta(seconds=expires_in),
                refresh_token=refresh_token,
            )
        except (TypeError, ValueError, OverflowError) as exc:
            # pydantic's ValidationError is a ValueError subclass.
            raise TransientProviderError(
                f"Token endpoint returned a malformed expires_in: {raw_expires_in!r}"
            ) from exc

    error_code = body.get("error") if isinstance(body, dict) else None
    if status_code == status.HTTP_400_BAD_REQUEST and error_code == "invalid_grant":
        raise InvalidGrantError(body.get("error_description") or "invalid_grant")

    raise TransientProviderError(
        f"Token endpoint answered {status_code} ({error_code or 'no error code'})."
    )


class GoogleTokenRefresher:
    """Exchange refresh tokens for new access tokens at Google's token endpoint."""

    def __init__(
        self,
        google_settings: GoogleSettings,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._google = google_settings
        self._timeout = timeout_seconds
        self._transport = transport
        self._clock = clock

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        """Perform a single refresh_token grant; callers own any retry policy."""
        payload: Dict[str, str] = {
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        requested_at = self._clock()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._google.token_uri, data=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Token refresh timed out after %.1fs", self._timeout)
            raise TransientProviderError("Token endpoint timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Token refresh failed at transport level: %s", type(exc).__name__)
            raise TransientProviderError("Token endpoint unreachable.") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        return classify_refresh_response(
            response.status_code, body, requested_at=requested_at
        )


__all__ = [
    "AuthError",
    "GoogleTokenRefresher",
    "InvalidGrantError",
    "RefreshUnavailableError",
    "TransientProviderError",
    "UnauthenticatedError",
    "classify_refresh_response",
]
