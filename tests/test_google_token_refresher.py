from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from app.clients.google_auth import (
    GoogleTokenRefresher,
    InvalidGrantError,
    TransientProviderError,
    classify_refresh_response,
)
from app.core.config import GoogleSettings

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _settings() -> GoogleSettings:
    return GoogleSettings(
        GOOGLE_CLIENT_ID="client",
        GOOGLE_CLIENT_SECRET="secret",
        GOOGLE_TOKEN_URI="https://oauth.example/token",
    )


def _refresher(handler) -> tuple[GoogleTokenRefresher, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    refresher = GoogleTokenRefresher(
        _settings(),
        timeout_seconds=2.0,
        transport=httpx.MockTransport(_record),
        clock=lambda: NOW,
    )
    return refresher, requests


@pytest.mark.asyncio
async def test_refresh_success_posts_refresh_grant() -> None:
    refresher, requests = _refresher(
        lambda request: httpx.Response(
            200, json={"access_token": "A2", "expires_in": 3599, "token_type": "Bearer"}
        )
    )

    result = await refresher.refresh("R1")

    assert result.access_token == "A2"
    assert result.expires_at == NOW + timedelta(seconds=3599)
    assert result.refresh_token is None

    assert len(requests) == 1
    assert str(requests[0].url) == "https://oauth.example/token"
    form = parse_qs(requests[0].content.decode("utf-8"))
    assert form == {
        "client_id": ["client"],
        "client_secret": ["secret"],
        "grant_type": ["refresh_token"],
        "refresh_token": ["R1"],
    }


@pytest.mark.asyncio
async def test_refresh_returns_rotated_refresh_token() -> None:
    refresher, _ = _refresher(
        lambda request: httpx.Response(
            200, json={"access_token": "A2", "expires_in": 3600, "refresh_token": "R2"}
        )
    )

    result = await refresher.refresh("R1")

    assert result.refresh_token == "R2"


@pytest.mark.asyncio
async def test_invalid_grant_is_classified_as_permanent() -> None:
    refresher, _ = _refresher(
        lambda request: httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
        )
    )

    with pytest.raises(InvalidGrantError):
        await refresher.refresh("R1")


@pytest.mark.asyncio
async def test_server_error_is_transient_and_not_retried() -> None:
    refresher, requests = _refresher(
        lambda request: httpx.Response(503, json={"error": "backendError"})
    )

    with pytest.raises(TransientProviderError):
        await refresher.refresh("R1")

    assert len(requests) == 1


@pytest.mark.asyncio
async def test_timeout_is_transient() -> None:
    def _timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    refresher, _ = _refresher(_timeout)

    with pytest.raises(TransientProviderError):
        await refresher.refresh("R1")


@pytest.mark.asyncio
async def test_connection_failure_is_transient() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    refresher, _ = _refresher(_refuse)

    with pytest.raises(TransientProviderError):
        await refresher.refresh("R1")


@pytest.mark.asyncio
async def test_malformed_body_is_transient() -> None:
    refresher, _ = _refresher(
        lambda request: httpx.Response(200, content=b"<html>oops</html>")
    )

    with pytest.raises(TransientProviderError):
        await refresher.refresh("R1")


@pytest.mark.parametrize(
    ("status_code", "body"),
    [
        (400, {"error": "invalid_request"}),
        (400, None),
        (401, {"error": "invalid_client"}),
        (429, {"error": "rate_limit_exceeded"}),
        (500, {"error": "invalid_grant"}),
        (200, {"expires_in": 3600}),
        (200, {"access_token": "A2", "expires_in": "soon"}),
        (200, ["not", "an", "object"]),
        (200, {"access_token": 123, "expires_in": 3600}),
        (200, {"access_token": "A2", "expires_in": 3600, "refresh_token": 7}),
        (200, {"access_token": "A2", "expires_in": 10**20}),
        (200, {"access_token": "A2", "expires_in": 0}),
        (200, {"access_token": "A2", "expires_in": -60}),
    ],
)
def test_non_grant_failures_are_transient(status_code: int, body) -> None:
    with pytest.raises(TransientProviderError):
        classify_refresh_response(status_code, body, requested_at=NOW)


def test_missing_expires_in_defaults_to_one_hour() -> None:
    result = classify_refresh_response(200, {"access_token": "A2"}, requested_at=NOW)

    assert result.expires_at == NOW + timedelta(hours=1)
