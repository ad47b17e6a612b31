try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.clients.google_auth import (
    GoogleTokenRefresher,
    RefreshUnavailableError,
    TransientProviderError,
    UnauthenticatedError,
)
from app.clients.sqlite_store import SQLiteCredentialStore
from app.clients.youtube import DelegatedAPICallFailed, DelegatedAPIErrorKind
from app.core.config import GoogleSettings, OAuthSettings
from app.main import app
from app.services.event_log import EventLog
from app.services.google_tokens import TokenLifecycleManager
from app.services.notes import NoteStore
from app.services.token_cipher import TokenCipherService
from app.services.video_dashboard import VideoDashboardService
from app.utils.http import RetryConfig

pytestmark = pytest.mark.anyio


class StubTokenManager:
    def __init__(self) -> None:
        self.error: Exception | None = None

    async def acquire(self, user_id: str, *, rejected_token=None) -> str:
        if self.error is not None:
            raise self.error
        return "access-token"


class StubYouTubeClient:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.updates: list[dict] = []

    async def get_video(self, *, access_token: str, video_id: str):
        if self.error is not None:
            raise self.error
        if video_id == "missing":
            return None
        return {
            "video_id": video_id,
            "title": "Demo",
            "description": "About the demo",
            "category_id": "28",
            "published_at": "2024-05-01T10:00:00Z",
            "view_count": 10,
            "like_count": 1,
            "comment_count": 0,
        }

    async def update_video_details(self, *, access_token: str, **kwargs):
        self.updates.append(kwargs)
        return {"id": kwargs["video_id"]}

    async def list_comment_threads(self, *, access_token: str, video_id: str, max_results=None):
        if self.error is not None:
            raise self.error
        return [
            {
                "comment_id": "comment-1",
                "author": "Viewer",
                "text": "Nice",
                "published_at": "2024-05-01T11:00:00Z",
                "like_count": 0,
                "reply_count": 1,
                "replies": [
                    {
                        "comment_id": "comment-1.reply-1",
                        "author": "Owner",
                        "text": "Thanks",
                    }
                ],
            }
        ]

    async def post_comment(self, *, access_token: str, video_id: str, text: str):
        if self.error is not None:
            raise self.error
        return {"id": "thread-1"}

    async def delete_comment(self, *, access_token: str, comment_id: str):
        return None


@pytest.fixture()
def overrides(tmp_path):
    from app import dependencies

    db_path = str(tmp_path / "dashboard.db")
    token_manager = StubTokenManager()
    youtube = StubYouTubeClient()
    credential_store = SQLiteCredentialStore(db_path, TokenCipherService(secret="test"))
    service = VideoDashboardService(
        token_manager=token_manager,
        youtube_client=youtube,
        note_store=NoteStore(db_path),
        event_log=EventLog(db_path),
        retry_config=RetryConfig(attempts=1),
    )
    status_manager = TokenLifecycleManager(
        store=credential_store,
        refresher=GoogleTokenRefresher(GoogleSettings()),
        oauth_settings=OAuthSettings(),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_video_dashboard_service: lambda: service,
            dependencies.get_credential_store: lambda: credential_store,
            dependencies.get_token_manager: lambda: status_manager,
        }
    )

    yield token_manager, youtube, credential_store

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def test_healthcheck():
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_link_and_status_roundtrip(overrides):
    _, _, credential_store = overrides
    expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

    async with _client() as client:
        before = await client.get("/api/auth/google/status", params={"user_id": "user-1"})
        link = await client.post(
            "/api/auth/google/link",
            json={
                "user_id": "user-1",
                "provider_account_id": "acct-1",
                "access_token": "A1",
                "refresh_token": "R1",
                "expires_at": expires_at.isoformat(),
            },
        )
        after = await client.get("/api/auth/google/status", params={"user_id": "user-1"})

    assert before.json()["linked"] is False
    assert link.status_code == 200
    assert link.json() == {"status": "connected", "offline_access": True}
    body = after.json()
    assert body["linked"] is True
    assert body["has_refresh_token"] is True
    assert body["stale"] is False
    assert "A1" not in after.text
    assert credential_store.get("user-1", "google").access_token == "A1"


async def test_get_video(overrides):
    async with _client() as client:
        response = await client.get("/api/videos/vid-1", params={"user_id": "user-1"})
        missing = await client.get("/api/videos/missing", params={"user_id": "user-1"})
        configured = await client.get("/api/video", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert response.json()["title"] == "Demo"
    assert missing.status_code == 404
    assert configured.status_code == 200
    assert configured.json()["video_id"] == "vid-123"


@pytest.mark.parametrize(
    ("error", "expected_status"),
    [
        (UnauthenticatedError("none"), 401),
        (RefreshUnavailableError("revoked"), 401),
        (TransientProviderError("timeout"), 503),
    ],
)
async def test_auth_errors_map_to_http_status(overrides, error, expected_status):
    token_manager, _, _ = overrides
    token_manager.error = error

    async with _client() as client:
        response = await client.get("/api/videos/vid-1", params={"user_id": "user-1"})

    assert response.status_code == expected_status


async def test_refresh_unavailable_asks_for_reconsent(overrides):
    token_manager, _, _ = overrides
    token_manager.error = RefreshUnavailableError("revoked")

    async with _client() as client:
        response = await client.get("/api/videos/vid-1", params={"user_id": "user-1"})

    assert "sign in again" in response.json()["detail"]


@pytest.mark.parametrize(
    ("kind", "expected_status"),
    [
        (DelegatedAPIErrorKind.PERMISSION_DENIED, 403),
        (DelegatedAPIErrorKind.QUOTA_EXCEEDED, 429),
        (DelegatedAPIErrorKind.FEATURE_DISABLED, 409),
        (DelegatedAPIErrorKind.MALFORMED_REQUEST, 400),
        (DelegatedAPIErrorKind.UNKNOWN, 502),
    ],
)
async def test_youtube_failures_map_to_user_messages(overrides, kind, expected_status):
    _, youtube, _ = overrides
    youtube.error = DelegatedAPICallFailed(kind, "provider detail")

    async with _client() as client:
        response = await client.post(
            "/api/videos/vid-1/comments",
            params={"user_id": "user-1"},
            json={"text": "Hello"},
        )

    assert response.status_code == expected_status
    assert response.json()["detail"] == youtube.error.user_message


async def test_update_video_and_comments_flow(overrides):
    _, youtube, _ = overrides

    async with _client() as client:
        update = await client.patch(
            "/api/videos/vid-1",
            params={"user_id": "user-1"},
            json={"title": "New title", "description": "Body"},
        )
        comments = await client.get("/api/videos/vid-1/comments", params={"user_id": "user-1"})
        created = await client.post(
            "/api/videos/vid-1/comments",
            params={"user_id": "user-1"},
            json={"text": "Hello"},
        )
        deleted = await client.delete("/api/comments/comment-1", params={"user_id": "user-1"})
        log = await client.get("/api/events", params={"user_id": "user-1"})

    assert update.status_code == 200
    assert youtube.updates[0]["title"] == "New title"
    assert comments.json()[0]["comment_id"] == "comment-1"
    assert comments.json()[0]["replies"][0]["text"] == "Thanks"
    assert created.status_code == 201
    assert created.json()["comment_thread_id"] == "thread-1"
    assert deleted.status_code == 204
    assert [entry["action"] for entry in log.json()] == [
        "COMMENT_DELETED",
        "COMMENT_ADDED",
        "VIDEO_DETAILS_UPDATED",
    ]


async def test_notes_crud(overrides):
    async with _client() as client:
        created = await client.post(
            "/api/videos/vid-1/notes",
            json={"user_id": "user-1", "content": "Trim intro", "tags": ["edit"]},
        )
        note_id = created.json()["note_id"]
        listed = await client.get("/api/videos/vid-1/notes", params={"user_id": "user-1"})
        forbidden = await client.delete(f"/api/notes/{note_id}", params={"user_id": "user-2"})
        deleted = await client.delete(f"/api/notes/{note_id}", params={"user_id": "user-1"})

    assert created.status_code == 201
    assert [note["content"] for note in listed.json()] == ["Trim intro"]
    assert forbidden.status_code == 404
    assert deleted.status_code == 204
