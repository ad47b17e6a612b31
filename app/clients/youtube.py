"""YouTube Data API client wrapper.

Every call takes the access token explicitly; the client never looks up or
refreshes credentials on its own. Provider failures are translated into
``DelegatedAPICallFailed`` by ``classify_api_error``, the only place that
interprets YouTube's error surface.
"""

from __future__ import annotations

import asyncio
import enum
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import YouTubeSettings


class DelegatedAPIErrorKind(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    PERMISSION_DENIED = "permission_denied"
    QUOTA_EXCEEDED = "quota_exceeded"
    FEATURE_DISABLED = "feature_disabled"
    MALFORMED_REQUEST = "malformed_request"
    UNKNOWN = "unknown"


USER_MESSAGES: Dict[DelegatedAPIErrorKind, str] = {
    DelegatedAPIErrorKind.UNAUTHORIZED: (
        "YouTube rejected the stored credentials. Please sign out and sign in again."
    ),
    DelegatedAPIErrorKind.PERMISSION_DENIED: (
        "Permission denied: you can only manage videos and comments you have access to."
    ),
    DelegatedAPIErrorKind.QUOTA_EXCEEDED: (
        "YouTube API quota exceeded. Please try again later."
    ),
    DelegatedAPIErrorKind.FEATURE_DISABLED: "Comments are disabled on this video.",
    DelegatedAPIErrorKind.MALFORMED_REQUEST: (
        "Invalid request: check that the video exists and allows this action."
    ),
    DelegatedAPIErrorKind.UNKNOWN: "The YouTube request failed unexpectedly.",
}

# Evaluated in order; the first rule whose status or marker matches wins.
# Quota and disabled-feature errors arrive as 403s, so they precede the
# generic permission rule.
_CLASSIFICATION_RULES: Tuple[Tuple[DelegatedAPIErrorKind, frozenset, Tuple[str, ...]], ...] = (
    (
        DelegatedAPIErrorKind.UNAUTHORIZED,
        frozenset({401}),
        ("autherror", "unauthorized", "invalid credentials"),
    ),
    (
        DelegatedAPIErrorKind.QUOTA_EXCEEDED,
        frozenset({429}),
        ("quotaexceeded", "ratelimitexceeded", "quota"),
    ),
    (
        DelegatedAPIErrorKind.FEATURE_DISABLED,
        frozenset(),
        ("commentsdisabled",),
    ),
    (
        DelegatedAPIErrorKind.PERMISSION_DENIED,
        frozenset({403}),
        ("forbidden", "insufficientpermissions"),
    ),
    (
        DelegatedAPIErrorKind.MALFORMED_REQUEST,
        frozenset({400}),
        ("badrequest",),
    ),
)


class DelegatedAPICallFailed(Exception):
    """Raised when a YouTube Data API call fails."""

    def __init__(
        self,
        kind: DelegatedAPIErrorKind,
        detail: str,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


def classify_api_error(
    status_code: Optional[int],
    reasons: Iterable[str] = (),
    message: str = "",
) -> DelegatedAPICallFailed:
    """Map a YouTube error (status, reason codes, message) to a typed failure."""
    haystack = " ".join([*reasons, message]).lower()
    for kind, _, markers in _CLASSIFICATION_RULES:
        if any(marker in haystack for marker in markers):
            return DelegatedAPICallFailed(kind, message or haystack, status_code=status_code)
    for kind, statuses, _ in _CLASSIFICATION_RULES:
        if status_code in statuses:
            return DelegatedAPICallFailed(kind, message or haystack, status_code=status_code)
    return DelegatedAPICallFailed(
        DelegatedAPIErrorKind.UNKNOWN, message or "unknown error", status_code=status_code
    )


def classify_http_error(exc: HttpError) -> DelegatedAPICallFailed:
    """Extract status, reason codes and message from a googleapiclient error."""
    status_code = int(exc.resp.status) if exc.resp is not None else None
    reasons: List[str] = []
    message = ""
    try:
        payload = json.loads(exc.content.decode("utf-8"))
    except (ValueError, AttributeError):
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        message = str(error.get("message") or "")
        for item in error.get("errors") or []:
            if isinstance(item, dict) and item.get("reason"):
                reasons.append(str(item["reason"]))
    if not message:
        message = exc.reason if isinstance(exc.reason, str) else ""
    return classify_api_error(status_code, reasons, message)


def _default_service_factory(credentials: Credentials) -> Any:
    return build("youtube", "v3", credentials=credentials, cache_discovery=False)


class YouTubeClient:
    """Read and mutate a video and its comments on the user's behalf."""

    def __init__(
        self,
        settings: YouTubeSettings,
        service_factory: Callable[[Credentials], Any] = _default_service_factory,
    ) -> None:
        self._settings = settings
        self._service_factory = service_factory

    async def _execute(
        self, access_token: str, operation: Callable[[Any], Any]
    ) -> Any:
        def _run() -> Any:
            service = self._service_factory(Credentials(token=access_token))
            try:
                return operation(service)
            except HttpError as exc:
                raise classify_http_error(exc) from exc
            except (httplib2.HttpLib2Error, OSError) as exc:
                raise DelegatedAPICallFailed(
                    DelegatedAPIErrorKind.UNKNOWN, f"Transport failure: {exc}"
                ) from exc

        return await asyncio.to_thread(_run)

    async def get_video(self, *, access_token: str, video_id: str) -> Optional[dict]:
        """Return snippet and statistics for a video, or ``None`` if it does not exist."""

        def _operation(service: Any) -> Optional[dict]:
            response = (
                service.videos()
                .list(part="snippet,statistics", id=video_id)
                .execute()
            )
            items = response.get("items") or []
            if not items:
                return None
            item = items[0]
            snippet = item.get("snippet", {})
            statistics = item.get("statistics", {})
            return {
                "video_id": item.get("id", video_id),
                "title": snippet.get("title", ""),
                "description": snippet.get("description", ""),
                "category_id": snippet.get("categoryId"),
                "published_at": snippet.get("publishedAt"),
                "view_count": _as_int(statistics.get("viewCount")),
                "like_count": _as_int(statistics.get("likeCount")),
                "comment_count": _as_int(statistics.get("commentCount")),
            }

        return await self._execute(access_token, _operation)

    async def update_video_details(
        self,
        *,
        access_token: str,
        video_id: str,
        title: str,
        description: str,
        category_id: Optional[str] = None,
    ) -> dict:
        body = {
            "id": video_id,
            "snippet": {
                "title": title,
                "description": description,
                "categoryId": category_id or self._settings.category_id,
            },
        }
        return await self._execute(
            access_token,
            lambda service: service.videos().update(part="snippet", body=body).execute(),
        )

    async def list_comment_threads(
        self,
        *,
        access_token: str,
        video_id: str,
        max_results: Optional[int] = None,
    ) -> List[dict]:
        def _operation(service: Any) -> List[dict]:
            response = (
                service.commentThreads()
                .list(
                    part="snippet,replies",
                    videoId=video_id,
                    maxResults=max_results or self._settings.comment_page_size,
                    order="time",
                    textFormat="plainText",
                )
                .execute()
            )
            comments = []
            for thread in response.get("items", []):
                thread_snippet = thread.get("snippet", {})
                comment = _flatten_comment(
                    thread_snippet.get("topLevelComment", {}), thread.get("id")
                )
                # The API embeds only a subset of replies; the count covers all.
                comment["reply_count"] = _as_int(thread_snippet.get("totalReplyCount")) or 0
                comment["replies"] = [
                    _flatten_comment(reply)
                    for reply in thread.get("replies", {}).get("comments", [])
                ]
                comments.append(comment)
            return comments

        return await self._execute(access_token, _operation)

    async def post_comment(self, *, access_token: str, video_id: str, text: str) -> dict:
        body = {
            "snippet": {
                "videoId": video_id,
                "topLevelComment": {"snippet": {"textOriginal": text}},
            }
        }
        return await self._execute(
            access_token,
            lambda service: service.commentThreads().insert(part="snippet", body=body).execute(),
        )

    async def delete_comment(self, *, access_token: str, comment_id: str) -> None:
        await self._execute(
            access_token,
            lambda service: service.comments().delete(id=comment_id).execute(),
        )


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flatten_comment(comment: Dict[str, Any], fallback_id: Optional[str] = None) -> dict:
    snippet = comment.get("snippet", {})
    return {
        "comment_id": comment.get("id") or fallback_id,
        "author": snippet.get("authorDisplayName", ""),
        "text": snippet.get("textDisplay") or snippet.get("textOriginal", ""),
        "published_at": snippet.get("publishedAt"),
        "like_count": _as_int(snippet.get("likeCount")) or 0,
    }


__all__ = [
    "DelegatedAPICallFailed",
    "DelegatedAPIErrorKind",
    "USER_MESSAGES",
    "YouTubeClient",
    "classify_api_error",
    "classify_http_error",
]
