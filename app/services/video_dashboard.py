"""
Business logic for the video dashboard: delegated YouTube calls plus notes.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from app.clients.youtube import (
    DelegatedAPICallFailed,
    DelegatedAPIErrorKind,
    YouTubeClient,
)
from app.services import event_log as events
from app.services.event_log import EventLog
from app.services.google_tokens import TokenLifecycleManager
from app.services.notes import Note, NoteStore
from app.utils.http import RetryConfig, call_with_retry

T = TypeVar("T")

logger = logging.getLogger(__name__)


class VideoDashboardService:
    """Coordinate token acquisition, YouTube calls and the event log."""

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        youtube_client: YouTubeClient,
        note_store: NoteStore,
        event_log: EventLog,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._tokens = token_manager
        self._youtube = youtube_client
        self._notes = note_store
        self._events = event_log
        self._retry = retry_config or RetryConfig()

    async def _with_token(
        self, user_id: str, call: Callable[[str], Awaitable[T]]
    ) -> T:
        """
        Run ``call`` with a fresh access token.

        If YouTube rejects the token, force one refresh and retry once; the
        second rejection is surfaced to the caller.
        """
        token = await call_with_retry(
            self._tokens.acquire, user_id, retry_config=self._retry
        )
        try:
            return await call(token)
        except DelegatedAPICallFailed as exc:
            if exc.kind is not DelegatedAPIErrorKind.UNAUTHORIZED:
                raise
            logger.info("YouTube rejected token for user %s; forcing refresh", user_id)

        token = await call_with_retry(
            self._tokens.acquire,
            user_id,
            rejected_token=token,
            retry_config=self._retry,
        )
        return await call(token)

    async def get_video(self, *, user_id: str, video_id: str) -> Optional[dict]:
        return await self._with_token(
            user_id,
            lambda token: self._youtube.get_video(access_token=token, video_id=video_id),
        )

    async def update_video_details(
        self,
        *,
        user_id: str,
        video_id: str,
        title: str,
        description: str,
        category_id: Optional[str] = None,
    ) -> dict:
        result = await self._with_token(
            user_id,
            lambda token: self._youtube.update_video_details(
                access_token=token,
                video_id=video_id,
                title=title,
                description=description,
                category_id=category_id,
            ),
        )
        self._events.record(
            user_id=user_id,
            action=events.VIDEO_DETAILS_UPDATED,
            details={"video_id": video_id, "title": title},
        )
        return result

    async def list_comments(
        self, *, user_id: str, video_id: str, max_results: Optional[int] = None
    ) -> List[dict]:
        return await self._with_token(
            user_id,
            lambda token: self._youtube.list_comment_threads(
                access_token=token, video_id=video_id, max_results=max_results
            ),
        )

    async def post_comment(self, *, user_id: str, video_id: str, text: str) -> dict:
        result = await self._with_token(
            user_id,
            lambda token: self._youtube.post_comment(
                access_token=token, video_id=video_id, text=text
            ),
        )
        self._events.record(
            user_id=user_id, action=events.COMMENT_ADDED, details={"video_id": video_id}
        )
        return result

    async def delete_comment(self, *, user_id: str, comment_id: str) -> None:
        await self._with_token(
            user_id,
            lambda token: self._youtube.delete_comment(
                access_token=token, comment_id=comment_id
            ),
        )
        self._events.record(
            user_id=user_id,
            action=events.COMMENT_DELETED,
            details={"comment_id": comment_id},
        )

    def create_note(
        self, *, user_id: str, video_id: str, content: str, tags: List[str]
    ) -> Note:
        note = self._notes.create(
            user_id=user_id, video_id=video_id, content=content, tags=tags
        )
        self._events.record(
            user_id=user_id, action=events.NOTE_CREATED, details={"video_id": video_id}
        )
        return note

    def list_notes(self, *, user_id: str, video_id: str) -> List[Note]:
        return self._notes.list_for_video(user_id=user_id, video_id=video_id)

    def delete_note(self, *, user_id: str, note_id: str) -> None:
        self._notes.delete(user_id=user_id, note_id=note_id)
        self._events.record(
            user_id=user_id, action=events.NOTE_DELETED, details={"note_id": note_id}
        )

    def list_events(self, *, user_id: str, limit: int = 50) -> List[dict[str, Any]]:
        return self._events.list_for_user(user_id=user_id, limit=limit)


__all__ = ["VideoDashboardService"]
