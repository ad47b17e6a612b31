"""
FastAPI routes for the video dashboard.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Awaitable, List, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.clients.google_auth import (
    RefreshUnavailableError,
    TransientProviderError,
    UnauthenticatedError,
)
from app.clients.sqlite_store import CredentialStoreError
from app.clients.youtube import DelegatedAPICallFailed, DelegatedAPIErrorKind
from app.dependencies import (
    get_app_settings,
    get_configured_video_id,
    get_credential_store,
    get_token_manager,
    get_video_dashboard_service,
)
from app.models.oauth import TokenRecord
from app.schemas import (
    Comment,
    CommentCreate,
    EventLogEntry,
    LinkCredentialsPayload,
    NoteCreate,
    NoteResponse,
    TokenStatusResponse,
    VideoDetails,
    VideoDetailsUpdate,
)
from app.services.notes import NoteNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)

T = TypeVar("T")

_KIND_STATUS = {
    DelegatedAPIErrorKind.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    DelegatedAPIErrorKind.PERMISSION_DENIED: HTTPStatus.FORBIDDEN,
    DelegatedAPIErrorKind.QUOTA_EXCEEDED: HTTPStatus.TOO_MANY_REQUESTS,
    DelegatedAPIErrorKind.FEATURE_DISABLED: HTTPStatus.CONFLICT,
    DelegatedAPIErrorKind.MALFORMED_REQUEST: HTTPStatus.BAD_REQUEST,
    DelegatedAPIErrorKind.UNKNOWN: HTTPStatus.BAD_GATEWAY,
}

UserIdQuery = Annotated[str, Query(description="Identifier of the signed-in user.")]


async def _delegated(awaitable: Awaitable[T]) -> T:
    """Await a delegated YouTube operation and translate failures to HTTP errors."""
    try:
        return await awaitable
    except UnauthenticatedError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Google account not connected. Please sign in.",
        ) from exc
    except RefreshUnavailableError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=(
                "YouTube access has expired. Please sign out and sign in again "
                "to refresh your YouTube permissions."
            ),
        ) from exc
    except TransientProviderError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Google is temporarily unavailable. Please try again shortly.",
        ) from exc
    except DelegatedAPICallFailed as exc:
        logger.warning("YouTube call failed (%s): %s", exc.kind.value, exc.detail)
        raise HTTPException(
            status_code=_KIND_STATUS[exc.kind], detail=exc.user_message
        ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/auth/google/link", status_code=HTTPStatus.OK)
async def link_google_credentials(
    payload: LinkCredentialsPayload,
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Store the token pair produced by the external consent flow."""
    record = TokenRecord(
        user_id=payload.user_id,
        provider=settings.oauth.provider,
        provider_account_id=payload.provider_account_id,
        access_token=payload.access_token,
        refresh_token=payload.refresh_token,
        expires_at=payload.expires_at,
    )
    try:
        credential_store.save(record)
    except CredentialStoreError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Failed to store credentials.",
        ) from exc

    logger.info("Linked %s account for user %s", record.provider, record.user_id)
    return {"status": "connected", "offline_access": bool(payload.refresh_token)}


@router.get("/auth/google/status", response_model=TokenStatusResponse)
async def google_token_status(
    user_id: UserIdQuery,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> TokenStatusResponse:
    """Report whether the user has usable credentials without revealing them."""
    try:
        token_status = token_manager.token_status(user_id)
    except TransientProviderError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Credential store unavailable.",
        ) from exc
    return TokenStatusResponse(
        linked=token_status.linked,
        has_refresh_token=token_status.has_refresh_token,
        expires_at=token_status.expires_at,
        stale=token_status.stale,
    )


@router.get("/video", response_model=VideoDetails)
async def get_configured_video(
    user_id: UserIdQuery,
    video_id: Annotated[str, Depends(get_configured_video_id)],
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> VideoDetails:
    """Return the video this dashboard manages."""
    return await get_video(video_id=video_id, user_id=user_id, service=service)


@router.get("/videos/{video_id}", response_model=VideoDetails)
async def get_video(
    video_id: str,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> VideoDetails:
    video = await _delegated(service.get_video(user_id=user_id, video_id=video_id))
    if video is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Video not found.")
    return VideoDetails(**video)


@router.patch("/videos/{video_id}", status_code=HTTPStatus.OK)
async def update_video(
    video_id: str,
    payload: VideoDetailsUpdate,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> dict:
    await _delegated(
        service.update_video_details(
            user_id=user_id,
            video_id=video_id,
            title=payload.title,
            description=payload.description,
            category_id=payload.category_id,
        )
    )
    return {"status": "updated", "video_id": video_id}


@router.get("/videos/{video_id}/comments", response_model=List[Comment])
async def list_comments(
    video_id: str,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
    max_results: int | None = Query(default=None, ge=1, le=100),
) -> List[Comment]:
    comments = await _delegated(
        service.list_comments(user_id=user_id, video_id=video_id, max_results=max_results)
    )
    return [Comment(**comment) for comment in comments]


@router.post("/videos/{video_id}/comments", status_code=HTTPStatus.CREATED)
async def post_comment(
    video_id: str,
    payload: CommentCreate,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> dict:
    created = await _delegated(
        service.post_comment(user_id=user_id, video_id=video_id, text=payload.text)
    )
    return {"status": "created", "comment_thread_id": created.get("id")}


@router.delete("/comments/{comment_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_comment(
    comment_id: str,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> Response:
    await _delegated(service.delete_comment(user_id=user_id, comment_id=comment_id))
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/videos/{video_id}/notes", response_model=List[NoteResponse])
async def list_notes(
    video_id: str,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> List[NoteResponse]:
    notes = service.list_notes(user_id=user_id, video_id=video_id)
    return [_note_response(note) for note in notes]


@router.post(
    "/videos/{video_id}/notes",
    response_model=NoteResponse,
    status_code=HTTPStatus.CREATED,
)
async def create_note(
    video_id: str,
    payload: NoteCreate,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> NoteResponse:
    note = service.create_note(
        user_id=payload.user_id,
        video_id=video_id,
        content=payload.content,
        tags=payload.tags,
    )
    return _note_response(note)


@router.delete("/notes/{note_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_note(
    note_id: str,
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
) -> Response:
    try:
        service.delete_note(user_id=user_id, note_id=note_id)
    except NoteNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/events", response_model=List[EventLogEntry])
async def list_events(
    user_id: UserIdQuery,
    service: Annotated[Any, Depends(get_video_dashboard_service)],
    limit: int = Query(default=50, ge=1, le=500),
) -> List[EventLogEntry]:
    return [EventLogEntry(**entry) for entry in service.list_events(user_id=user_id, limit=limit)]


def _note_response(note: Any) -> NoteResponse:
    return NoteResponse(
        note_id=note.note_id,
        video_id=note.video_id,
        content=note.content,
        tags=list(note.tags),
        created_at=note.created_at,
    )
