"""Public schema exports."""

from .auth import LinkCredentialsPayload, TokenStatusResponse
from .dashboard import (
    Comment,
    CommentCreate,
    CommentReply,
    EventLogEntry,
    NoteCreate,
    NoteResponse,
    VideoDetails,
    VideoDetailsUpdate,
)

__all__ = [
    "Comment",
    "CommentCreate",
    "CommentReply",
    "EventLogEntry",
    "LinkCredentialsPayload",
    "NoteCreate",
    "NoteResponse",
    "TokenStatusResponse",
    "VideoDetails",
    "VideoDetailsUpdate",
]
