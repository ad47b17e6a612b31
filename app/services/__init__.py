"""Service layer exports."""

from .event_log import EventLog
from .google_tokens import TokenLifecycleManager, TokenStatus
from .notes import Note, NoteNotFoundError, NoteStore
from .token_cipher import TokenCipherService
from .video_dashboard import VideoDashboardService

__all__ = [
    "EventLog",
    "Note",
    "NoteNotFoundError",
    "NoteStore",
    "TokenCipherService",
    "TokenLifecycleManager",
    "TokenStatus",
    "VideoDashboardService",
]
