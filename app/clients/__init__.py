"""Expose constructed client wrappers."""

from .google_auth import GoogleTokenRefresher
from .sqlite_store import SQLiteCredentialStore
from .youtube import YouTubeClient

__all__ = [
    "GoogleTokenRefresher",
    "SQLiteCredentialStore",
    "YouTubeClient",
]
