"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import GoogleTokenRefresher, SQLiteCredentialStore, YouTubeClient
from app.core.config import get_settings
from app.services import (
    EventLog,
    NoteStore,
    TokenCipherService,
    TokenLifecycleManager,
    VideoDashboardService,
)
from app.utils.http import RetryConfig


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.google.client_secret
    return TokenCipherService(
        secret=secret,
        previous_secrets=settings.security.previous_token_encryption_secrets,
    )


@lru_cache()
def get_credential_store() -> SQLiteCredentialStore:
    """Provide the shared credential store."""
    settings = _settings()
    return SQLiteCredentialStore(settings.database_path, get_token_cipher_service())


@lru_cache()
def get_token_refresher() -> GoogleTokenRefresher:
    settings = _settings()
    return GoogleTokenRefresher(
        settings.google, timeout_seconds=settings.oauth.refresh_timeout_seconds
    )


@lru_cache()
def get_token_manager() -> TokenLifecycleManager:
    """Provide the process-wide token lifecycle manager."""
    settings = _settings()
    return TokenLifecycleManager(
        store=get_credential_store(),
        refresher=get_token_refresher(),
        oauth_settings=settings.oauth,
    )


@lru_cache()
def get_youtube_client() -> YouTubeClient:
    return YouTubeClient(_settings().youtube)


@lru_cache()
def get_note_store() -> NoteStore:
    return NoteStore(_settings().database_path)


@lru_cache()
def get_event_log() -> EventLog:
    return EventLog(_settings().database_path)


def get_video_dashboard_service() -> VideoDashboardService:
    """Build the dashboard service from the shared clients."""
    settings = _settings()
    return VideoDashboardService(
        token_manager=get_token_manager(),
        youtube_client=get_youtube_client(),
        note_store=get_note_store(),
        event_log=get_event_log(),
        retry_config=RetryConfig(
            attempts=settings.oauth.transient_retry_attempts,
            backoff_seconds=settings.oauth.transient_retry_backoff_seconds,
        ),
    )


__all__ = [
    "get_credential_store",
    "get_event_log",
    "get_note_store",
    "get_token_cipher_service",
    "get_token_manager",
    "get_token_refresher",
    "get_video_dashboard_service",
    "get_youtube_client",
]
