"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_store,
    get_event_log,
    get_note_store,
    get_token_cipher_service,
    get_token_manager,
    get_token_refresher,
    get_video_dashboard_service,
    get_youtube_client,
)
from .config import SettingsDependency, get_app_settings, get_configured_video_id

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_configured_video_id",
    "get_credential_store",
    "get_event_log",
    "get_note_store",
    "get_token_cipher_service",
    "get_token_manager",
    "get_token_refresher",
    "get_video_dashboard_service",
    "get_youtube_client",
]
