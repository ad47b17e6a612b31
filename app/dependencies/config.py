"""
FastAPI dependency utilities for injecting configuration.
"""

from http import HTTPStatus
from typing import Annotated

from fastapi import Depends, HTTPException

from app.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return get_settings()


SettingsDependency = Depends(get_app_settings)


def get_configured_video_id(
    settings: Annotated[AppSettings, SettingsDependency],
) -> str:
    """Return the video managed by this dashboard deployment."""
    if not settings.youtube.video_id:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No video configured; set YOUTUBE_VIDEO_ID.",
        )
    return settings.youtube.video_id


__all__ = ["SettingsDependency", "get_app_settings", "get_configured_video_id"]
