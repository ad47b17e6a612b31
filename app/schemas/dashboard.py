"""
Pydantic models for the video dashboard endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class VideoDetails(BaseModel):
    """Snippet and statistics of the managed video."""

    video_id: str
    title: str
    description: str = ""
    category_id: Optional[str] = None
    published_at: Optional[datetime] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    comment_count: Optional[int] = None


class VideoDetailsUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=5000)
    category_id: Optional[str] = Field(
        None, description="Overrides the configured default category."
    )


class CommentReply(BaseModel):
    comment_id: str
    author: str
    text: str
    published_at: Optional[datetime] = None
    like_count: int = 0


class Comment(CommentReply):
    """Top-level comment with the replies YouTube embeds in its thread."""

    reply_count: int = 0
    replies: List[CommentReply] = Field(default_factory=list)


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000)


class NoteCreate(BaseModel):
    user_id: str = Field(..., description="Owner of the note.")
    content: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)


class NoteResponse(BaseModel):
    note_id: str
    video_id: str
    content: str
    tags: List[str] = Field(default_factory=list)
    created_at: datetime


class EventLogEntry(BaseModel):
    id: int
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


__all__ = [
    "Comment",
    "CommentCreate",
    "EventLogEntry",
    "NoteCreate",
    "NoteResponse",
    "VideoDetails",
    "VideoDetailsUpdate",
]
