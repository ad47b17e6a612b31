"""SQLite-backed storage for private per-video notes."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List
from uuid import uuid4


class NoteNotFoundError(Exception):
    """Raised when a note does not exist or belongs to another user."""


def _ensure_directory(db_path: Path) -> None:
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)


@dataclass(slots=True)
class Note:
    note_id: str
    user_id: str
    video_id: str
    content: str
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NoteStore:
    """Notes are visible to and deletable by their owner only."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        _ensure_directory(self._db_path)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notes (
                    note_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    video_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    tags TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_notes_user_video ON notes (user_id, video_id)"
            )

    def create(
        self, *, user_id: str, video_id: str, content: str, tags: List[str]
    ) -> Note:
        note = Note(
            note_id=uuid4().hex,
            user_id=user_id,
            video_id=video_id,
            content=content.strip(),
            tags=[tag.strip() for tag in tags if tag.strip()],
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notes (note_id, user_id, video_id, content, tags, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    note.note_id,
                    note.user_id,
                    note.video_id,
                    note.content,
                    json.dumps(note.tags),
                    note.created_at.isoformat(),
                ),
            )
        return note

    def list_for_video(self, *, user_id: str, video_id: str) -> List[Note]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM notes
                WHERE user_id = ? AND video_id = ?
                ORDER BY created_at DESC
                """,
                (user_id, video_id),
            ).fetchall()
        return [self._row_to_note(row) for row in rows]

    def delete(self, *, user_id: str, note_id: str) -> Note:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM notes WHERE note_id = ? AND user_id = ?",
                (note_id, user_id),
            ).fetchone()
            if not row:
                raise NoteNotFoundError(
                    "Note not found or you do not have permission to delete it."
                )
            conn.execute("DELETE FROM notes WHERE note_id = ?", (note_id,))
        return self._row_to_note(row)

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        return Note(
            note_id=row["note_id"],
            user_id=row["user_id"],
            video_id=row["video_id"],
            content=row["content"],
            tags=json.loads(row["tags"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


__all__ = ["Note", "NoteNotFoundError", "NoteStore"]
