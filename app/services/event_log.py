"""Append-only log of user actions performed through the dashboard."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

VIDEO_DETAILS_UPDATED = "VIDEO_DETAILS_UPDATED"
COMMENT_ADDED = "COMMENT_ADDED"
COMMENT_DELETED = "COMMENT_DELETED"
NOTE_CREATED = "NOTE_CREATED"
NOTE_DELETED = "NOTE_DELETED"


class EventLog:
    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS event_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    details TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def record(self, *, user_id: str, action: str, details: Dict[str, Any]) -> None:
        created_at = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO event_log (user_id, action, details, created_at) VALUES (?, ?, ?, ?)",
                (user_id, action, json.dumps(details), created_at),
            )

    def list_for_user(self, *, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, action, details, created_at FROM event_log
                WHERE user_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [
            {
                "id": row["id"],
                "action": row["action"],
                "details": json.loads(row["details"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]


__all__ = [
    "COMMENT_ADDED",
    "COMMENT_DELETED",
    "EventLog",
    "NOTE_CREATED",
    "NOTE_DELETED",
    "VIDEO_DETAILS_UPDATED",
]
