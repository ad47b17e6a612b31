"""SQLite-backed credential store keyed by (user_id, provider)."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from app.models.oauth import TokenRecord, utcnow

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.services.token_cipher import TokenCipherService


class CredentialStoreError(Exception):
    """Raised when the credential store cannot be read or written."""


class CorruptCredentialError(CredentialStoreError):
    """Raised when a stored record can no longer be decrypted."""


class SQLiteCredentialStore:
    """
    Durable home of the current ``TokenRecord`` per (user, provider).

    Tokens are encrypted at rest. Updates after a refresh go through
    ``compare_and_swap`` which only succeeds while the row still carries the
    version the caller read, so concurrent refreshes cannot overwrite each
    other silently.
    """

    def __init__(self, db_path: str, token_cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = token_cipher
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_accounts (
                    user_id TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    provider_account_id TEXT NOT NULL,
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT,
                    expires_at TEXT,
                    version INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, provider)
                )
                """
            )

    def get(self, user_id: str, provider: str) -> Optional[TokenRecord]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM oauth_accounts WHERE user_id = ? AND provider = ?",
                    (user_id, provider),
                ).fetchone()
        except sqlite3.Error as exc:
            raise CredentialStoreError("Failed to read credential record.") from exc
        if not row:
            return None
        return self._to_record(row)

    def save(self, record: TokenRecord) -> TokenRecord:
        """Insert or replace the record for its (user, provider) pair."""
        now = utcnow()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO oauth_accounts (
                        user_id, provider, provider_account_id,
                        access_token_encrypted, refresh_token_encrypted,
                        expires_at, version, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
                    ON CONFLICT(user_id, provider) DO UPDATE SET
                        provider_account_id = excluded.provider_account_id,
                        access_token_encrypted = excluded.access_token_encrypted,
                        refresh_token_encrypted = excluded.refresh_token_encrypted,
                        expires_at = excluded.expires_at,
                        version = oauth_accounts.version + 1,
                        updated_at = excluded.updated_at
                    """,
                    (
                        record.user_id,
                        record.provider,
                        record.provider_account_id,
                        self._cipher.encrypt(record.access_token),
                        self._cipher.encrypt_optional(record.refresh_token),
                        _isoformat(record.expires_at),
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise CredentialStoreError("Failed to save credential record.") from exc

        stored = self.get(record.user_id, record.provider)
        if stored is None:  # pragma: no cover - row was just written
            raise CredentialStoreError("Credential record vanished after save.")
        return stored

    def compare_and_swap(
        self,
        user_id: str,
        provider: str,
        expected_version: int,
        new_record: TokenRecord,
    ) -> bool:
        """
        Replace the record only if it still has ``expected_version`` and belongs
        to the same provider account.

        Returns ``False`` on conflict, leaving the stored record untouched.
        """
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    UPDATE oauth_accounts
                    SET access_token_encrypted = ?,
                        refresh_token_encrypted = ?,
                        expires_at = ?,
                        version = version + 1,
                        updated_at = ?
                    WHERE user_id = ?
                      AND provider = ?
                      AND provider_account_id = ?
                      AND version = ?
                    """,
                    (
                        self._cipher.encrypt(new_record.access_token),
                        self._cipher.encrypt_optional(new_record.refresh_token),
                        _isoformat(new_record.expires_at),
                        utcnow().isoformat(),
                        user_id,
                        provider,
                        new_record.provider_account_id,
                        expected_version,
                    ),
                )
        except sqlite3.Error as exc:
            raise CredentialStoreError("Failed to update credential record.") from exc
        return cursor.rowcount == 1

    def _to_record(self, row: sqlite3.Row) -> TokenRecord:
        try:
            access_token = self._cipher.decrypt(row["access_token_encrypted"])
            refresh_token = self._cipher.decrypt_optional(row["refresh_token_encrypted"])
        except ValueError as exc:
            raise CorruptCredentialError(
                "Stored credential could not be decrypted; re-link required."
            ) from exc

        expires_at = row["expires_at"]
        return TokenRecord(
            user_id=row["user_id"],
            provider=row["provider"],
            provider_account_id=row["provider_account_id"],
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


__all__ = ["CorruptCredentialError", "CredentialStoreError", "SQLiteCredentialStore"]
