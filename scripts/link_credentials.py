"""Store the result of an external Google consent flow for a dashboard user.

The consent screen and authorization-code exchange happen outside this
service. This tool takes the resulting token response (as saved to a JSON
file) and writes it to the credential store so the token lifecycle manager
can take over.

Example usage::

    python -m scripts.link_credentials --user-id alice \
        --provider-account-id 1098765 --token-file tokens.json

The token file holds the provider's token response: ``access_token``, an
optional ``refresh_token`` and either ``expires_at`` (epoch seconds or ISO
8601) or ``expires_in`` (seconds from now).
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.clients.sqlite_store import CredentialStoreError, SQLiteCredentialStore
from app.core.config import get_settings
from app.models.oauth import TokenRecord
from app.services.token_cipher import TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5


def _resolve_expiry(payload: Dict[str, Any], now: datetime) -> Optional[datetime]:
    """Derive the absolute expiry from a token response."""
    expires_at = payload.get("expires_at")
    if isinstance(expires_at, (int, float)):
        return datetime.fromtimestamp(expires_at, tz=timezone.utc)
    if isinstance(expires_at, str) and expires_at:
        parsed = datetime.fromisoformat(expires_at)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    expires_in = payload.get("expires_in")
    if expires_in is not None:
        return now + timedelta(seconds=int(expires_in))
    return None


def build_record(
    *, user_id: str, provider: str, provider_account_id: str, payload: Dict[str, Any]
) -> TokenRecord:
    now = datetime.now(timezone.utc)
    return TokenRecord(
        user_id=user_id,
        provider=provider,
        provider_account_id=provider_account_id,
        access_token=payload.get("access_token") or "",
        refresh_token=payload.get("refresh_token") or None,
        expires_at=_resolve_expiry(payload, now),
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Link a Google token response to a dashboard user."
    )
    parser.add_argument("--user-id", required=True, help="Dashboard user identifier.")
    parser.add_argument(
        "--provider-account-id",
        required=True,
        help="Stable Google account identifier (the 'sub' claim).",
    )
    parser.add_argument(
        "--token-file",
        required=True,
        type=Path,
        help="JSON file containing the provider's token response.",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Override the credential database path from settings.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    token_file: Path = args.token_file
    if not token_file.exists():
        print(f"Token file {token_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        payload = json.loads(token_file.read_text(encoding="utf-8"))
    except ValueError as exc:
        print(f"Token file is not valid JSON: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    if not isinstance(payload, dict) or not payload.get("access_token"):
        print("Token file must contain an 'access_token'.", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    try:
        settings = get_settings()
        record = build_record(
            user_id=args.user_id,
            provider=settings.oauth.provider,
            provider_account_id=args.provider_account_id,
            payload=payload,
        )
    except (ValidationError, ValueError) as exc:
        print(f"Invalid token data or settings: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    secret = settings.security.token_encryption_secret or settings.google.client_secret
    cipher = TokenCipherService(
        secret=secret,
        previous_secrets=settings.security.previous_token_encryption_secrets,
    )
    store = SQLiteCredentialStore(args.db_path or settings.database_path, cipher)
    try:
        store.save(record)
    except CredentialStoreError as exc:
        print(f"Failed to store credentials: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    offline = "with" if record.refresh_token else "without"
    print(f"Linked {record.provider} account for {record.user_id} ({offline} refresh token).")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
