"""
Lifecycle management for delegated Google OAuth access tokens.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol, Tuple

from app.clients.google_auth import (
    InvalidGrantError,
    RefreshUnavailableError,
    TransientProviderError,
    UnauthenticatedError,
)
from app.clients.sqlite_store import CorruptCredentialError, CredentialStoreError
from app.core.config import OAuthSettings
from app.models.oauth import RefreshedToken, TokenRecord

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get(self, user_id: str, provider: str) -> Optional[TokenRecord]:
        ...

    def compare_and_swap(
        self,
        user_id: str,
        provider: str,
        expected_version: int,
        new_record: TokenRecord,
    ) -> bool:
        ...


class TokenRefresher(Protocol):
    async def refresh(self, refresh_token: str) -> RefreshedToken:
        ...


@dataclass(frozen=True)
class TokenStatus:
    """Non-secret summary of a user's stored credential."""

    linked: bool
    has_refresh_token: bool = False
    expires_at: Optional[datetime] = None
    stale: bool = False


class TokenLifecycleManager:
    """
    Hands out a usable access token per user, refreshing it lazily.

    At most one refresh per (user, provider) runs in this process at a time;
    concurrent callers await the same task. Across processes the store's
    compare-and-swap decides which refresh wins and losers adopt the winner.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        oauth_settings: OAuthSettings,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._provider = oauth_settings.provider
        self._leeway = timedelta(seconds=oauth_settings.refresh_leeway_seconds)
        self._assumed_ttl = (
            timedelta(seconds=oauth_settings.assumed_token_ttl_seconds)
            if oauth_settings.assumed_token_ttl_seconds is not None
            else None
        )
        self._clock = clock
        self._inflight: Dict[Tuple[str, str], asyncio.Task[str]] = {}

    async def acquire(self, user_id: str, *, rejected_token: Optional[str] = None) -> str:
        """
        Return an access token that is believed valid for ``user_id``.

        ``rejected_token`` is the token the delegated API just refused; if the
        store still holds it, it is refreshed regardless of its expiry.
        """
        record = self._load(user_id)
        if not self._needs_refresh(record, rejected_token):
            return record.access_token

        if not record.refresh_token:
            logger.info("No refresh token on file for user %s; re-consent required", user_id)
            raise RefreshUnavailableError("Refresh token missing; re-consent required.")

        # No await between the read above and this lookup, so a finished
        # refresh has always been written before its task leaves the map.
        key = (user_id, self._provider)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(record))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight refresh for user %s", user_id)

        # The refresh outlives a cancelled caller so other waiters still benefit.
        return await asyncio.shield(task)

    def token_status(self, user_id: str) -> TokenStatus:
        try:
            record = self._store.get(user_id, self._provider)
        except CorruptCredentialError:
            return TokenStatus(linked=True, stale=True)
        except CredentialStoreError as exc:
            raise TransientProviderError("Credential store unavailable.") from exc
        if record is None:
            return TokenStatus(linked=False)
        return TokenStatus(
            linked=True,
            has_refresh_token=bool(record.refresh_token),
            expires_at=record.expires_at,
            stale=self._is_stale(record),
        )

    def _forget(self, key: Tuple[str, str], task: asyncio.Task[str]) -> None:
        self._inflight.pop(key, None)
        if not task.cancelled():
            # Mark the outcome retrieved even if every waiter was cancelled.
            task.exception()

    def _load(self, user_id: str) -> TokenRecord:
        try:
            record = self._store.get(user_id, self._provider)
        except CorruptCredentialError as exc:
            logger.error("Stored credential for user %s is unreadable", user_id)
            raise RefreshUnavailableError(str(exc)) from exc
        except CredentialStoreError as exc:
            raise TransientProviderError("Credential store unavailable.") from exc
        if record is None:
            raise UnauthenticatedError(f"No OAuth token stored for user {user_id}.")
        return record

    def _is_stale(self, record: TokenRecord) -> bool:
        return record.is_stale(
            self._clock(), leeway=self._leeway, assumed_ttl=self._assumed_ttl
        )

    def _needs_refresh(self, record: TokenRecord, rejected_token: Optional[str]) -> bool:
        if rejected_token is not None and record.access_token == rejected_token:
            return True
        return self._is_stale(record)

    async def _refresh(self, record: TokenRecord) -> str:
        assert record.refresh_token is not None
        try:
            refreshed = await self._refresher.refresh(record.refresh_token)
        except InvalidGrantError:
            logger.warning(
                "Refresh token for user %s was rejected; clearing it", record.user_id
            )
            revoked = record.model_copy(update={"refresh_token": None})
            if not self._swap(record, revoked):
                return self._adopt_winner(record.user_id)
            raise RefreshUnavailableError("Refresh grant revoked; re-consent required.")
        except TransientProviderError:
            logger.warning("Transient failure refreshing token for user %s", record.user_id)
            raise

        updated = record.model_copy(
            update={
                "access_token": refreshed.access_token,
                "expires_at": refreshed.expires_at,
                "refresh_token": refreshed.refresh_token or record.refresh_token,
            }
        )
        if not self._swap(record, updated):
            logger.info(
                "Concurrent refresh won for user %s; discarding local result",
                record.user_id,
            )
            return self._adopt_winner(record.user_id)

        logger.info("Access token refreshed for user %s", record.user_id)
        return refreshed.access_token

    def _swap(self, expected: TokenRecord, replacement: TokenRecord) -> bool:
        try:
            return self._store.compare_and_swap(
                expected.user_id, expected.provider, expected.version, replacement
            )
        except CredentialStoreError as exc:
            raise TransientProviderError("Credential store unavailable.") from exc

    def _adopt_winner(self, user_id: str) -> str:
        winner = self._load(user_id)
        if not self._is_stale(winner):
            return winner.access_token
        if not winner.refresh_token:
            raise RefreshUnavailableError("Refresh grant revoked; re-consent required.")
        raise TransientProviderError("Credential changed during refresh; retry.")


__all__ = [
    "CredentialStore",
    "TokenLifecycleManager",
    "TokenRefresher",
    "TokenStatus",
]
