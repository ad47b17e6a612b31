"""Retry/backoff helpers for calls that may fail transiently."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from app.clients.google_auth import TransientProviderError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 2, backoff_seconds: float = 0.5) -> None:
        self.attempts = max(1, attempts)
        self.backoff_seconds = backoff_seconds


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args,
    retry_config: RetryConfig | None = None,
    retry_on: Tuple[Type[BaseException], ...] = (TransientProviderError,),
    **kwargs,
) -> T:
    """Await ``func`` and retry it with linear backoff on the given exceptions."""
    config = retry_config or RetryConfig()
    attempt = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except retry_on as exc:
            attempt += 1
            if attempt >= config.attempts:
                raise
            delay = config.backoff_seconds * attempt
            logger.info(
                "Retrying after %s (attempt %d of %d, sleeping %.2fs)",
                type(exc).__name__,
                attempt + 1,
                config.attempts,
                delay,
            )
            await asyncio.sleep(delay)


__all__ = ["RetryConfig", "call_with_retry"]
