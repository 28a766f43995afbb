"""Bounded retry with exponential backoff for transient storage errors."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, OperationalError

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff_seconds: float = 0.05

    def delay(self, attempt: int) -> float:
        """Backoff before the given retry (1-based)."""
        return self.backoff_seconds * (2 ** (attempt - 1))


def is_transient(exc: BaseException) -> bool:
    """Connection drops and lock/timeout style errors are worth another try."""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str,
    on_failure: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """Run operation, retrying transient failures up to policy.attempts times.

    on_failure runs after every failed attempt (used to roll back the session).
    The last exception propagates once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if on_failure is not None:
                await on_failure()
            if not is_transient(exc) or attempt >= policy.attempts:
                raise
            delay = policy.delay(attempt)
            logger.warning(
                "storage_retry",
                operation=name,
                attempt=attempt,
                delay=delay,
                error=type(exc).__name__,
            )
            await asyncio.sleep(delay)
            attempt += 1
