"""Exponential backoff retry for transient provider errors."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(exc: Exception) -> bool:
    """Only classified transient provider errors are retried."""
    return isinstance(exc, ProviderError) and exc.transient


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    should_retry: Callable[[Exception], bool] = _is_retryable,
) -> T:
    """Execute an async callable with exponential backoff on transient errors.

    A provider-supplied ``retry_after`` raises the delay floor for that
    attempt but never beyond *max_delay*.

    Args:
        coro_factory: Zero-arg callable that returns a fresh awaitable each attempt.
        max_attempts: Total attempts including the first one.
        base_delay: Delay before the first retry, doubled on each subsequent one.
        max_delay: Upper bound for any single delay.
        should_retry: Predicate deciding whether an exception is transient.

    Returns:
        The result of the first successful call.

    Raises:
        The last exception if all attempts are exhausted or non-retryable.
    """
    last_exc: Exception | None = None
    for attempt in range(max_attempts):
        try:
            return await coro_factory()
        except Exception as exc:
            last_exc = exc
            if not should_retry(exc) or attempt == max_attempts - 1:
                raise
            delay = base_delay * (2 ** attempt) + random.random()
            retry_after = getattr(exc, "retry_after", None)
            if retry_after:
                delay = max(delay, float(retry_after))
            delay = min(delay, max_delay)
            logger.warning(
                "Retry %d/%d after %.1fs: %s", attempt + 1, max_attempts, delay, exc,
            )
            await asyncio.sleep(delay)
    raise last_exc  # unreachable but satisfies type checker
