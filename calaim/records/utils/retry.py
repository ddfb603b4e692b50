"""Retry helper with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.5,
    should_retry: Callable[[Exception], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or retries are exhausted.

    Delay doubles with each attempt: ``base_delay``, ``2 * base_delay``, ...

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total attempts including the first (minimum 1)
        base_delay: Delay before the first retry, in seconds
        should_retry: Predicate deciding whether an exception is transient;
            non-transient exceptions are re-raised immediately
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        The operation's result

    Raises:
        Exception: The last exception raised by ``operation``
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as e:
            transient = should_retry(e) if should_retry else True
            if not transient or attempt == attempts - 1:
                raise
            delay = base_delay * (2**attempt)
            logger.warning(
                f"Transient failure (attempt {attempt + 1}/{attempts}), retrying in {delay:.2f}s: {e}"
            )
            await sleep(delay)
    raise AssertionError("unreachable")
