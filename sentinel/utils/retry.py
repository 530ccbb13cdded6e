"""
Sentinel - Retry Utilities
==========================

Retry logic for flaky async calls with exponential backoff.
"""

import asyncio
from typing import Any, Awaitable, Callable, Tuple, Type

import discord

from sentinel.core.logger import logger


# Exceptions that should trigger a retry
RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    discord.HTTPException,
    asyncio.TimeoutError,
    ConnectionError,
)


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 10.0) -> float:
    """Delay before retry number attempt+1: 1s, 2s, 4s, ... capped at max_delay."""
    return min(base_delay * (2 ** attempt), max_delay)


async def retry_async(
    coro_func: Callable[..., Awaitable[Any]],
    *args,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    exceptions: Tuple[Type[Exception], ...] = RETRYABLE_EXCEPTIONS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs,
) -> Any:
    """
    Call an async function up to `attempts` times.

    Args:
        coro_func: Async function to call.
        attempts: Total number of calls, including the first.
        exceptions: Exception types that trigger another attempt.
        sleep: Awaitable used between attempts (patched in tests).

    Returns:
        Result of the first successful call.

    Raises:
        The last exception if every attempt fails.
    """
    last_exception: Exception = RuntimeError("retry_async called with attempts < 1")

    for attempt in range(attempts):
        try:
            return await coro_func(*args, **kwargs)
        except exceptions as e:
            last_exception = e
            if attempt < attempts - 1:
                delay = backoff_delay(attempt, base_delay, max_delay)
                logger.warning(f"Retry {attempt + 1}/{attempts}: {type(e).__name__} - retrying in {delay:.1f}s")
                await sleep(delay)
            else:
                logger.error(f"All {attempts} attempts failed: {type(e).__name__}: {e}")

    raise last_exception


__all__ = ["retry_async", "backoff_delay", "RETRYABLE_EXCEPTIONS"]
