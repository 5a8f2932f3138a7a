"""
Backoff retry for remote generation calls.

Only rate-limit failures are retried. Every other error propagates on the
first attempt. The schedule is a plain doubling with no jitter, so the worst
case is exactly ``retries + 1`` attempts.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, TypeVar

from agents import config
from agents.generation.exceptions import get_retry_delay, is_rate_limit_error
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = None,
    delay: float = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``operation`` and retry it on rate limiting.

    Args:
        operation: Zero-argument coroutine function performing the remote call
        retries: Retries allowed after the first attempt (default from config)
        delay: Seconds to wait before the first retry; doubled after each one
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Whatever ``operation`` returns on its first successful attempt
    """
    retries = config.RETRY_ATTEMPTS if retries is None else retries
    delay = config.RETRY_INITIAL_DELAY if delay is None else delay

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= retries or not is_rate_limit_error(e):
                raise
            wait = get_retry_delay(delay, attempt)
            attempt += 1
            logger.warning(f"[RETRY] Rate limit hit. Retrying in {wait:.1f}s (attempt {attempt + 1}/{retries + 1})")
            await sleep(wait)


def with_retry(retries: int = None, delay: float = None):
    """Decorator form of :func:`call_with_retry` for coroutine functions."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await call_with_retry(lambda: func(*args, **kwargs), retries, delay)
        return wrapper
    return decorator
