"""
Retry with exponential backoff for async calls.

Delays grow as ``initial_delay * exponential_base ** attempt`` and are capped
at ``max_delay``. The sleep function is injectable so tests run without
real delays.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from changelog_ticker.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    retries: int = 3
    initial_delay: float = 0.5  # seconds
    max_delay: float = 4.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = False


def calculate_backoff_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay before the retry following ``attempt``.

    Args:
        attempt: Failed attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = min(config.initial_delay * (config.exponential_base**attempt), config.max_delay)

    if config.jitter:
        # Add ±25% jitter
        jitter_range = delay * 0.25
        delay += random.uniform(-jitter_range, jitter_range)

    return max(0.0, delay)


async def retry_async(
    call: Callable[[], Awaitable[T]],
    config: RetryConfig,
    retry_on: tuple[type[Exception], ...],
    on_retry: Callable[[int, int, Exception], None] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``call`` and retry it on the listed exception types.

    Args:
        call: Zero-argument coroutine factory
        config: Retry configuration; ``retries`` counts retries, not attempts
        retry_on: Exception types that trigger a retry. Anything else propagates
        on_retry: Called with (attempt number, retries left, error) before each retry
        sleep: Awaitable sleep used between attempts

    Returns:
        The result of the first successful attempt

    Raises:
        RetryExhaustedError: If every attempt failed with a retryable error
    """
    attempts = config.retries + 1
    last_exception: Exception | None = None

    for attempt in range(attempts):
        try:
            return await call()
        except retry_on as e:
            last_exception = e
            retries_left = attempts - attempt - 1

            logger.warning(
                "Retry attempt %d/%d: %s: %s",
                attempt + 1,
                attempts,
                type(e).__name__,
                e,
            )

            if retries_left == 0:
                break

            if on_retry:
                on_retry(attempt + 1, retries_left, e)

            await sleep(calculate_backoff_delay(attempt, config))

    assert last_exception is not None
    logger.error("All %d attempts exhausted", attempts)
    raise RetryExhaustedError(attempts, last_exception)
