"""
Retry with exponential backoff for async operations.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from .models import RetryPolicy


logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(policy: RetryPolicy, attempt: int) -> float:
    """
    Seconds to wait after the given (0-based) failed attempt.

    base_delay * 2**attempt, multiplied by a uniform factor in [0.5, 1.5)
    when jitter is enabled.
    """
    delay = policy.base_delay * (2 ** attempt)
    if policy.use_jitter:
        delay *= 0.5 + random.random()
    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run `operation` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: At most max_attempts + 1 calls are made
        should_retry: Return False to give up on an error immediately
        sleep: Awaitable used between attempts

    Returns:
        The first successful result

    Raises:
        The last error, unchanged
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.max_attempts:
                raise
            if should_retry is not None and not should_retry(e):
                raise

            delay = backoff_delay(policy, attempt)
            logger.debug(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt + 1, policy.max_attempts + 1, e, delay,
            )
            await sleep(delay)
            attempt += 1
