"""Bounded retry with linear or exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from debate_council.errors import RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    delay_sec: float = 1.0
    backoff: str = "exponential"   # "linear" or "exponential"

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-indexed)."""
        if self.backoff == "exponential":
            return self.delay_sec * (2 ** (attempt - 1))
        return self.delay_sec * attempt


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Await `operation()` until it succeeds or `policy.max_retries` attempts fail.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Attempt ceiling and backoff shape.
        on_retry: Optional observer called with (attempt, error) before each wait.

    Returns:
        The first successful result.

    Raises:
        RetryExhausted: Carrying the attempt count and the last underlying error.
    """
    if policy.max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    last_error: Exception | None = None
    for attempt in range(1, policy.max_retries + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            if attempt == policy.max_retries:
                break
            delay = policy.delay_for(attempt)
            logger.warning("Attempt %d failed, retrying in %.1fs: %s", attempt, delay, exc)
            if on_retry:
                on_retry(attempt, exc)
            await asyncio.sleep(delay)

    raise RetryExhausted(policy.max_retries, last_error)
