"""
Reliability utilities: retry logic for transient failures.

Registry and repository HTTP calls retry through resilient_call; only
transient failures (timeouts, connection errors, 5xx) are retried.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

from core.errors import SourceUnavailableError

__all__ = [
    "TransientError",
    "resilient_call",
]

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════════
# Retry Logic
# ══════════════════════════════════════════════════════════════════════════════


class TransientError(SourceUnavailableError):
    """Failure worth retrying (connection reset, 5xx, timeout)."""


async def resilient_call(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_retries: int = 1,
    base_delay: float = 0.5,
    **kwargs,
) -> Any:
    """
    Execute an async function, retrying only on TransientError.

    Unlike a search fan-out, a fallback chain needs to know that a source
    failed, so the last error is re-raised instead of swallowed.

    Args:
        func: Async function to call
        *args: Positional arguments
        max_retries: Maximum retry attempts after the first call
        base_delay: Base delay between retries (doubles each attempt)
        **kwargs: Keyword arguments

    Returns:
        Result from func
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except TransientError as e:
            if attempt >= max_retries:
                logger.debug(f"Giving up after {attempt + 1} attempts: {e}")
                raise
            delay = _calculate_delay(attempt, base_delay)
            logger.debug(
                f"Retry {attempt + 1}/{max_retries}: {type(e).__name__}. "
                f"Waiting {delay:.1f}s..."
            )
            await asyncio.sleep(delay)


def _calculate_delay(attempt: int, base: float) -> float:
    """Exponential delay (0.5s, 1s, 2s, 4s, capped at 10s) with jitter."""
    delay = min(base * (2**attempt), 10.0)
    return delay + random.uniform(0, 0.1 * delay)
