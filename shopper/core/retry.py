"""Bounded retry with exponential backoff for collaborator calls."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger("shopper.retry")


def backoff_seconds(attempt: int, *, base_delay: float = 0.5, max_delay: float = 4.0) -> float:
    """Delay before retrying after ``attempt`` failed attempts (0.5s, 1s, 2s... capped)."""

    delay = base_delay * (2 ** max(0, attempt - 1))
    return min(delay, max_delay)


def retrying(
    *,
    attempts: int,
    retry_on: tuple[type[BaseException], ...],
    base_delay: float = 0.5,
    max_delay: float = 4.0,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async callable when it raises one of ``retry_on``.

    The last exception is re-raised once ``attempts`` calls have failed.
    Exceptions outside ``retry_on`` propagate immediately.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as exc:
                    if attempt >= attempts:
                        raise
                    delay = backoff_seconds(attempt, base_delay=base_delay, max_delay=max_delay)
                    logger.warning(
                        "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                        getattr(func, "__qualname__", func),
                        attempt,
                        attempts,
                        exc,
                        delay,
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)
            raise RuntimeError("unreachable retry state")

        return wrapper

    return decorator
