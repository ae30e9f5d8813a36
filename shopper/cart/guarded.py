"""Async facade running cart store calls off the event loop with timeout and retry."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence, TypeVar

from shopper.catalog.models import Item
from shopper.core.errors import CartStoreError, TransientCartStoreError
from shopper.core.retry import retrying

from .store import CartStore

T = TypeVar("T")

logger = logging.getLogger("shopper.cart")


class GuardedCartStore:
    """Wrap a blocking ``CartStore`` for use from the dialog machine.

    Every call runs in a worker thread and is bounded by ``timeout``. A
    ``TransientCartStoreError`` is retried with exponential backoff. A
    timeout is reported as a plain ``CartStoreError`` and never retried,
    because the abandoned thread may still commit.
    """

    def __init__(
        self,
        store: CartStore,
        *,
        timeout: float = 5.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 0.5,
        retry_max_backoff: float = 4.0,
    ) -> None:
        self.store = store
        self._timeout = timeout
        self._call = retrying(
            attempts=retry_attempts,
            retry_on=(TransientCartStoreError,),
            base_delay=retry_base_delay,
            max_delay=retry_max_backoff,
        )(self._call_once)

    async def _call_once(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Cart store call %s timed out after %.1fs", func.__name__, self._timeout)
            raise CartStoreError(f"{func.__name__} timed out") from exc

    async def reset_carts(self, cart_id: int | None = None, *, user_id: str | None = None) -> None:
        await self._call(self.store.reset_carts, cart_id, user_id=user_id)

    async def append_line_items(self, cart_id: int, items: Sequence[Item]) -> int:
        return await self._call(self.store.append_line_items, cart_id, list(items))

    async def mark_completed(self, cart_id: int) -> None:
        await self._call(self.store.mark_completed, cart_id)

    async def close_cart(self, cart_id: int, items: Sequence[Item]) -> int:
        return await self._call(self.store.close_cart, cart_id, list(items))
