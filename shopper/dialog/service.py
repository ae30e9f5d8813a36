"""Turn service: load state, run the machine, save state, answer."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from shopper.core.metrics import MetricsCollector
from shopper.memory.models import ConversationState
from shopper.memory.store import StateStore

from .machine import DialogStateMachine
from .types import InboundEvent, TurnResult

logger = logging.getLogger("shopper.dialog")


class ConversationService:
    """Process events one conversation at a time.

    Turns for the same conversation id are serialised by a per-conversation
    lock; different conversations proceed concurrently. A lock lives only
    while some turn holds or awaits it. State store calls run in a worker
    thread so SQLite I/O does not block other conversations.
    """

    def __init__(
        self,
        store: StateStore,
        machine: DialogStateMachine,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.store = store
        self.machine = machine
        self.metrics = metrics or MetricsCollector()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if not self._lock_users[conversation_id]:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    async def handle(self, conversation_id: str, event: InboundEvent) -> TurnResult:
        async with self._conversation_lock(conversation_id):
            state = await asyncio.to_thread(self.store.load, conversation_id) or ConversationState()
            reply = await self.machine.handle(state, event)
            # Persist before replying.
            await asyncio.to_thread(self.store.save, conversation_id, state)

        self.metrics.record_turn(event.kind.value, state.turn_state.name)
        if reply.cart_error:
            self.metrics.record_cart_failure()
        logger.info(
            "Conversation %s handled %s -> %s",
            conversation_id,
            event.kind.value,
            state.turn_state.name,
        )
        return TurnResult(
            conversation_id=conversation_id,
            state=state.turn_state,
            text=reply.text,
            persisted_items=reply.persisted_items,
            cart_error=reply.cart_error,
        )

    async def snapshot(self, conversation_id: str) -> ConversationState | None:
        return await asyncio.to_thread(self.store.load, conversation_id)

    async def conversation_ids(self) -> list[str]:
        return await asyncio.to_thread(lambda: list(self.store.iter_conversations()))
