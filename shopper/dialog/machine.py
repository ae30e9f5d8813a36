"""Turn-driven dialog state machine for the shopping flow."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Literal, TypeVar

from shopper.cart.guarded import GuardedCartStore
from shopper.core.errors import CartAlreadyCompletedError, CartStoreError
from shopper.gateway.base import RecommendationGateway
from shopper.memory.models import NO_CART, ConversationState, DialogState

from . import prompts
from .types import EventKind, InboundEvent, Reply, SenderMetadata

T = TypeVar("T")

Handler = Callable[[ConversationState, str], Awaitable[Reply]]


class DialogStateMachine:
    """Decide the next state, the response and the collaborator calls for one event.

    Input matching is literal: case-insensitive substring checks for the menu
    digits and "no", and an exact (trimmed) match for "ok".
    """

    def __init__(
        self,
        gateway: RecommendationGateway,
        carts: GuardedCartStore,
        *,
        reset_scope: Literal["conversation", "global"] = "conversation",
        gateway_timeout: float | None = None,
        default_user_id: str = "1",
        default_cart_id: int = 1,
    ) -> None:
        self.gateway = gateway
        self.carts = carts
        self.reset_scope = reset_scope
        self.gateway_timeout = gateway_timeout
        self.default_user_id = default_user_id
        self.default_cart_id = default_cart_id
        self._logger = logging.getLogger("shopper.dialog")
        self._handlers: dict[DialogState, Handler] = {
            DialogState.START: self._on_start,
            DialogState.CHOOSE_CATEGORY: self._on_choose_category,
            DialogState.CHOOSE_CATEGORY_ITEM: self._on_choose_category_item,
            DialogState.SELECTED_CATEGORY_ITEM: self._on_selected_category_item,
            DialogState.CHOOSE_RECOMMENDED_ITEM: self._on_choose_recommended_item,
            DialogState.SELECTED_RECOMMENDED_ITEM: self._on_selected_recommended_item,
            DialogState.END: self._on_end,
        }

    async def handle(self, state: ConversationState, event: InboundEvent) -> Reply:
        """Apply one inbound event to ``state`` in place and return the reply."""

        if event.kind is EventKind.CONVERSATION_START:
            return await self.start_conversation(state, event.sender)

        previous = state.turn_state
        handler = self._handlers.get(state.turn_state, self._on_unmapped)
        reply = await handler(state, event.text or "")
        if state.turn_state is not previous:
            self._logger.debug("Transition %s -> %s", previous.name, state.turn_state.name)
        return reply

    async def start_conversation(self, state: ConversationState, sender: SenderMetadata) -> Reply:
        self._logger.info("Starting a conversation")
        self._apply_sender(state, sender)
        if not state.has_cart:
            state.cart_id = self.default_cart_id
        if state.user_id == "unknown":
            state.user_id = self.default_user_id

        state.turn_state = DialogState.CHOOSE_CATEGORY
        state.last_processed_item = ""
        state.selected_items.clear()
        state.cart_closed = False
        state.turn_count = 0

        return Reply(text=prompts.greeting(state.display_name) + await self._prepare_cart(state))

    async def _on_start(self, state: ConversationState, message: str) -> Reply:
        if state.user_id == "unknown":
            state.user_id = self.default_user_id
        # No start signal arrived, so no cart was prepared yet.
        if not state.has_cart:
            state.cart_id = self.default_cart_id
        state.turn_state = DialogState.CHOOSE_CATEGORY
        return Reply(text=prompts.greeting(state.display_name) + await self._prepare_cart(state))

    async def _prepare_cart(self, state: ConversationState) -> str:
        scoped_cart = state.cart_id if self.reset_scope == "conversation" else None
        try:
            await self.carts.reset_carts(scoped_cart, user_id=state.user_id)
        except CartStoreError:
            self._logger.warning("Cart reset failed for cart %s", state.cart_id)
            return prompts.cart_not_prepared()
        return ""

    async def _on_choose_category(self, state: ConversationState, message: str) -> Reply:
        for digit, category_code in prompts.CATEGORY_CODES:
            if digit in message:
                items = await self._ask_gateway(self.gateway.fetch_top_sellers(category_code), [])
                state.turn_state = DialogState.SELECTED_CATEGORY_ITEM
                return Reply(text=prompts.top_sellers(category_code, items))

        if "no" in message.lower():
            state.turn_state = DialogState.END
            return Reply(text=prompts.closing_confirmation())

        # Anything else is ignored without a response.
        return Reply()

    async def _on_choose_category_item(self, state: ConversationState, message: str) -> Reply:
        state.turn_state = DialogState.SELECTED_CATEGORY_ITEM
        return Reply(text=prompts.choose_item_again())

    async def _on_selected_category_item(self, state: ConversationState, message: str) -> Reply:
        return await self._add_item(state, message.strip())

    async def _on_choose_recommended_item(self, state: ConversationState, message: str) -> Reply:
        if not message.strip():
            return Reply()

        if "no" in message.lower():
            state.turn_state = DialogState.CHOOSE_CATEGORY
            return Reply(text=prompts.back_to_categories())

        anchor = state.last_processed_item if message.strip().lower() == "ok" else message.strip()
        items = await self._ask_gateway(self.gateway.fetch_recommendations(anchor), [])
        state.turn_state = DialogState.SELECTED_RECOMMENDED_ITEM
        return Reply(text=prompts.recommendations(items))

    async def _on_selected_recommended_item(self, state: ConversationState, message: str) -> Reply:
        if not message.strip():
            return Reply()

        if "no" in message.lower():
            state.turn_state = DialogState.CHOOSE_CATEGORY
            return Reply(text=prompts.back_to_categories())

        return await self._add_item(state, message.strip())

    async def _on_end(self, state: ConversationState, message: str) -> Reply:
        if state.cart_closed:
            return Reply()

        items = list(state.selected_items)
        try:
            written = await self.carts.close_cart(state.cart_id, items)
        except CartAlreadyCompletedError:
            self._logger.warning("Cart %s was checked out elsewhere; %d items not saved", state.cart_id, len(items))
            return Reply(text=prompts.cart_already_completed(), cart_error=True)
        except CartStoreError:
            self._logger.exception("Could not close cart %s with %d items", state.cart_id, len(items))
            return Reply(text=prompts.cart_save_failed(), cart_error=True)

        state.selected_items.clear()
        state.cart_closed = True
        return Reply(persisted_items=written)

    async def _on_unmapped(self, state: ConversationState, message: str) -> Reply:
        state.turn_count += 1
        return Reply(text=prompts.fallback(state.turn_count, state.display_name))

    async def _add_item(self, state: ConversationState, item_id: str) -> Reply:
        item = await self._ask_gateway(self.gateway.fetch_item(item_id), None) if item_id else None
        if item is None:
            state.turn_state = DialogState.CHOOSE_CATEGORY_ITEM
            return Reply(text=prompts.invalid_item())

        state.add_item(item)
        state.turn_state = DialogState.CHOOSE_RECOMMENDED_ITEM
        return Reply(text=prompts.item_chosen(item.item_id))

    async def _ask_gateway(self, call: Awaitable[T], default: T) -> T:
        if self.gateway_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.gateway_timeout)
        except asyncio.TimeoutError:
            self._logger.warning("Recommendation gateway call timed out after %.1fs", self.gateway_timeout)
            return default

    @staticmethod
    def _apply_sender(state: ConversationState, sender: SenderMetadata) -> None:
        if sender.user_id:
            state.user_id = sender.user_id
        if sender.cart_id is not None and sender.cart_id != NO_CART:
            state.cart_id = sender.cart_id
        if sender.name:
            state.display_name = sender.name
