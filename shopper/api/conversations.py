"""Channel adapter routes: inbound conversation events and state inspection."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from shopper.dialog.service import ConversationService
from shopper.dialog.types import EventKind, InboundEvent, SenderMetadata


class SenderPayload(BaseModel):
    user_id: str | None = None
    cart_id: int | None = None
    name: str | None = None


class EventPayload(BaseModel):
    kind: EventKind
    text: str | None = None
    sender: SenderPayload = Field(default_factory=SenderPayload)

    def to_event(self) -> InboundEvent:
        return InboundEvent(
            kind=self.kind,
            text=self.text,
            sender=SenderMetadata(
                user_id=self.sender.user_id,
                cart_id=self.sender.cart_id,
                name=self.sender.name,
            ),
        )


def create_conversations_router(get_service: Callable[[], ConversationService]) -> APIRouter:
    router = APIRouter(prefix="/conversations", tags=["conversations"])

    @router.post("/{conversation_id}/events")
    async def post_event(
        conversation_id: str,
        payload: EventPayload,
        service: ConversationService = Depends(get_service),
    ) -> dict[str, Any]:
        """Process one inbound event and return the assistant's response text."""

        result = await service.handle(conversation_id, payload.to_event())
        return {
            "conversation_id": result.conversation_id,
            "state": result.state.name,
            "message": result.text,
            "persisted_items": result.persisted_items,
            "cart_error": result.cart_error,
        }

    @router.get("")
    async def list_conversations(service: ConversationService = Depends(get_service)) -> list[str]:
        """List known conversation identifiers (development helper)."""

        return await service.conversation_ids()

    @router.get("/{conversation_id}")
    async def get_conversation(
        conversation_id: str,
        service: ConversationService = Depends(get_service),
    ) -> dict[str, Any]:
        state = await service.snapshot(conversation_id)
        if state is None:
            raise HTTPException(status_code=404, detail="conversation not found")
        payload = state.to_dict()
        payload["turn_state"] = state.turn_state.name
        return payload

    return router
