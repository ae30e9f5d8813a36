"""Inbound event and turn result structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from shopper.memory.models import DialogState


class EventKind(str, Enum):
    """Signals a channel can deliver for a conversation."""

    CONVERSATION_START = "conversation-start"
    MESSAGE = "message"


@dataclass(slots=True)
class SenderMetadata:
    """Optional identity details the channel attaches to an event."""

    user_id: str | None = None
    cart_id: int | None = None
    name: str | None = None


@dataclass(slots=True)
class InboundEvent:
    kind: EventKind
    text: str | None = None
    sender: SenderMetadata = field(default_factory=SenderMetadata)


@dataclass(slots=True)
class Reply:
    """What one machine step produced besides the state mutation."""

    text: str = ""
    persisted_items: int = 0
    cart_error: bool = False


@dataclass(slots=True)
class TurnResult:
    """Outcome of a processed event, after the state record was saved."""

    conversation_id: str
    state: DialogState
    text: str
    persisted_items: int = 0
    cart_error: bool = False
