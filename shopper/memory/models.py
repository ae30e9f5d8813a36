"""Dataclasses representing the per-conversation dialog state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from shopper.catalog.models import Item

NO_CART = -1


class DialogState(IntEnum):
    """Conversation states, in flow order."""

    START = 0
    CHOOSE_CATEGORY = 1
    SELECTED_CATEGORY = 2
    CHOOSE_CATEGORY_ITEM = 3
    SELECTED_CATEGORY_ITEM = 4
    CHOOSE_RECOMMENDED_ITEM = 5
    SELECTED_RECOMMENDED_ITEM = 6
    END = 7


@dataclass(slots=True)
class ConversationState:
    """Mutable record owned by exactly one conversation."""

    turn_state: DialogState = DialogState.START
    user_id: str = "unknown"
    cart_id: int = NO_CART
    display_name: str = "unknown user"
    last_processed_item: str = ""
    selected_items: list[Item] = field(default_factory=list)
    turn_count: int = 0
    cart_closed: bool = False

    @property
    def has_cart(self) -> bool:
        return self.cart_id != NO_CART

    def add_item(self, item: Item) -> None:
        self.selected_items.append(item)
        self.last_processed_item = item.item_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn_state": int(self.turn_state),
            "user_id": self.user_id,
            "cart_id": self.cart_id,
            "display_name": self.display_name,
            "last_processed_item": self.last_processed_item,
            "selected_items": [item.to_dict() for item in self.selected_items],
            "turn_count": self.turn_count,
            "cart_closed": self.cart_closed,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ConversationState":
        return cls(
            turn_state=DialogState(int(payload.get("turn_state", DialogState.START))),
            user_id=str(payload.get("user_id", "unknown")),
            cart_id=int(payload.get("cart_id", NO_CART)),
            display_name=str(payload.get("display_name", "unknown user")),
            last_processed_item=str(payload.get("last_processed_item", "")),
            selected_items=[Item.from_payload(raw) for raw in payload.get("selected_items", [])],
            turn_count=int(payload.get("turn_count", 0)),
            cart_closed=bool(payload.get("cart_closed", False)),
        )
