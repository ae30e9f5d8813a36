"""Catalog item value type returned by the recommendation API."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

# Lower-cased payload key -> field name. The API speaks camelCase, older
# deployments PascalCase, and our own state store snake_case.
_FIELD_ALIASES = {
    "itemid": "item_id",
    "item_id": "item_id",
    "itemname": "item_name",
    "item_name": "item_name",
    "categorycode": "category_code",
    "category_code": "category_code",
    "category": "category",
    "salesvalue": "sales_value",
    "sales_value": "sales_value",
    "itemrank": "item_rank",
    "item_rank": "item_rank",
    "recommendationscore": "recommendation_score",
    "recommendation_score": "recommendation_score",
}


@dataclass(frozen=True, slots=True)
class Item:
    """Immutable catalog item. ``sales_value`` is held in minor units (cents)."""

    item_id: str
    item_name: str = ""
    category_code: str = ""
    category: str = ""
    sales_value: Decimal = Decimal("0")
    item_rank: int = 0
    recommendation_score: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not self.item_id or not str(self.item_id).strip():
            raise ValueError("item_id must be a non-empty string")

    @property
    def unit_price(self) -> Decimal:
        """Price in major currency units, as written to cart line items."""

        return self.sales_value / 100

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Item":
        """Build an item from a JSON object, matching keys case-insensitively."""

        if not isinstance(payload, Mapping):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")

        values: dict[str, Any] = {}
        for key, value in payload.items():
            field_name = _FIELD_ALIASES.get(str(key).lower())
            if field_name is not None and value is not None:
                values[field_name] = value

        item_id = values.get("item_id")
        if item_id is None:
            raise ValueError("item payload is missing itemId")

        return cls(
            item_id=str(item_id).strip(),
            item_name=str(values.get("item_name", "")),
            category_code=str(values.get("category_code", "")),
            category=str(values.get("category", "")),
            sales_value=_to_decimal(values.get("sales_value", 0)),
            item_rank=int(values.get("item_rank", 0)),
            recommendation_score=_to_decimal(values.get("recommendation_score", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "category_code": self.category_code,
            "category": self.category,
            "sales_value": str(self.sales_value),
            "item_rank": self.item_rank,
            "recommendation_score": str(self.recommendation_score),
        }


def _to_decimal(value: Any) -> Decimal:
    try:
        # str() first so floats keep their printed value rather than binary noise
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"not a decimal value: {value!r}") from exc
