from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from shopper.catalog.models import Item


def test_from_payload_accepts_camel_and_pascal_case():
    camel = Item.from_payload({"itemId": "1", "itemName": "Gin", "salesValue": 1999, "itemRank": 3})
    pascal = Item.from_payload({"ItemId": "1", "ItemName": "Gin", "SalesValue": 1999, "ItemRank": 3})

    assert camel == pascal
    assert camel.item_rank == 3


def test_decimal_fields_keep_printed_value():
    item = Item.from_payload({"itemId": "1", "salesValue": 4599, "recommendationScore": 0.8123})

    assert item.sales_value == Decimal("4599")
    assert item.recommendation_score == Decimal("0.8123")
    assert item.unit_price == Decimal("45.99")


def test_numeric_item_id_is_normalised_to_string():
    assert Item.from_payload({"itemId": 11072088}).item_id == "11072088"


@pytest.mark.parametrize("payload", [{}, {"itemId": ""}, {"itemId": "   "}, ["itemId"]])
def test_payload_without_item_id_is_rejected(payload):
    with pytest.raises(ValueError):
        Item.from_payload(payload)


def test_items_are_immutable():
    item = Item(item_id="1")

    with pytest.raises(FrozenInstanceError):
        item.item_name = "changed"
