"""User-facing texts of the shopping flow."""

from __future__ import annotations

from typing import Iterable

from shopper.catalog.models import Item

# Menu digit -> top-sellers category code, in matching priority order.
CATEGORY_CODES: tuple[tuple[str, str], ...] = (
    ("1", "10"),
    ("2", "20"),
    ("3", "30"),
    ("4", "40"),
)

CATEGORY_MENU = (
    "\n\t\t1) Tobacco"
    "\n\t\t2) Liquor"
    "\n\t\t3) Food"
    "\n\t\t4) Perfumes & Cosmetics"
)

CLOSE_CART_HINT = '\n\t\tType "none" to close the cart.'

NO_ITEMS_LINE = "\n\t\t No items are available right now."


def greeting(name: str) -> str:
    return (
        f"Hello, '{name}'. I am your personal shopping assistant and I will guide you "
        "during the shopping process."
        "\n"
        "\n Please select what you want to buy:" + CATEGORY_MENU
    )


def category_menu() -> str:
    return "Please select the category of interest:" + CATEGORY_MENU + CLOSE_CART_HINT


def back_to_categories() -> str:
    return "You are being sent back to the category choosing.\n " + category_menu()


def _item_lines(items: Iterable[Item]) -> str:
    lines = "".join(f"\n\t\t '{item.item_id}' - {item.item_name}" for item in items)
    return lines or NO_ITEMS_LINE


def top_sellers(category_code: str, items: list[Item]) -> str:
    return (
        f"Following items are top sellers in the category: {category_code}\n"
        + _item_lines(items)
        + "\n Choose the item"
    )


def recommendations(items: list[Item]) -> str:
    return (
        "Following items are recommended to you based on the current items in your cart:\n"
        + _item_lines(items)
        + '\n Choose the item, otherwise, type "none".'
    )


def item_chosen(item_id: str) -> str:
    return f'You have chosen {item_id}. Type "OK" to continue.'


def invalid_item() -> str:
    return 'You have chosen an invalid item. Type "OK" to continue and select a correct item.'


def choose_item_again() -> str:
    return "Please type the id of the item you want to add to your cart."


def closing_confirmation() -> str:
    return 'Thank you for buying. Have a nice day! Type "OK" to confirm the completion of the cart.'


def cart_save_failed() -> str:
    return "Sorry, we could not save your cart right now. Please try again."


def cart_not_prepared() -> str:
    return "\n\n (Your cart could not be prepared right now; closing it may fail.)"


def fallback(turn_count: int, name: str) -> str:
    return f"Turn {turn_count}: Hello '{name}'"


def cart_already_completed() -> str:
    return "This cart has already been checked out, so these items were not added. Start a new conversation to shop again."
