from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import pytest

from shopper.cart.guarded import GuardedCartStore
from shopper.cart.store import SQLiteCartStore
from shopper.catalog.models import Item
from shopper.dialog.machine import DialogStateMachine
from shopper.dialog.service import ConversationService
from shopper.gateway.base import RecommendationGateway
from shopper.memory.store import SQLiteStateStore

# Keep the module-level stores in shopper.main out of the working tree.
_DB_DIR = Path(tempfile.mkdtemp(prefix="shopper-tests-"))
os.environ.setdefault("SHOPPER_STATE_DB_PATH", str(_DB_DIR / "conversations.db"))
os.environ.setdefault("SHOPPER_CART_DB_PATH", str(_DB_DIR / "carts.db"))
os.environ.setdefault("SHOPPER_RECOMMENDER_BASE_URL", "http://recommender.test")


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def top_sellers_payload(fixtures_dir: Path) -> list[dict]:
    return json.loads((fixtures_dir / "top_sellers_10.json").read_text(encoding="utf-8"))


@pytest.fixture
def recommendations_payload(fixtures_dir: Path) -> list[dict]:
    return json.loads((fixtures_dir / "recommendations_11072088.json").read_text(encoding="utf-8"))


@pytest.fixture
def top_sellers(top_sellers_payload: list[dict]) -> list[Item]:
    return [Item.from_payload(entry) for entry in top_sellers_payload]


@pytest.fixture
def recommended(recommendations_payload: list[dict]) -> list[Item]:
    return [Item.from_payload(entry) for entry in recommendations_payload]


class FakeGateway(RecommendationGateway):
    """In-memory gateway recording every call it receives."""

    def __init__(
        self,
        top_sellers: dict[str, list[Item]] | None = None,
        recommendations: dict[str, list[Item]] | None = None,
        catalog: dict[str, Item] | None = None,
    ) -> None:
        self.top_sellers = top_sellers or {}
        self.recommendations = recommendations or {}
        self.catalog = catalog or {}
        self.calls: list[tuple[str, str]] = []

    async def fetch_top_sellers(self, category_code: str) -> list[Item]:
        self.calls.append(("top_sellers", category_code))
        return list(self.top_sellers.get(category_code, []))

    async def fetch_recommendations(self, item_id: str) -> list[Item]:
        self.calls.append(("recommendations", item_id))
        return list(self.recommendations.get(item_id, []))

    async def fetch_item(self, item_id: str) -> Item | None:
        self.calls.append(("item", item_id))
        return self.catalog.get(item_id)


@pytest.fixture
def gateway(top_sellers: list[Item], recommended: list[Item]) -> FakeGateway:
    catalog = {item.item_id: item for item in [*top_sellers, *recommended]}
    return FakeGateway(
        top_sellers={"10": top_sellers},
        recommendations={"11072088": recommended},
        catalog=catalog,
    )


@pytest.fixture
def cart_store(tmp_path: Path) -> SQLiteCartStore:
    return SQLiteCartStore(tmp_path / "carts.db")


@pytest.fixture
def state_store(tmp_path: Path) -> SQLiteStateStore:
    return SQLiteStateStore(tmp_path / "state.db")


@pytest.fixture
def machine(gateway: FakeGateway, cart_store: SQLiteCartStore) -> DialogStateMachine:
    return DialogStateMachine(gateway, GuardedCartStore(cart_store, retry_base_delay=0))


@pytest.fixture
def service(state_store: SQLiteStateStore, machine: DialogStateMachine) -> ConversationService:
    return ConversationService(state_store, machine)
