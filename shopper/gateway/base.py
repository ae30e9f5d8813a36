"""Recommendation gateway interface consumed by the dialog machine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopper.catalog.models import Item


class RecommendationGateway(ABC):
    """Source of top sellers, recommendations and item lookups.

    Implementations are fail-soft: transport or parse failures come back as
    an empty list (or None for ``fetch_item``) and are never raised.
    """

    @abstractmethod
    async def fetch_top_sellers(self, category_code: str) -> list[Item]:
        """Return the best-selling items of a category, best first."""

    @abstractmethod
    async def fetch_recommendations(self, item_id: str) -> list[Item]:
        """Return items recommended for the anchor item."""

    @abstractmethod
    async def fetch_item(self, item_id: str) -> Item | None:
        """Return the catalog item with this id, or None if there is none."""

    def describe(self) -> str:
        return self.__doc__ or type(self).__name__
