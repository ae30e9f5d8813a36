"""HTTP client for the recommendation / top-sellers web API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from shopper.catalog.models import Item
from shopper.core.retry import retrying

from .base import RecommendationGateway

TOP_SELLERS_PATH = "/api/topsellers"
RECOMMEND_PATH = "/api/models/default/recommend"
ITEM_PATH = "/api/items/{item_id}"


class RetryableStatusError(Exception):
    """Upstream answered with a status worth retrying (5xx)."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"recommendation API returned {status_code}")
        self.status_code = status_code


@dataclass(frozen=True)
class GatewayRequest:
    """One outbound call. Built fresh for every request, never mutated."""

    method: str
    url: str
    params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)


class HttpRecommendationGateway(RecommendationGateway):
    """Recommendation gateway backed by the recommendation web API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        user_agent: str = "shopper-assistant",
        timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 0.5,
        retry_max_backoff: float = 4.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/")
        self._api_key = api_key
        self._user_agent = user_agent
        self._timeout = timeout
        self._transport = transport
        self._logger = logging.getLogger("shopper.gateway")
        self._send = retrying(
            attempts=retry_attempts,
            retry_on=(httpx.TransportError, RetryableStatusError),
            base_delay=retry_base_delay,
            max_delay=retry_max_backoff,
        )(self._send_once)

        if not api_key:
            self._logger.warning("Recommendation API key is not configured; requests are unauthenticated")

    def _build_request(self, path: str, params: Mapping[str, str] | None = None) -> GatewayRequest:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return GatewayRequest(
            method="GET",
            url=f"{self._base_url}{path}",
            params=MappingProxyType(dict(params or {})),
            headers=MappingProxyType(headers),
        )

    async def _send_once(self, request: GatewayRequest) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.request(
                request.method,
                request.url,
                params=dict(request.params),
                headers=dict(request.headers),
            )
        if response.status_code >= 500:
            raise RetryableStatusError(response.status_code)
        return response

    async def _get_item_list(self, request: GatewayRequest) -> list[Item]:
        try:
            response = await self._send(request)
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, list):
                raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
            return [Item.from_payload(entry) for entry in payload]
        except (httpx.HTTPError, RetryableStatusError, ValueError, TypeError) as exc:
            self._logger.warning(
                "Recommendation API call failed for %s %s: %s",
                request.url,
                dict(request.params),
                exc,
            )
            return []

    async def fetch_top_sellers(self, category_code: str) -> list[Item]:
        code = str(category_code).strip()
        if not code:
            return []
        return await self._get_item_list(self._build_request(TOP_SELLERS_PATH, {"categoryCode": code}))

    async def fetch_recommendations(self, item_id: str) -> list[Item]:
        item_id = (item_id or "").strip()
        if not item_id:
            return []
        return await self._get_item_list(self._build_request(RECOMMEND_PATH, {"itemId": item_id}))

    async def fetch_item(self, item_id: str) -> Item | None:
        item_id = (item_id or "").strip()
        if not item_id:
            return None

        request = self._build_request(ITEM_PATH.format(item_id=quote(item_id, safe="")))
        try:
            response = await self._send(request)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload: Any = response.json()
            # Some deployments wrap single lookups in a one-element array.
            if isinstance(payload, list):
                if not payload:
                    return None
                payload = payload[0]
            return Item.from_payload(payload)
        except (httpx.HTTPError, RetryableStatusError, ValueError, TypeError) as exc:
            self._logger.warning("Item lookup failed for %s: %s", item_id, exc)
            return None
