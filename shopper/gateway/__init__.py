"""Gateway package exports."""

from .base import RecommendationGateway
from .http import GatewayRequest, HttpRecommendationGateway, RetryableStatusError

__all__ = [
    "RecommendationGateway",
    "GatewayRequest",
    "HttpRecommendationGateway",
    "RetryableStatusError",
]
