"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHOPPER_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="Shopper Assistant", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    state_db_path: Path = Field(
        default=Path("../db/conversations.db"),
        description="Conversation state DB path.",
    )
    cart_db_path: Path = Field(
        default=Path("../db/carts.db"),
        description="Cart and cart line item DB path.",
    )

    recommender_base_url: AnyHttpUrl = Field(
        default="http://localhost:8080",
        description="Base URL of the recommendation / top-sellers web API.",
    )
    recommender_api_key: str | None = Field(
        default=None,
        description="Value sent in the x-api-key header to the recommendation API.",
    )
    recommender_user_agent: str = Field(
        default="shopper-assistant",
        description="User-Agent header sent to the recommendation API.",
    )
    recommender_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout for recommendation API calls.",
    )
    cart_store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single cart store operation.",
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per collaborator call, including the first one.",
    )
    retry_max_backoff_seconds: float = Field(
        default=4.0,
        ge=0,
        description="Cap for the exponential backoff between attempts.",
    )

    cart_reset_scope: Literal["conversation", "global"] = Field(
        default="conversation",
        description=(
            "Which carts a conversation start resets: only the conversation's own cart, "
            "or every cart in the store."
        ),
    )
    default_user_id: str = Field(default="1", description="User id assumed when the channel sends none.")
    default_cart_id: int = Field(default=1, description="Cart id assumed when the channel sends none.")

    @property
    def recommender_enabled(self) -> bool:
        return bool(self.recommender_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
