"""FastAPI application entry point for the shopping assistant."""

import logging
import sqlite3
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI

from shopper.api.conversations import create_conversations_router
from shopper.cart.guarded import GuardedCartStore
from shopper.cart.store import SQLiteCartStore
from shopper.core.config import get_settings
from shopper.core.errors import unhandled_exception_handler
from shopper.core.logging import configure_logging, request_id_middleware
from shopper.core.metrics import MetricsCollector
from shopper.dialog.machine import DialogStateMachine
from shopper.dialog.service import ConversationService
from shopper.gateway.http import HttpRecommendationGateway
from shopper.memory.store import SQLiteStateStore

settings = get_settings()
logger = logging.getLogger("shopper.app")

state_store = SQLiteStateStore(settings.state_db_path)
cart_store = SQLiteCartStore(
    settings.cart_db_path,
    default_cart_id=settings.default_cart_id,
    default_user_id=settings.default_user_id,
    timeout=settings.cart_store_timeout_seconds,
)
gateway = HttpRecommendationGateway(
    str(settings.recommender_base_url),
    api_key=settings.recommender_api_key,
    user_agent=settings.recommender_user_agent,
    timeout=settings.recommender_timeout_seconds,
    retry_attempts=settings.retry_attempts,
    retry_max_backoff=settings.retry_max_backoff_seconds,
)
machine = DialogStateMachine(
    gateway,
    GuardedCartStore(
        cart_store,
        timeout=settings.cart_store_timeout_seconds,
        retry_attempts=settings.retry_attempts,
        retry_max_backoff=settings.retry_max_backoff_seconds,
    ),
    reset_scope=settings.cart_reset_scope,
    # Covers every retry of one gateway call, backoff included.
    gateway_timeout=settings.recommender_timeout_seconds * settings.retry_attempts
    + settings.retry_max_backoff_seconds * max(0, settings.retry_attempts - 1),
    default_user_id=settings.default_user_id,
    default_cart_id=settings.default_cart_id,
)
metrics = MetricsCollector()
conversation_service = ConversationService(state_store, machine, metrics)


def get_conversation_service() -> ConversationService:
    """Dependency injector for the conversation service."""

    return conversation_service


app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")
app.middleware("http")(request_id_middleware)
app.include_router(create_conversations_router(get_conversation_service))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return basic service status for monitoring."""

    return {"status": "ok"}


def _probe_sqlite(path: Path, table: str) -> dict[str, Any]:
    ok = False
    error: str | None = None
    try:
        with sqlite3.connect(path) as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
                (table,),
            ).fetchone()
            ok = row is not None
            if not ok:
                error = f"table {table} missing"
    except Exception as exc:  # noqa: BLE001
        error = str(exc)
    return {"path": str(path), "ok": ok, **({"error": error} if error else {})}


@app.get("/ready", tags=["health"])
async def readiness_probe() -> dict[str, Any]:
    """Readiness endpoint that verifies the state and cart databases.

    The recommendation API is not probed; its failures degrade turns instead
    of taking the service down.
    """

    components = {
        "state_db": _probe_sqlite(Path(settings.state_db_path), "conversation_state"),
        "cart_db": _probe_sqlite(Path(settings.cart_db_path), "item_cart"),
        "recommender": {
            "base_url": str(settings.recommender_base_url),
            "api_key_configured": settings.recommender_enabled,
        },
    }

    if components["state_db"]["ok"] and components["cart_db"]["ok"]:
        overall = "ok"
    elif components["state_db"]["ok"]:
        overall = "degraded"
    else:
        overall = "fail"

    return {
        "status": overall,
        "environment": settings.environment,
        "components": components,
    }


@app.on_event("startup")
async def startup_logging() -> None:
    level = configure_logging(settings.log_level)
    logger.info("Logging configured at %s level for %s environment", logging.getLevelName(level), settings.environment)


app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint(service: ConversationService = Depends(get_conversation_service)) -> dict:
    snapshot = service.metrics.snapshot()
    return {
        "total_turns": snapshot.total_turns,
        "event_kinds": snapshot.event_kinds,
        "resulting_states": snapshot.resulting_states,
        "cart_failures": snapshot.cart_failures,
    }
