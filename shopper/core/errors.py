"""Error types and exception handling utilities."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("shopper.errors")


class ShopperError(Exception):
    """Base class for failures the assistant reports to its callers."""


class CartStoreError(ShopperError):
    """Cart persistence failed; nothing from the failed call was committed."""

    def __init__(self, message: str, *, cart_id: int | None = None) -> None:
        super().__init__(message)
        self.cart_id = cart_id


class TransientCartStoreError(CartStoreError):
    """Cart store was busy or unreachable; the same call may succeed later."""


class CartAlreadyCompletedError(CartStoreError):
    """The cart was checked out earlier; new line items would be lost."""


class StateStoreError(ShopperError):
    """Conversation state could not be loaded or saved."""


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer a failed turn with a 500 that carries the request id for log lookup.

    Store failures are named in the log but never in the response body.
    """

    request_id = getattr(request.state, "request_id", None)
    kind = "store" if isinstance(exc, (StateStoreError, CartStoreError)) else "unexpected"
    logger.exception("%s failure on %s %s [rid=%s]", kind.capitalize(), request.method, request.url.path, request_id)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "The assistant could not handle this message. Please send it again.",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id} if request_id else None,
    )
