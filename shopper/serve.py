"""Launch the assistant under Uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger("shopper.launcher")


def main() -> None:
    from shopper.main import app  # noqa: WPS433 (import position)

    port = int(os.environ.get("PORT", "8000"))
    logger.debug("Serving on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
