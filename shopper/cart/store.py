"""Cart persistence: carts and their line items."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from shopper.catalog.models import Item
from shopper.core.db import sqlite_connection
from shopper.core.errors import CartAlreadyCompletedError, CartStoreError, TransientCartStoreError

STATUS_NEW = "NEW"
STATUS_COMPLETED = "COMPLETED"

logger = logging.getLogger("shopper.cart")


class CartStore(ABC):
    """Persistence contract for carts. Implementations must be safe to share across conversations."""

    @abstractmethod
    def reset_carts(self, cart_id: int | None = None, *, user_id: str | None = None) -> None:
        """Reinitialise one cart as empty and NEW, or every cart when ``cart_id`` is None."""

    @abstractmethod
    def append_line_items(self, cart_id: int, items: Sequence[Item]) -> int:
        """Insert one line item per item and return how many rows were written."""

    @abstractmethod
    def mark_completed(self, cart_id: int) -> None:
        """Flag the cart as completed."""

    @abstractmethod
    def close_cart(self, cart_id: int, items: Sequence[Item]) -> int:
        """Append the line items and complete the cart atomically.

        Closing an already completed cart with no items is a no-op returning 0;
        with items it raises ``CartAlreadyCompletedError``.
        """


class SQLiteCartStore(CartStore):
    """SQLite cart store using parameterised statements throughout."""

    def __init__(
        self,
        db_path: Path,
        *,
        default_cart_id: int = 1,
        default_user_id: str = "1",
        timeout: float = 5.0,
    ) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.default_cart_id = default_cart_id
        self.default_user_id = default_user_id
        self._timeout = timeout
        self._ensure_schema()

    def _connection(self):
        return sqlite_connection(self.db_path, timeout=self._timeout)

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS cart (
                    id INTEGER PRIMARY KEY,
                    status TEXT NOT NULL,
                    date_created TEXT NOT NULL,
                    user_id TEXT
                );

                CREATE TABLE IF NOT EXISTS item_cart (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_id TEXT NOT NULL,
                    item_description TEXT,
                    price NUMERIC NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1,
                    category_id TEXT,
                    category_description TEXT,
                    cart_id INTEGER NOT NULL,
                    FOREIGN KEY (cart_id) REFERENCES cart (id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_item_cart_cart ON item_cart (cart_id);
                """
            )

    def reset_carts(self, cart_id: int | None = None, *, user_id: str | None = None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                if cart_id is None:
                    conn.execute("DELETE FROM item_cart")
                    conn.execute("DELETE FROM cart")
                    conn.execute(
                        "INSERT INTO cart (id, status, date_created, user_id) VALUES (?, ?, ?, ?)",
                        (self.default_cart_id, STATUS_NEW, now, user_id or self.default_user_id),
                    )
                else:
                    conn.execute("DELETE FROM item_cart WHERE cart_id = ?", (cart_id,))
                    conn.execute(
                        """
                        INSERT INTO cart (id, status, date_created, user_id) VALUES (?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            status = excluded.status,
                            date_created = excluded.date_created,
                            user_id = excluded.user_id
                        """,
                        (cart_id, STATUS_NEW, now, user_id or self.default_user_id),
                    )
        except sqlite3.Error as exc:
            logger.exception("Cart reset failed (cart_id=%s)", cart_id)
            raise _store_error("could not reset carts", cart_id, exc) from exc
        logger.info("Reset %s", f"cart {cart_id}" if cart_id is not None else "all carts")

    def append_line_items(self, cart_id: int, items: Sequence[Item]) -> int:
        try:
            with self._connection() as conn:
                return self._insert_line_items(conn, cart_id, items)
        except sqlite3.Error as exc:
            logger.exception("Appending %d line items to cart %s failed", len(items), cart_id)
            raise _store_error("could not store cart items", cart_id, exc) from exc

    def mark_completed(self, cart_id: int) -> None:
        try:
            with self._connection() as conn:
                self._complete(conn, cart_id)
        except sqlite3.Error as exc:
            logger.exception("Completing cart %s failed", cart_id)
            raise _store_error("could not complete cart", cart_id, exc) from exc

    def close_cart(self, cart_id: int, items: Sequence[Item]) -> int:
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT status FROM cart WHERE id = ?", (cart_id,)).fetchone()
                if row is not None and row["status"] == STATUS_COMPLETED:
                    if items:
                        logger.warning("Cart %s is already completed; refusing %d new items", cart_id, len(items))
                        raise CartAlreadyCompletedError("cart is already completed", cart_id=cart_id)
                    return 0
                written = self._insert_line_items(conn, cart_id, items)
                self._complete(conn, cart_id)
        except sqlite3.Error as exc:
            logger.exception("Closing cart %s failed; nothing was committed", cart_id)
            raise _store_error("could not close cart", cart_id, exc) from exc
        logger.info("Closed cart %s with %d line items", cart_id, written)
        return written

    def line_items(self, cart_id: int) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT item_id, item_description, price, quantity, category_id, category_description, cart_id
                FROM item_cart
                WHERE cart_id = ?
                ORDER BY id
                """,
                (cart_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def cart_status(self, cart_id: int) -> str | None:
        with self._connection() as conn:
            row = conn.execute("SELECT status FROM cart WHERE id = ?", (cart_id,)).fetchone()
        return row["status"] if row else None

    def _insert_line_items(self, conn: sqlite3.Connection, cart_id: int, items: Sequence[Item]) -> int:
        conn.executemany(
            """
            INSERT INTO item_cart
                (item_id, item_description, price, quantity, category_id, category_description, cart_id)
            VALUES (?, ?, ?, 1, ?, ?, ?)
            """,
            [
                (
                    item.item_id,
                    item.item_name,
                    str(item.unit_price),
                    item.category_code,
                    item.category,
                    cart_id,
                )
                for item in items
            ],
        )
        return len(items)

    @staticmethod
    def _complete(conn: sqlite3.Connection, cart_id: int) -> None:
        cursor = conn.execute("UPDATE cart SET status = ? WHERE id = ?", (STATUS_COMPLETED, cart_id))
        if cursor.rowcount == 0:
            # Rolls back the surrounding transaction like any other store error.
            raise sqlite3.IntegrityError(f"cart {cart_id} does not exist")


def _store_error(message: str, cart_id: int | None, exc: sqlite3.Error) -> CartStoreError:
    # Locked or unavailable databases are worth another attempt; constraint
    # violations and schema problems are not.
    if isinstance(exc, sqlite3.OperationalError):
        return TransientCartStoreError(message, cart_id=cart_id)
    return CartStoreError(message, cart_id=cart_id)
