"""Database utility helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


@contextmanager
def sqlite_connection(path: Path, *, timeout: float = 5.0) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection with row factory enabled.

    The whole block is one transaction: it commits on success and rolls back
    on any exception before re-raising it.
    """

    conn = sqlite3.connect(path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except Exception:  # noqa: BLE001
        conn.rollback()
        raise
    finally:
        conn.close()
