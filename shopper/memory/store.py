"""Conversation state store abstractions and SQLite implementation."""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from shopper.core.db import sqlite_connection
from shopper.core.errors import StateStoreError

from .models import ConversationState

logger = logging.getLogger("shopper.memory")


class StateStore(ABC):
    """Key-value store of conversation state records, keyed by conversation id."""

    @abstractmethod
    def load(self, conversation_id: str) -> ConversationState | None:
        """Return the stored record, or None for an unknown conversation."""

    @abstractmethod
    def save(self, conversation_id: str, state: ConversationState) -> None:
        """Persist the full record, replacing any previous version."""

    @abstractmethod
    def delete(self, conversation_id: str) -> None:
        """Forget a conversation."""

    @abstractmethod
    def iter_conversations(self) -> Iterable[str]:
        """Iterate over known conversation identifiers."""


class SQLiteStateStore(StateStore):
    """SQLite-backed state store holding one JSON document per conversation."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS conversation_state (
                    conversation_id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def load(self, conversation_id: str) -> ConversationState | None:
        try:
            with sqlite_connection(self.db_path) as conn:
                row = conn.execute(
                    "SELECT payload FROM conversation_state WHERE conversation_id = ?",
                    (conversation_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.exception("Failed to load state for %s", conversation_id)
            raise StateStoreError(f"could not load conversation {conversation_id}") from exc

        if row is None:
            return None
        return ConversationState.from_dict(json.loads(row["payload"]))

    def save(self, conversation_id: str, state: ConversationState) -> None:
        payload = json.dumps(state.to_dict(), separators=(",", ":"))
        try:
            with sqlite_connection(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO conversation_state (conversation_id, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(conversation_id) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at
                    """,
                    (conversation_id, payload, datetime.now(timezone.utc).isoformat()),
                )
        except sqlite3.Error as exc:
            logger.exception("Failed to save state for %s", conversation_id)
            raise StateStoreError(f"could not save conversation {conversation_id}") from exc

    def delete(self, conversation_id: str) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.execute("DELETE FROM conversation_state WHERE conversation_id = ?", (conversation_id,))

    def iter_conversations(self) -> Iterable[str]:
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute("SELECT conversation_id FROM conversation_state ORDER BY conversation_id")
            return [row["conversation_id"] for row in rows]
