"""MessageStore — read access to the chat message log via libsql."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branchmem.db import SchemaGuard, connect
from branchmem.models import ChatMessage

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CREATE_MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS chat_messages (
    id          TEXT PRIMARY KEY,
    session_id  TEXT NOT NULL,
    parent_id   TEXT,
    role        TEXT NOT NULL,
    turn_id     TEXT,
    created_at  TEXT NOT NULL
)
"""

CREATE_MESSAGES_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chat_messages_session
    ON chat_messages (session_id, created_at)
"""


class MessageStore:
    """Reads the messages the chat layer has written for a session.

    The chat layer owns this table; nothing here inserts, updates or
    deletes rows. Pass an explicit *db_path* for test isolation.
    """

    _instance: MessageStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._schema = SchemaGuard("chat_messages", [CREATE_MESSAGES_TABLE, CREATE_MESSAGES_INDEX])

    @classmethod
    def get(cls) -> MessageStore:
        """Return the shared MessageStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def list_by_session(self, session_id: str) -> list[ChatMessage]:
        """All messages of a session in insertion order."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                """
                SELECT id, session_id, parent_id, role, turn_id, created_at
                FROM chat_messages
                WHERE session_id = ?
                ORDER BY rowid
                """,
                (session_id,),
            )
            rows = await cursor.fetchall()
        return [ChatMessage.from_row(row) for row in rows]
