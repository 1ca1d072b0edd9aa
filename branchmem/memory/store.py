"""Per-node conversation memory backed by libsql.

Each memory node in a workflow keeps its own append-only log of entries,
partitioned by (session_id, memory_node_id). Entries carry the correlation
key of the execution that wrote them so reads can be limited to the turns
on the active conversation path.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from branchmem.db import SchemaGuard, connect
from branchmem.models import CorrelationScheme, MemoryEntry

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS conversation_memory (
    id                 TEXT PRIMARY KEY,
    session_id         TEXT NOT NULL,
    memory_node_id     TEXT NOT NULL,
    turn_id            TEXT,
    parent_message_id  TEXT,
    role               TEXT NOT NULL,
    content            TEXT NOT NULL,
    name               TEXT,
    created_at         TEXT NOT NULL
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_conversation_memory_node
    ON conversation_memory (session_id, memory_node_id, created_at)
"""

_COLUMNS = (
    "id, session_id, memory_node_id, turn_id, parent_message_id, "
    "role, content, name, created_at"
)

_KEY_COLUMNS = {
    CorrelationScheme.TURN: "turn_id",
    CorrelationScheme.PARENT_MESSAGE: "parent_message_id",
}


class MemoryStore:
    """Persists memory entries in SQLite / Turso.

    Singleton accessed via ``MemoryStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: MemoryStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._schema = SchemaGuard("conversation_memory", [_CREATE_TABLE, _CREATE_INDEX])

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Read ----------------------------------------------------------------

    async def list_by_session_and_node(
        self, session_id: str, memory_node_id: str
    ) -> list[MemoryEntry]:
        """Every entry of one memory node, oldest first."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                f"""
                SELECT {_COLUMNS} FROM conversation_memory
                WHERE session_id = ? AND memory_node_id = ?
                ORDER BY created_at, rowid
                """,
                (session_id, memory_node_id),
            )
            rows = await cursor.fetchall()
        return [MemoryEntry.from_row(row) for row in rows]

    async def list_by_correlation_ids(
        self,
        session_id: str,
        memory_node_id: str,
        ids: Sequence[str],
        scheme: CorrelationScheme = CorrelationScheme.TURN,
    ) -> list[MemoryEntry]:
        """Entries of one memory node whose correlation key is in *ids*.

        Results come back in creation order across all supplied ids.
        An empty *ids* returns nothing without touching the database.
        """
        if not ids:
            return []

        column = _KEY_COLUMNS[scheme]
        placeholders = ", ".join("?" for _ in ids)
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                f"""
                SELECT {_COLUMNS} FROM conversation_memory
                WHERE session_id = ? AND memory_node_id = ? AND {column} IN ({placeholders})
                ORDER BY created_at, rowid
                """,
                (session_id, memory_node_id, *ids),
            )
            rows = await cursor.fetchall()
        return [MemoryEntry.from_row(row) for row in rows]

    # -- Write ---------------------------------------------------------------

    async def append(self, entry: MemoryEntry) -> MemoryEntry:
        """Insert one entry. A duplicate id raises instead of being dropped."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            await db.execute(
                f"INSERT INTO conversation_memory ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                entry.to_row(),
            )
            await db.commit()
        return entry

    # -- Delete --------------------------------------------------------------

    async def clear(self, session_id: str, memory_node_id: str) -> int:
        """Delete every entry of one memory node. Returns the number removed."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                "DELETE FROM conversation_memory WHERE session_id = ? AND memory_node_id = ?",
                (session_id, memory_node_id),
            )
            await db.commit()
            deleted = max(cursor.rowcount, 0)
        if deleted:
            logger.info(
                "Cleared %d memory entries for node %s in session %s",
                deleted,
                memory_node_id,
                session_id,
            )
        return deleted
