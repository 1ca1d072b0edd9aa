"""SessionStore and SessionEnsurer — lazily created conversation sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branchmem.db import SchemaGuard, connect
from branchmem.errors import SessionOwnershipError
from branchmem.models import ConversationSession

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS conversation_sessions (
    id               TEXT PRIMARY KEY,
    owner_id         TEXT NOT NULL,
    title            TEXT NOT NULL,
    last_message_at  TEXT NOT NULL,
    workflow_id      TEXT,
    agent_name       TEXT NOT NULL,
    provider         TEXT NOT NULL,
    credential_id    TEXT,
    model            TEXT,
    agent_id         TEXT,
    tools            TEXT NOT NULL DEFAULT '[]',
    created_at       TEXT NOT NULL
)
"""

_COLUMNS = (
    "id, owner_id, title, last_message_at, workflow_id, agent_name, "
    "provider, credential_id, model, agent_id, tools, created_at"
)


class SessionStore:
    """Persists conversation sessions in SQLite / Turso.

    Singleton accessed via ``SessionStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: SessionStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._schema = SchemaGuard("conversation_sessions", [_CREATE_TABLE])

    @classmethod
    def get(cls) -> SessionStore:
        """Return the shared SessionStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def exists_by_id(self, session_id: str, owner_id: str) -> bool:
        """True if *owner_id* already has a session with this id."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                "SELECT 1 FROM conversation_sessions WHERE id = ? AND owner_id = ?",
                (session_id, owner_id),
            )
            row = await cursor.fetchone()
        return row is not None

    async def get_by_id(self, session_id: str) -> ConversationSession | None:
        """Fetch a session by ID, or None if not found."""
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM conversation_sessions WHERE id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
        return ConversationSession.from_row(row) if row else None

    async def create_if_absent(self, session: ConversationSession) -> bool:
        """Insert *session* unless its id is taken. Returns True if inserted.

        The conflict clause makes a concurrent insert of the same id a no-op
        instead of a primary key violation.
        """
        async with connect(self._db_path) as db:
            await self._schema.ensure(db)
            cursor = await db.execute(
                f"""
                INSERT INTO conversation_sessions ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                session.to_row(),
            )
            await db.commit()
            return cursor.rowcount > 0


class SessionEnsurer:
    """Get-or-create for the session a memory node writes into."""

    def __init__(self, store: SessionStore | None = None) -> None:
        self._store = store or SessionStore.get()

    async def ensure(
        self,
        session_id: str,
        owner_id: str,
        title: str,
        agent_name: str,
        workflow_id: str | None = None,
    ) -> bool:
        """Create the session if the owner does not have it yet.

        Returns True only when this call inserted the row. Losing a creation
        race to another memory node of the same owner counts as success.
        Raises ``SessionOwnershipError`` when the id belongs to another owner.
        """
        if await self._store.exists_by_id(session_id, owner_id):
            return False

        created = await self._store.create_if_absent(
            ConversationSession(
                id=session_id,
                owner_id=owner_id,
                title=title,
                workflow_id=workflow_id,
                agent_name=agent_name,
            )
        )
        if not created:
            if not await self._store.exists_by_id(session_id, owner_id):
                logger.warning(
                    "Session %s already exists for a different owner than %s",
                    session_id,
                    owner_id,
                )
                raise SessionOwnershipError(session_id, owner_id)
            logger.debug("Session %s was created concurrently; nothing to do", session_id)
            return False

        logger.debug(
            "Created session %s for owner %s (title=%r, workflow=%s, agent=%r)",
            session_id,
            owner_id,
            title,
            workflow_id,
            agent_name,
        )
        return True
