"""Async database connection abstraction over libsql.

Wraps the synchronous ``libsql`` driver with ``asyncio.to_thread()``.
Connection target is determined by settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso env vars → local SQLite file via ``database_path``

Every store opens a connection per operation with :func:`connect` and lets
the context manager close it, so no connection outlives one request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from pathlib import Path

from branchmem.config import settings

logger = logging.getLogger(__name__)


class _AsyncCursor:
    """Thin async wrapper around a synchronous libsql cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


class _AsyncConnection:
    """Thin async wrapper around a synchronous libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> _AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, tuple(params))
        return _AsyncCursor(cursor)

    async def executescript(self, statements: Sequence[str]) -> None:
        """Run several DDL statements and commit once."""

        def _run() -> None:
            for statement in statements:
                self._conn.execute(statement)
            self._conn.commit()

        await asyncio.to_thread(_run)

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    """Open a local libsql connection with WAL mode and busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


async def get_connection(local_path_override: Path | None = None) -> _AsyncConnection:
    """Return an async-wrapped libsql connection.

    If *local_path_override* is given (test isolation), it takes priority.
    Otherwise, ``TURSO_DATABASE_URL`` triggers a remote connection, and
    ``database_path`` falls back to a local file.
    """
    if local_path_override:
        local_path_override.parent.mkdir(parents=True, exist_ok=True)
        conn = await asyncio.to_thread(_open_local, str(local_path_override))
        return _AsyncConnection(conn)

    if settings.uses_turso:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return _AsyncConnection(conn)

    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(settings.database_path))
    return _AsyncConnection(conn)


@asynccontextmanager
async def connect(local_path_override: Path | None = None) -> AsyncIterator[_AsyncConnection]:
    """Open a connection for the duration of one ``async with`` block."""
    db = await get_connection(local_path_override)
    try:
        yield db
    finally:
        await db.close()


class SchemaGuard:
    """Creates a store's tables on first use.

    One guard per store instance. The DDL uses IF NOT EXISTS throughout.
    """

    def __init__(self, name: str, statements: Sequence[str]) -> None:
        self._name = name
        self._statements = tuple(statements)
        self._ready = False

    async def ensure(self, db: _AsyncConnection) -> None:
        if self._ready:
            return
        await db.executescript(self._statements)
        self._ready = True
        logger.debug("Schema ready: %s", self._name)
