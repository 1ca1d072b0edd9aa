"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from branchmem.db import connect
from branchmem.history.store import CREATE_MESSAGES_TABLE, MessageStore
from branchmem.memory.store import MemoryStore
from branchmem.models import ChatMessage
from branchmem.sessions.store import SessionStore

SeedMessages = Callable[[list[ChatMessage]], Awaitable[None]]


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("branchmem.config.settings.turso_database_url", "")


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def message_store(db_path: Path) -> MessageStore:
    return MessageStore(db_path=db_path)


@pytest.fixture
def memory_store(db_path: Path) -> MemoryStore:
    return MemoryStore(db_path=db_path)


@pytest.fixture
def session_store(db_path: Path) -> SessionStore:
    return SessionStore(db_path=db_path)


@pytest.fixture
def seed_messages(db_path: Path) -> SeedMessages:
    """Write chat messages the way the chat layer would."""

    async def _seed(messages: list[ChatMessage]) -> None:
        async with connect(db_path) as db:
            await db.execute(CREATE_MESSAGES_TABLE)
            for message in messages:
                await db.execute(
                    """
                    INSERT INTO chat_messages
                        (id, session_id, parent_id, role, turn_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    message.to_row(),
                )
            await db.commit()

    return _seed
