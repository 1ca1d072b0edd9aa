"""Tests for SessionStore and SessionEnsurer."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from branchmem.db import connect
from branchmem.errors import SessionOwnershipError
from branchmem.models import ConversationSession
from branchmem.sessions.store import SessionEnsurer, SessionStore

pytestmark = pytest.mark.usefixtures("_no_turso")


async def _count_sessions(db_path, session_id: str) -> int:
    async with connect(db_path) as db:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM conversation_sessions WHERE id = ?", (session_id,)
        )
        row = await cursor.fetchone()
    return row[0]


# -- SessionStore --------------------------------------------------------------


async def test_create_and_get(session_store: SessionStore) -> None:
    created = await session_store.create_if_absent(
        ConversationSession(
            id="s1", owner_id="u1", title="Support", workflow_id="wf1", agent_name="Support"
        )
    )
    assert created is True

    session = await session_store.get_by_id("s1")
    assert session is not None
    assert session.owner_id == "u1"
    assert session.workflow_id == "wf1"
    assert session.tools == []
    assert session.provider == "workflow"


async def test_get_missing_returns_none(session_store: SessionStore) -> None:
    assert await session_store.get_by_id("nope") is None


async def test_exists_is_scoped_to_owner(session_store: SessionStore) -> None:
    await session_store.create_if_absent(
        ConversationSession(id="s1", owner_id="u1", title="t", agent_name="a")
    )
    assert await session_store.exists_by_id("s1", "u1") is True
    assert await session_store.exists_by_id("s1", "u2") is False


async def test_duplicate_create_is_noop(session_store: SessionStore) -> None:
    first = ConversationSession(id="s1", owner_id="u1", title="first", agent_name="a")
    second = ConversationSession(id="s1", owner_id="u1", title="second", agent_name="a")

    assert await session_store.create_if_absent(first) is True
    assert await session_store.create_if_absent(second) is False

    session = await session_store.get_by_id("s1")
    assert session.title == "first"


# -- SessionEnsurer ------------------------------------------------------------


async def test_ensure_creates_once(session_store: SessionStore) -> None:
    ensurer = SessionEnsurer(session_store)
    assert await ensurer.ensure("s1", "u1", "Title", "Agent") is True
    assert await ensurer.ensure("s1", "u1", "Title", "Agent") is False


async def test_ensure_lost_race_is_success(session_store: SessionStore, db_path) -> None:
    """Another caller inserts between our existence check and our insert."""
    await session_store.create_if_absent(
        ConversationSession(id="s1", owner_id="u1", title="winner", agent_name="a")
    )
    stale = SessionStore(db_path=db_path)
    stale.exists_by_id = AsyncMock(side_effect=[False, True])

    created = await SessionEnsurer(stale).ensure("s1", "u1", "loser", "a")

    assert created is False
    assert await _count_sessions(db_path, "s1") == 1


async def test_ensure_rejects_session_of_other_owner(session_store: SessionStore) -> None:
    ensurer = SessionEnsurer(session_store)
    await ensurer.ensure("s1", "alice", "Chat", "Agent")

    with pytest.raises(SessionOwnershipError, match="mallory"):
        await ensurer.ensure("s1", "mallory", "Chat", "Agent")

    session = await session_store.get_by_id("s1")
    assert session.owner_id == "alice"
    assert await session_store.exists_by_id("s1", "mallory") is False


async def test_concurrent_ensure_creates_single_row(session_store: SessionStore, db_path) -> None:
    await session_store.exists_by_id("warmup", "u1")
    ensurer_a = SessionEnsurer(session_store)
    ensurer_b = SessionEnsurer(SessionStore(db_path=db_path))

    results = await asyncio.gather(
        ensurer_a.ensure("s1", "u1", "Chat", "Agent", workflow_id="wf"),
        ensurer_b.ensure("s1", "u1", "Chat", "Agent", workflow_id="wf"),
    )

    assert sorted(results) == [False, True]
    assert await _count_sessions(db_path, "s1") == 1
