"""Tests for MemoryStore — libsql persistence of memory entries."""

import pytest

from branchmem.memory.store import MemoryStore
from branchmem.models import CorrelationScheme, MemoryEntry, MemoryRole

pytestmark = pytest.mark.usefixtures("_no_turso")


def _entry(
    entry_id: str,
    *,
    node: str = "n1",
    turn: str | None = "t1",
    parent: str | None = None,
    role: MemoryRole = MemoryRole.HUMAN,
    at: int = 0,
    session: str = "s1",
) -> MemoryEntry:
    return MemoryEntry(
        id=entry_id,
        session_id=session,
        memory_node_id=node,
        turn_id=turn,
        parent_message_id=parent,
        role=role,
        content=f"content {entry_id}",
        name="User",
        created_at=f"2025-01-01T00:00:{at:02d}+00:00",
    )


# -- append / list_by_session_and_node -----------------------------------------


async def test_append_and_list(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", at=1))
    await memory_store.append(_entry("e2", role=MemoryRole.AI, at=2))

    entries = await memory_store.list_by_session_and_node("s1", "n1")
    assert [e.id for e in entries] == ["e1", "e2"]
    assert entries[1].role is MemoryRole.AI
    assert entries[0].content == "content e1"


async def test_list_orders_by_creation_time(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("late", at=9))
    await memory_store.append(_entry("early", at=1))

    entries = await memory_store.list_by_session_and_node("s1", "n1")
    assert [e.id for e in entries] == ["early", "late"]


async def test_same_timestamp_keeps_insertion_order(memory_store: MemoryStore) -> None:
    for entry_id in ("a", "b", "c"):
        await memory_store.append(_entry(entry_id, at=5))

    entries = await memory_store.list_by_session_and_node("s1", "n1")
    assert [e.id for e in entries] == ["a", "b", "c"]


async def test_nodes_are_isolated(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", node="n1"))
    await memory_store.append(_entry("e2", node="n2"))
    await memory_store.append(_entry("e3", node="n1", session="s2"))

    entries = await memory_store.list_by_session_and_node("s1", "n1")
    assert [e.id for e in entries] == ["e1"]


async def test_duplicate_id_raises(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("dup"))
    with pytest.raises(Exception):
        await memory_store.append(_entry("dup"))

    entries = await memory_store.list_by_session_and_node("s1", "n1")
    assert len(entries) == 1


# -- list_by_correlation_ids ---------------------------------------------------


async def test_filter_by_turn_ids(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", turn="t1", at=1))
    await memory_store.append(_entry("e2", turn="t2", at=2))
    await memory_store.append(_entry("e3", turn="t3", at=3))
    await memory_store.append(_entry("e4", turn=None, at=4))

    entries = await memory_store.list_by_correlation_ids("s1", "n1", ["t3", "t1"])
    assert [e.id for e in entries] == ["e1", "e3"]


async def test_filter_by_parent_message_ids(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", turn=None, parent="h1", at=1))
    await memory_store.append(_entry("e2", turn=None, parent="h2", at=2))

    entries = await memory_store.list_by_correlation_ids(
        "s1", "n1", ["h2"], CorrelationScheme.PARENT_MESSAGE
    )
    assert [e.id for e in entries] == ["e2"]


async def test_filter_respects_node(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", node="n1"))
    await memory_store.append(_entry("e2", node="n2"))

    entries = await memory_store.list_by_correlation_ids("s1", "n2", ["t1"])
    assert [e.id for e in entries] == ["e2"]


async def test_empty_ids_returns_empty(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1"))
    assert await memory_store.list_by_correlation_ids("s1", "n1", []) == []


# -- clear ---------------------------------------------------------------------


async def test_clear_removes_only_that_node(memory_store: MemoryStore) -> None:
    await memory_store.append(_entry("e1", node="n1"))
    await memory_store.append(_entry("e2", node="n1"))
    await memory_store.append(_entry("e3", node="n2"))

    deleted = await memory_store.clear("s1", "n1")
    assert deleted == 2
    assert await memory_store.list_by_session_and_node("s1", "n1") == []
    assert len(await memory_store.list_by_session_and_node("s1", "n2")) == 1


async def test_clear_is_idempotent(memory_store: MemoryStore) -> None:
    assert await memory_store.clear("s1", "n1") == 0
    assert await memory_store.clear("s1", "n1") == 0


# -- singleton -----------------------------------------------------------------


def test_get_returns_shared_instance() -> None:
    MemoryStore._reset()
    try:
        assert MemoryStore.get() is MemoryStore.get()
    finally:
        MemoryStore._reset()
