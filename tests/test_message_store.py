"""Tests for MessageStore — read access to the chat message log."""

import pytest

from branchmem.history.store import MessageStore
from factories import make_message

pytestmark = pytest.mark.usefixtures("_no_turso")


async def test_empty_session(message_store: MessageStore) -> None:
    assert await message_store.list_by_session("s1") == []


async def test_lists_in_insertion_order(message_store: MessageStore, seed_messages) -> None:
    await seed_messages([
        make_message("h1", "human", at=5),
        make_message("a1", "ai", "h1", turn_id="t1", at=2),
        make_message("other", "human", session_id="s2"),
    ])

    messages = await message_store.list_by_session("s1")
    assert [m.id for m in messages] == ["h1", "a1"]
    assert messages[1].parent_id == "h1"
    assert messages[1].turn_id == "t1"
    assert messages[0].parent_id is None
