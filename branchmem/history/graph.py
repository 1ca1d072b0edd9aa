"""Conversation tree over a session's flat message log.

Edits and retries never delete messages: they add a sibling under the same
parent. The conversation the user currently sees is the chain of parents
from one head message back to the root. Everything off that chain belongs
to an abandoned branch and is left out simply because it is unreachable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from branchmem.errors import StructuralCorruptionError
from branchmem.models import ChatMessage

logger = logging.getLogger(__name__)


class MessageGraph:
    """Index of one session's messages by id.

    Nodes are looked up by id in a plain dict; messages never hold
    references to each other.
    """

    def __init__(self, messages: Iterable[ChatMessage]) -> None:
        self._nodes: dict[str, ChatMessage] = {}
        # Insertion position, used to break created_at ties.
        self._order: dict[str, int] = {}
        for position, message in enumerate(messages):
            self._nodes[message.id] = message
            self._order[message.id] = position

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._nodes

    def get(self, message_id: str) -> ChatMessage | None:
        return self._nodes.get(message_id)

    def latest(self) -> ChatMessage | None:
        """The most recently created message; later insertion wins ties."""
        if not self._nodes:
            return None
        return max(
            self._nodes.values(),
            key=lambda m: (m.created_at, self._order[m.id]),
        )

    def find_by_turn(self, turn_id: str) -> ChatMessage | None:
        """The latest AI message carrying *turn_id*, if any."""
        candidates = [m for m in self._nodes.values() if m.is_ai and m.turn_id == turn_id]
        if not candidates:
            return None
        return max(candidates, key=lambda m: (m.created_at, self._order[m.id]))

    def path_to(self, head_id: str | None = None) -> list[ChatMessage]:
        """Messages from the root down to *head_id*, inclusive.

        Without a head the latest message is used. An unknown head yields an
        empty path. Raises ``StructuralCorruptionError`` on a parent cycle.
        """
        if head_id is None:
            head = self.latest()
        else:
            head = self._nodes.get(head_id)
            if head is None:
                logger.debug("Head %s not found among %d messages", head_id, len(self))
        if head is None:
            return []

        path: list[ChatMessage] = []
        seen: set[str] = set()
        current: ChatMessage | None = head
        while current is not None:
            if current.id in seen or len(path) >= len(self._nodes):
                raise StructuralCorruptionError(current.id, current.session_id)
            seen.add(current.id)
            path.append(current)

            if current.parent_id is None:
                break
            parent = self._nodes.get(current.parent_id)
            if parent is None:
                logger.warning(
                    "Message %s points to missing parent %s; treating it as a root",
                    current.id,
                    current.parent_id,
                )
            current = parent

        path.reverse()
        return path


def build_message_history(
    messages: Iterable[ChatMessage],
    head_id: str | None = None,
) -> list[ChatMessage]:
    """Resolve the active conversation path for a flat list of messages."""
    return MessageGraph(messages).path_to(head_id)
