"""ChatMemoryNode — the memory component a chat agent workflow plugs in.

Each node instance keeps isolated memory (its node id is the memory
partition key) and supports the chat's edits and retries through the
correlation key the host injects before the execution starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from branchmem.config import settings
from branchmem.errors import MemoryModuleUnavailableError
from branchmem.memory.history import ConversationHistory

if TYPE_CHECKING:
    from branchmem.helpers import MemoryProxyFactory
    from branchmem.workflow import NodeDescriptor

logger = logging.getLogger(__name__)


@dataclass
class ChatMemoryOptions:
    """Parameters read from the node configuration.

    Attributes:
        session_id: Conversation the memory belongs to.
        context_window_length: Exchanges handed to the model.
        turn_id: Correlation key injected by the host; empty for manual runs.
        regenerating: The execution re-runs an existing human message.
        auto_create_session: Create the chat session when it is missing.
    """

    session_id: str
    context_window_length: int = field(default_factory=lambda: settings.context_window_length)
    turn_id: str = ""
    regenerating: bool = False
    auto_create_session: bool = True

    @classmethod
    def from_parameters(cls, session_id: str, parameters: dict) -> ChatMemoryOptions:
        options = parameters.get("options") or {}
        return cls(
            session_id=session_id,
            context_window_length=int(
                parameters.get("contextWindowLength") or settings.context_window_length
            ),
            turn_id=str(parameters.get("turnId") or ""),
            regenerating=bool(parameters.get("regenerating", False)),
            auto_create_session=bool(
                options.get("autoCreateSession", settings.auto_create_session)
            ),
        )


class ChatMemoryNode:
    """Supplies a windowed ``ConversationHistory`` to the agent it is attached to."""

    def __init__(self, node: NodeDescriptor) -> None:
        self.node = node

    async def supply(
        self,
        get_memory_proxy: MemoryProxyFactory | None,
        options: ChatMemoryOptions,
    ) -> ConversationHistory:
        if get_memory_proxy is None:
            raise MemoryModuleUnavailableError

        handle = get_memory_proxy(
            options.session_id,
            self.node.id,
            options.turn_id or None,
            options.regenerating,
        )

        if options.auto_create_session:
            await handle.ensure_session()

        logger.debug(
            "Supplying memory for node %s (session %s, window %d)",
            self.node.id,
            options.session_id,
            options.context_window_length,
        )
        return ConversationHistory(handle, window_size=options.context_window_length)
