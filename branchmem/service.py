"""ConversationMemoryService — per-execution memory handles for chat memory nodes.

A memory node asks for a handle bound to (session, memory node, owner) and
the correlation key of the running execution. Reads resolve the active
conversation path from the chat message log and return only the memory
written by the turns on that path, so edits and retries in the chat never
leak context from abandoned branches. Writes are tagged with the key of the
running execution.

Two correlation schemes are supported (see ``CorrelationScheme``); one is
chosen per deployment through ``settings.correlation_scheme``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from branchmem.config import settings
from branchmem.errors import MissingOwnerError, NodeNotAllowedError
from branchmem.history.graph import MessageGraph
from branchmem.history.store import MessageStore
from branchmem.history.turns import correlation_ids_for, extract_human_message_ids
from branchmem.memory.codec import encode_tool_content
from branchmem.memory.store import MemoryStore
from branchmem.models import CorrelationScheme, MemoryEntry, MemoryRole
from branchmem.sessions.store import SessionEnsurer, SessionStore
from branchmem.workflow import (
    NodeDescriptor,
    WorkflowDescriptor,
    extract_agent_name,
    is_allowed_node,
)

logger = logging.getLogger(__name__)

HUMAN_NAME = "User"
AI_NAME = "AI"


@dataclass
class TurnContext:
    """Request-scoped state of one memory handle.

    Attributes:
        session_id: Conversation the memory belongs to.
        memory_node_id: Node whose memory partition is read and written.
        owner_id: User the execution runs for.
        scheme: Correlation scheme in force.
        head_hint: Turn id (turn scheme) or human message id
            (parent-message scheme) supplied by the host, if any.
        regenerating: The execution replaces an earlier run of the same
            human message; its own anchor is kept out of the memory filter.
        workflow_id: Owning workflow, recorded on created sessions.
        agent_name: Default session title.
    """

    session_id: str
    memory_node_id: str
    owner_id: str
    scheme: CorrelationScheme
    head_hint: str | None = None
    regenerating: bool = False
    workflow_id: str | None = None
    agent_name: str = ""
    _key: str | None = field(default=None, init=False, repr=False)
    _key_resolved: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.scheme is CorrelationScheme.TURN or self.head_hint is not None:
            self.resolve_key(self.head_hint)

    @property
    def key_resolved(self) -> bool:
        return self._key_resolved

    @property
    def key(self) -> str | None:
        return self._key

    def resolve_key(self, key: str | None) -> None:
        self._key = key
        self._key_resolved = True


class MemoryHandle:
    """Memory operations bound to one execution's ``TurnContext``."""

    def __init__(
        self,
        context: TurnContext,
        memory_store: MemoryStore,
        message_store: MessageStore,
        session_ensurer: SessionEnsurer,
    ) -> None:
        self.context = context
        self._memory = memory_store
        self._messages = message_store
        self._sessions = session_ensurer

    def get_owner_id(self) -> str:
        return self.context.owner_id

    # -- Correlation key -------------------------------------------------------

    async def resolve_key(self) -> str | None:
        """The key this execution's entries are written under.

        Without a hint in the parent-message scheme, the last human message
        of the latest conversation path is used. ``None`` means the execution
        runs outside the chat (manual or out-of-band).
        """
        ctx = self.context
        if ctx.key_resolved:
            return ctx.key
        messages = await self._messages.list_by_session(ctx.session_id)
        return self._resolve_from(MessageGraph(messages))

    def _resolve_from(self, graph: MessageGraph) -> str | None:
        ctx = self.context
        if ctx.key_resolved:
            return ctx.key

        human_ids = extract_human_message_ids(graph.path_to())
        key = human_ids[-1] if human_ids else None
        ctx.resolve_key(key)
        if key is None:
            logger.debug(
                "No human messages in session %s; node %s starts fresh",
                ctx.session_id,
                ctx.memory_node_id,
            )
        else:
            logger.debug(
                "Resolved anchor %s from latest human message (session %s, node %s)",
                key,
                ctx.session_id,
                ctx.memory_node_id,
            )
        return key

    def _head_for(self, graph: MessageGraph, key: str | None) -> str | None:
        if key is None:
            return None
        if self.context.scheme is CorrelationScheme.PARENT_MESSAGE:
            return key
        # The host creates the AI message of a turn before running it; when
        # it exists, the path must end there rather than at a newer branch.
        message = graph.find_by_turn(key)
        if message is not None:
            return message.id
        if self.context.regenerating:
            # The reply being replaced is still the newest message.
            latest = graph.latest()
            if latest is not None and latest.is_ai and latest.parent_id in graph:
                return latest.parent_id
        return None

    # -- Read ------------------------------------------------------------------

    async def get_memory(self) -> list[MemoryEntry]:
        """Memory entries visible to this execution, oldest first."""
        ctx = self.context
        messages = await self._messages.list_by_session(ctx.session_id)
        graph = MessageGraph(messages)
        key = self._resolve_from(graph)
        if not messages:
            return []

        path = graph.path_to(self._head_for(graph, key))
        ids = correlation_ids_for(path, ctx.scheme, key, regenerating=ctx.regenerating)
        if ctx.regenerating:
            logger.debug(
                "Excluding current key %s from memory lookup (regeneration): %s",
                key,
                ids,
            )

        if not ids:
            if key is None:
                return await self._memory.list_by_session_and_node(
                    ctx.session_id, ctx.memory_node_id
                )
            return []

        return await self._memory.list_by_correlation_ids(
            ctx.session_id, ctx.memory_node_id, ids, ctx.scheme
        )

    # -- Write -----------------------------------------------------------------

    async def _append(self, role: MemoryRole, content: str, name: str) -> MemoryEntry:
        ctx = self.context
        key = await self.resolve_key()
        entry = MemoryEntry(
            session_id=ctx.session_id,
            memory_node_id=ctx.memory_node_id,
            turn_id=key if ctx.scheme is CorrelationScheme.TURN else None,
            parent_message_id=key if ctx.scheme is CorrelationScheme.PARENT_MESSAGE else None,
            role=role,
            content=content,
            name=name,
        )
        await self._memory.append(entry)
        logger.debug(
            "Added %s message to memory (session %s, node %s, id %s)",
            role,
            ctx.session_id,
            ctx.memory_node_id,
            entry.id,
        )
        return entry

    async def add_human_message(self, content: str) -> None:
        await self._append(MemoryRole.HUMAN, content, HUMAN_NAME)

    async def add_ai_message(self, content: str) -> None:
        await self._append(MemoryRole.AI, content, AI_NAME)

    async def add_tool_message(
        self,
        tool_call_id: str,
        tool_name: str,
        tool_input: Any,
        tool_output: Any,
    ) -> None:
        content = encode_tool_content(tool_call_id, tool_name, tool_input, tool_output)
        await self._append(MemoryRole.TOOL, content, tool_name)

    async def clear_memory(self) -> None:
        ctx = self.context
        await self._memory.clear(ctx.session_id, ctx.memory_node_id)
        logger.debug("Cleared memory for node %s in session %s", ctx.memory_node_id, ctx.session_id)

    # -- Session ---------------------------------------------------------------

    async def ensure_session(self, title: str | None = None) -> None:
        """Create the chat session if it does not exist yet."""
        ctx = self.context
        await self._sessions.ensure(
            session_id=ctx.session_id,
            owner_id=ctx.owner_id,
            title=title or ctx.agent_name,
            agent_name=ctx.agent_name,
            workflow_id=ctx.workflow_id,
        )


class ConversationMemoryService:
    """Hands out memory handles to chat memory nodes.

    Singleton accessed via ``ConversationMemoryService.get()``. Tests build
    their own instance around temp-path stores.
    """

    _instance: ConversationMemoryService | None = None

    def __init__(
        self,
        memory_store: MemoryStore | None = None,
        message_store: MessageStore | None = None,
        session_store: SessionStore | None = None,
        scheme: CorrelationScheme | None = None,
    ) -> None:
        self._memory = memory_store or MemoryStore.get()
        self._messages = message_store or MessageStore.get()
        self._ensurer = SessionEnsurer(session_store or SessionStore.get())
        self.scheme = CorrelationScheme(scheme or settings.correlation_scheme)

    @classmethod
    def get(cls) -> ConversationMemoryService:
        """Return the shared service instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def get_memory_proxy(
        self,
        workflow: WorkflowDescriptor,
        node: NodeDescriptor,
        session_id: str,
        memory_node_id: str,
        head_hint: str | None = None,
        owner_id: str | None = None,
        *,
        exclude_current: bool = False,
    ) -> MemoryHandle:
        """Validate the caller and bind a handle to this execution.

        Raises ``NodeNotAllowedError`` for nodes outside the allow-list and
        ``MissingOwnerError`` when the execution has no user context.
        """
        if not is_allowed_node(node.type):
            raise NodeNotAllowedError(node.type)
        if not owner_id:
            raise MissingOwnerError

        context = TurnContext(
            session_id=session_id,
            memory_node_id=memory_node_id,
            owner_id=owner_id,
            scheme=self.scheme,
            head_hint=head_hint or None,
            regenerating=exclude_current,
            workflow_id=workflow.id,
            agent_name=extract_agent_name(workflow, settings.default_agent_name),
        )
        return MemoryHandle(context, self._memory, self._messages, self._ensurer)
