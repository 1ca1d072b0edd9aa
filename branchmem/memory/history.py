"""Chat history view over a memory handle, with a sliding window."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from branchmem.memory.codec import ToolCall, ai_payload, encode_ai_content, tool_payload
from branchmem.models import MemoryEntry, MemoryRole

if TYPE_CHECKING:
    from collections.abc import Iterable

    from branchmem.service import MemoryHandle

logger = logging.getLogger(__name__)


@dataclass
class HistoryMessage:
    """A single decoded conversation message."""

    role: MemoryRole
    content: str
    name: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None

    @classmethod
    def from_entry(cls, entry: MemoryEntry) -> HistoryMessage:
        """Decode a stored entry; malformed AI/tool content degrades to plain text."""
        if entry.role is MemoryRole.AI:
            payload = ai_payload(entry.content)
            return cls(
                role=MemoryRole.AI,
                content=payload.content,
                name=entry.name,
                tool_calls=payload.tool_calls,
            )
        if entry.role is MemoryRole.TOOL:
            payload = tool_payload(entry.content)
            return cls(
                role=MemoryRole.TOOL,
                content=json.dumps(payload.tool_output, default=str),
                name=payload.tool_name,
                tool_call_id=payload.tool_call_id,
            )
        if entry.role is MemoryRole.HUMAN:
            return cls(role=MemoryRole.HUMAN, content=entry.content, name=entry.name)
        return cls(role=MemoryRole.SYSTEM, content=entry.content)


class ConversationHistory:
    """Message history of one memory node as seen by a single execution.

    ``window_size`` counts human/AI exchanges, not messages.
    """

    def __init__(self, handle: MemoryHandle, window_size: int | None = None) -> None:
        self._handle = handle
        self.window_size = window_size

    async def get_messages(self) -> list[HistoryMessage]:
        entries = await self._handle.get_memory()
        return [HistoryMessage.from_entry(e) for e in entries]

    async def load_window(self) -> list[HistoryMessage]:
        """The last ``window_size`` exchanges (all messages when unset)."""
        messages = await self.get_messages()
        if self.window_size is None:
            return messages
        limit = self.window_size * 2
        return messages[-limit:] if len(messages) > limit else messages

    async def add_message(self, message: HistoryMessage) -> None:
        if message.role is MemoryRole.HUMAN:
            await self._handle.add_human_message(message.content)
        elif message.role is MemoryRole.AI:
            await self._handle.add_ai_message(
                encode_ai_content(message.content, message.tool_calls)
            )
        elif message.role is MemoryRole.TOOL:
            await self._handle.add_tool_message(
                message.tool_call_id or "unknown",
                message.name or "unknown",
                {},  # the input lives on the AI message's tool call
                message.content,
            )
        else:
            # System prompts are rebuilt per execution, never stored.
            logger.debug("Skipping %s message", message.role)

    async def add_messages(self, messages: Iterable[HistoryMessage]) -> None:
        for message in messages:
            await self.add_message(message)

    async def add_user_message(self, text: str) -> None:
        await self.add_message(HistoryMessage(role=MemoryRole.HUMAN, content=text))

    async def add_ai_message(self, text: str, tool_calls: list[ToolCall] | None = None) -> None:
        await self.add_message(
            HistoryMessage(role=MemoryRole.AI, content=text, tool_calls=tool_calls or [])
        )

    async def save_context(self, input_text: str, output_text: str) -> None:
        """Record one completed exchange."""
        await self.add_user_message(input_text)
        await self.add_ai_message(output_text)

    async def clear(self) -> None:
        await self._handle.clear_memory()
