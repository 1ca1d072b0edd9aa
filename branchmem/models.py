"""Data models for chat messages, memory entries and conversation sessions."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


class MessageRole(StrEnum):
    HUMAN = "human"
    AI = "ai"


class MemoryRole(StrEnum):
    HUMAN = "human"
    AI = "ai"
    TOOL = "tool"
    SYSTEM = "system"


class CorrelationScheme(StrEnum):
    """Which key ties memory entries to the conversation tree.

    ``turn``: entries carry the turn id minted before the execution; the
    active path contributes the turn ids of its AI messages.
    ``parent_message``: entries carry the id of the human message that
    started the execution; the active path contributes its human message ids.
    """

    TURN = "turn"
    PARENT_MESSAGE = "parent_message"


class ChatMessage(BaseModel):
    """One node of a session's conversation tree.

    Rows are written by the chat layer; this package only reads them.
    ``role`` is kept as a plain string since the chat layer may store roles
    the resolver does not care about.
    """

    id: str
    session_id: str
    parent_id: str | None = None
    role: str
    turn_id: str | None = None
    created_at: str = Field(default_factory=utc_now)

    @property
    def is_human(self) -> bool:
        return self.role == MessageRole.HUMAN

    @property
    def is_ai(self) -> bool:
        return self.role == MessageRole.AI

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``chat_messages`` column order."""
        return (
            self.id,
            self.session_id,
            self.parent_id,
            self.role,
            self.turn_id,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> ChatMessage:
        return cls(
            id=row[0],
            session_id=row[1],
            parent_id=row[2],
            role=row[3],
            turn_id=row[4],
            created_at=row[5],
        )


class MemoryEntry(BaseModel):
    """A piece of stored context owned by one memory node."""

    id: str = Field(default_factory=new_id)
    session_id: str
    memory_node_id: str
    turn_id: str | None = None
    parent_message_id: str | None = None
    role: MemoryRole
    content: str
    name: str | None = None
    created_at: str = Field(default_factory=utc_now)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``conversation_memory`` column order."""
        return (
            self.id,
            self.session_id,
            self.memory_node_id,
            self.turn_id,
            self.parent_message_id,
            str(self.role),
            self.content,
            self.name,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> MemoryEntry:
        return cls(
            id=row[0],
            session_id=row[1],
            memory_node_id=row[2],
            turn_id=row[3],
            parent_message_id=row[4],
            role=MemoryRole(row[5]),
            content=row[6],
            name=row[7],
            created_at=row[8],
        )

    def to_public(self) -> dict[str, Any]:
        """The shape handed to memory consumers."""
        return {
            "id": self.id,
            "role": str(self.role),
            "content": self.content,
            "name": self.name,
            "created_at": self.created_at,
        }


class ConversationSession(BaseModel):
    """A chat session record.

    Provider metadata is filled with fixed values: sessions created here
    always belong to a workflow rather than to a direct model conversation.
    """

    id: str
    owner_id: str
    title: str
    last_message_at: str = Field(default_factory=utc_now)
    workflow_id: str | None = None
    agent_name: str
    provider: str = "workflow"
    credential_id: str | None = None
    model: str | None = None
    agent_id: str | None = None
    tools: list[dict[str, Any]] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``conversation_sessions`` column order."""
        return (
            self.id,
            self.owner_id,
            self.title,
            self.last_message_at,
            self.workflow_id,
            self.agent_name,
            self.provider,
            self.credential_id,
            self.model,
            self.agent_id,
            json.dumps(self.tools),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> ConversationSession:
        return cls(
            id=row[0],
            owner_id=row[1],
            title=row[2],
            last_message_at=row[3],
            workflow_id=row[4],
            agent_name=row[5],
            provider=row[6],
            credential_id=row[7],
            model=row[8],
            agent_id=row[9],
            tools=json.loads(row[10]) if row[10] else [],
            created_at=row[11],
        )
