"""Exceptions raised by the conversation memory layer."""


class ConversationMemoryError(Exception):
    """Base class for conversation memory failures."""


class NodeNotAllowedError(ConversationMemoryError):
    """A node outside the memory allow-list asked for a memory handle."""

    def __init__(self, node_type: str) -> None:
        self.node_type = node_type
        super().__init__(
            f"Conversation memory is only available to chat memory nodes (got {node_type!r})"
        )


class StructuralCorruptionError(ConversationMemoryError):
    """The parent chain of a session's messages contains a cycle."""

    def __init__(self, message_id: str, session_id: str | None = None) -> None:
        self.message_id = message_id
        self.session_id = session_id
        super().__init__(
            f"Cycle detected in message parent chain at {message_id!r}"
            + (f" (session {session_id!r})" if session_id else "")
        )


class MissingOwnerError(ConversationMemoryError):
    """No owning user could be resolved for the execution."""

    def __init__(self) -> None:
        super().__init__(
            "An owner ID is required for conversation memory. "
            "For manual executions, ensure the user context is available."
        )


class MemoryModuleUnavailableError(ConversationMemoryError):
    """The host runtime did not provide a memory proxy."""

    def __init__(self) -> None:
        super().__init__(
            "The conversation memory module is not available. "
            "Ensure it is enabled (MEMORY_ENABLED=true)."
        )


class SessionOwnershipError(ConversationMemoryError):
    """The session id is already taken by a different owner."""

    def __init__(self, session_id: str, owner_id: str) -> None:
        self.session_id = session_id
        self.owner_id = owner_id
        super().__init__(f"Session {session_id!r} does not belong to owner {owner_id!r}")
