"""Per-node memory — persistence, payload encoding, and the chat history view."""

from branchmem.memory.history import ConversationHistory, HistoryMessage
from branchmem.memory.store import MemoryStore

__all__ = [
    "ConversationHistory",
    "HistoryMessage",
    "MemoryStore",
]
