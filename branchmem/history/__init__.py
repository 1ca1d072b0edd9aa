"""Conversation tree — message log access, active path resolution, correlation ids."""

from branchmem.history.graph import MessageGraph, build_message_history
from branchmem.history.store import MessageStore
from branchmem.history.turns import (
    correlation_ids_for,
    extract_human_message_ids,
    extract_turn_ids,
    scope_parent_message_ids,
)

__all__ = [
    "MessageGraph",
    "MessageStore",
    "build_message_history",
    "correlation_ids_for",
    "extract_human_message_ids",
    "extract_turn_ids",
    "scope_parent_message_ids",
]
