"""Conversation session records."""

from branchmem.sessions.store import SessionEnsurer, SessionStore

__all__ = ["SessionEnsurer", "SessionStore"]
