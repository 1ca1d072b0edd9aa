"""Correlation ids derived from an active conversation path."""

from __future__ import annotations

from collections.abc import Iterable

from branchmem.models import ChatMessage, CorrelationScheme


def _unique(values: Iterable[str | None]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value is None or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def extract_turn_ids(path: Iterable[ChatMessage]) -> list[str]:
    """Turn ids of the AI messages on *path*, in path order."""
    return _unique(m.turn_id for m in path if m.is_ai)


def extract_human_message_ids(path: Iterable[ChatMessage]) -> list[str]:
    """Ids of the human messages on *path*, in path order."""
    return _unique(m.id for m in path if m.is_human)


def scope_parent_message_ids(
    human_message_ids: list[str],
    anchor_id: str,
    *,
    regenerating: bool,
) -> list[str]:
    """Apply the current execution's anchor to a list of human message ids.

    A regeneration must not see the memory written by the run it replaces,
    so the anchor is removed. Otherwise the anchor is always part of the
    filter, even when it is not (yet) on the path.
    """
    ids = list(human_message_ids)
    if regenerating:
        return [i for i in ids if i != anchor_id]
    if anchor_id not in ids:
        ids.append(anchor_id)
    return ids


def correlation_ids_for(
    path: list[ChatMessage],
    scheme: CorrelationScheme,
    current_key: str | None = None,
    *,
    regenerating: bool = False,
) -> list[str]:
    """Ids memory must be filtered by for *path* under *scheme*.

    *current_key* is the key the running execution writes under (its turn
    id, or the human message it answers).
    """
    if scheme is CorrelationScheme.PARENT_MESSAGE:
        ids = extract_human_message_ids(path)
        if current_key is None:
            return ids
        return scope_parent_message_ids(ids, current_key, regenerating=regenerating)

    ids = extract_turn_ids(path)
    if current_key is not None and current_key not in ids:
        ids.append(current_key)
    return ids
