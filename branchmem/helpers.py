"""Acquisition boundary between the host runtime and the memory service."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from branchmem.config import settings

if TYPE_CHECKING:
    from branchmem.service import ConversationMemoryService, MemoryHandle
    from branchmem.workflow import NodeDescriptor, WorkflowDescriptor

# (session_id, memory_node_id, head_hint, exclude_current) -> handle
MemoryProxyFactory = Callable[[str, str, "str | None", bool], "MemoryHandle"]


def default_provider() -> ConversationMemoryService | None:
    """The shared memory service, or None when the module is disabled."""
    if not settings.memory_enabled:
        return None
    from branchmem.service import ConversationMemoryService

    return ConversationMemoryService.get()


def make_memory_proxy_factory(
    provider: ConversationMemoryService | None,
    workflow: WorkflowDescriptor,
    node: NodeDescriptor,
    owner_id: str | None,
) -> MemoryProxyFactory | None:
    """Bind *workflow*, *node* and *owner_id* of one execution to *provider*.

    Returns None when no provider is available; callers report that as a
    configuration problem.
    """
    if provider is None:
        return None

    def get_memory_proxy(
        session_id: str,
        memory_node_id: str,
        head_hint: str | None = None,
        exclude_current: bool = False,
    ) -> MemoryHandle:
        return provider.get_memory_proxy(
            workflow,
            node,
            session_id,
            memory_node_id,
            head_hint,
            owner_id,
            exclude_current=exclude_current,
        )

    return get_memory_proxy
