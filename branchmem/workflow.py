"""Host workflow descriptors seen by the memory layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CHAT_MEMORY_NODE_TYPE = "langchain.memoryChatHub"
CHAT_TRIGGER_NODE_TYPE = "langchain.chatTrigger"

# Only chat memory nodes may open a memory handle.
ALLOWED_MEMORY_NODE_TYPES: frozenset[str] = frozenset({CHAT_MEMORY_NODE_TYPE})


def is_allowed_node(node_type: str) -> bool:
    return node_type in ALLOWED_MEMORY_NODE_TYPES


@dataclass
class NodeDescriptor:
    """A node instance inside a workflow.

    Attributes:
        id: Stable node id; memory nodes use it as their memory partition key.
        name: Display name.
        type: Registered node type, e.g. ``"langchain.memoryChatHub"``.
        parameters: The node's configured parameters.
    """

    id: str
    name: str
    type: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowDescriptor:
    id: str | None
    name: str = ""
    nodes: list[NodeDescriptor] = field(default_factory=list)

    def find_node(self, node_type: str) -> NodeDescriptor | None:
        """First node of *node_type*, if the workflow has one."""
        return next((n for n in self.nodes if n.type == node_type), None)


def extract_agent_name(workflow: WorkflowDescriptor, fallback: str) -> str:
    """Agent name for sessions opened by *workflow*.

    The chat trigger's ``agentName`` parameter wins, then the workflow name,
    then *fallback*.
    """
    trigger = workflow.find_node(CHAT_TRIGGER_NODE_TYPE)
    if trigger is not None:
        agent_name = trigger.parameters.get("agentName")
        if isinstance(agent_name, str) and agent_name.strip():
            return agent_name

    if workflow.name and workflow.name.strip():
        return workflow.name

    return fallback
