#!/usr/bin/env python3
"""Inspect the active conversation path and visible memory of a session.

Usage examples:
    # Active path from the latest message
    uv run python scripts/show_memory.py SESSION_ID

    # Memory a node would see for a given turn
    uv run python scripts/show_memory.py SESSION_ID --node NODE_ID --hint TURN_ID

    # Legacy scheme, as a regeneration of a human message
    uv run python scripts/show_memory.py SESSION_ID --node NODE_ID \\
        --scheme parent_message --hint HUMAN_MESSAGE_ID --regenerate
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from branchmem.config import settings
from branchmem.errors import StructuralCorruptionError
from branchmem.history.graph import MessageGraph
from branchmem.history.store import MessageStore
from branchmem.history.turns import correlation_ids_for
from branchmem.memory.history import HistoryMessage
from branchmem.models import CorrelationScheme
from branchmem.service import ConversationMemoryService
from branchmem.workflow import CHAT_MEMORY_NODE_TYPE, NodeDescriptor, WorkflowDescriptor

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def show(args: argparse.Namespace) -> int:
    scheme = CorrelationScheme(args.scheme)
    messages = await MessageStore.get().list_by_session(args.session_id)
    if not messages:
        print(f"Session {args.session_id} has no messages.")
        return 0

    graph = MessageGraph(messages)
    head = args.hint if scheme is CorrelationScheme.PARENT_MESSAGE else None
    if head is None and args.hint:
        turn_message = graph.find_by_turn(args.hint)
        head = turn_message.id if turn_message else None
    try:
        path = graph.path_to(head)
    except StructuralCorruptionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Active path ({len(path)} of {len(graph)} messages):")
    for m in path:
        print(f"  {m.created_at}  {m.role:<6} {m.id}  turn={m.turn_id or '-'}")

    ids = correlation_ids_for(path, scheme, args.hint, regenerating=args.regenerate)
    print(f"Correlation ids ({scheme}): {', '.join(ids) or '(none)'}")

    if not args.node:
        return 0

    service = ConversationMemoryService(scheme=scheme)
    node = NodeDescriptor(id=args.node, name="inspect", type=CHAT_MEMORY_NODE_TYPE)
    handle = service.get_memory_proxy(
        WorkflowDescriptor(id=None, nodes=[node]),
        node,
        args.session_id,
        args.node,
        args.hint,
        owner_id="cli",
        exclude_current=args.regenerate,
    )
    entries = await handle.get_memory()
    print(f"Visible memory for node {args.node} ({len(entries)} entries):")
    for entry in entries:
        message = HistoryMessage.from_entry(entry)
        text = message.content.replace("\n", " ")
        if len(text) > 100:
            text = text[:97] + "..."
        calls = f" [{len(message.tool_calls)} tool call(s)]" if message.tool_calls else ""
        print(f"  {entry.created_at}  {message.role:<6} {text}{calls}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Show a session's active path and memory")
    parser.add_argument("session_id", help="Conversation session id")
    parser.add_argument("--node", help="Memory node id whose memory to show")
    parser.add_argument("--hint", help="Turn id or human message id of the execution")
    parser.add_argument(
        "--scheme",
        choices=[s.value for s in CorrelationScheme],
        default=str(settings.correlation_scheme),
        help="Correlation scheme (default: from settings)",
    )
    parser.add_argument(
        "--regenerate",
        action="store_true",
        help="Treat the hint as a regenerated execution",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(show(args)))


if __name__ == "__main__":
    main()
