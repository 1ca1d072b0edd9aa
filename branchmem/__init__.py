"""Branching conversation memory: per-node chat memory scoped to the active conversation path."""
