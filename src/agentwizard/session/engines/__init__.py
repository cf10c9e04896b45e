"""Agent engine implementations."""

from __future__ import annotations

from agentwizard.session.engines.claude import ClaudeAgentEngine
from agentwizard.session.engines.replay import ReplayEngine, read_transcript, split_turns

__all__ = [
    "ClaudeAgentEngine",
    "ReplayEngine",
    "read_transcript",
    "split_turns",
]
