"""Terminal front end: state store, key routing and rendering."""

from agentwizard.ui.keys import Key, KeyRouter
from agentwizard.ui.render import Renderer, render_history_item, render_surface, tool_title
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.terminal import TerminalInput
from agentwizard.ui.types import (
    CANCEL,
    AgentRunState,
    HistoryItem,
    HistoryKind,
    PendingItem,
    SurfaceKind,
    ToolCallRecord,
    ToolCallStatus,
    is_cancel,
)

__all__ = [
    "CANCEL",
    "AgentRunState",
    "HistoryItem",
    "HistoryKind",
    "Key",
    "KeyRouter",
    "PendingItem",
    "Renderer",
    "SurfaceKind",
    "TerminalInput",
    "ToolCallRecord",
    "ToolCallStatus",
    "UIStateStore",
    "is_cancel",
    "render_history_item",
    "render_surface",
    "tool_title",
]
