"""Session orchestration: loop, registry, classifier, interrupts and approvals."""

from agentwizard.session.approval import ApprovalGateway, ShellAllowList, compute_diff, match_command
from agentwizard.session.classifier import MessageClassifier
from agentwizard.session.context import SessionContext
from agentwizard.session.events import decode_events
from agentwizard.session.interrupt import InterruptController
from agentwizard.session.loop import SessionLoop, SessionResult
from agentwizard.session.protocols import (
    AgentEngine,
    Allow,
    ApprovalDecision,
    Deny,
    EngineStream,
    LoopState,
    PlanListener,
    ToolSpec,
)
from agentwizard.session.registry import ToolCallRegistry, summarize_result

__all__ = [
    "AgentEngine",
    "Allow",
    "ApprovalDecision",
    "ApprovalGateway",
    "Deny",
    "EngineStream",
    "InterruptController",
    "LoopState",
    "MessageClassifier",
    "PlanListener",
    "SessionContext",
    "SessionLoop",
    "SessionResult",
    "ShellAllowList",
    "ToolCallRegistry",
    "ToolSpec",
    "compute_diff",
    "decode_events",
    "match_command",
    "summarize_result",
]
