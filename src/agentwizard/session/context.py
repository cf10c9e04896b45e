"""Per-iteration session context.

One SessionContext is created for every pass of the session loop. It holds
the shared flags the classifier, interrupt controller and loop coordinate
through, plus the iteration's tool call registry. Only the session token
survives into the next iteration.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from agentwizard.logging import get_logger
from agentwizard.session.registry import ToolCallRegistry

log = get_logger("session.context")


@dataclass
class SessionContext:
    """Flags and bookkeeping scoped to one loop iteration.

    Attributes:
        registry: Open tool calls for this iteration
        session_id: Resume token; first capture wins
        is_interrupting: An interrupt was requested during this stream
        waiting_for_user_input: The loop must ask the human before resuming
        has_completed_work: The agent invoked the completion tool
        interrupt_fired: Guards the interrupt controller against repeats
        buffered_message: Text the human submitted while the agent ran
        assistant_texts: Every assistant text seen, shown or not
    """

    registry: ToolCallRegistry
    session_id: str | None = None
    is_interrupting: bool = False
    waiting_for_user_input: bool = False
    has_completed_work: bool = False
    interrupt_fired: bool = False
    buffered_message: str | None = None
    assistant_texts: list[str] = field(default_factory=list)

    def capture_session(self, session_id: str | None) -> bool:
        """Record the session token if none is known yet."""
        if not session_id or self.session_id is not None:
            return False
        self.session_id = session_id
        log.info("Captured session_id: %s", session_id)
        return True
