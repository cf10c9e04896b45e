"""The completion tool.

A zero-argument tool the agent calls once its work is done. Invoking it is
the only signal that ends a session as completed; the classifier intercepts
the request before it reaches the tool call registry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentwizard.config.schema import COMPLETION_SERVER_NAME, COMPLETION_TOOL_NAME
from agentwizard.logging import get_logger
from agentwizard.session.protocols import ToolSpec

if TYPE_CHECKING:
    from agentwizard.session.context import SessionContext

log = get_logger("session.completion")

COMPLETION_ACK = "Integration completion acknowledged. Transitioning to testing phase..."

COMPLETION_DESCRIPTION = (
    "Signals that the requested work is complete. Call this tool ONLY after you have "
    "made every change the task requires and verified the project still builds and "
    "runs without errors."
)


def is_completion_tool(tool_name: str) -> bool:
    """Match the bare name and the MCP-qualified form."""
    return tool_name in (
        COMPLETION_TOOL_NAME,
        f"mcp__{COMPLETION_SERVER_NAME}__{COMPLETION_TOOL_NAME}",
    )


def completion_tool(context: SessionContext) -> ToolSpec:
    """Build the completion tool bound to one iteration's context."""

    async def handler(_args: dict[str, Any]) -> str:
        log.info("Agent called %s, work is complete", COMPLETION_TOOL_NAME)
        context.has_completed_work = True
        return COMPLETION_ACK

    return ToolSpec(name=COMPLETION_TOOL_NAME, description=COMPLETION_DESCRIPTION, handler=handler)
