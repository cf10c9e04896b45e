"""Core protocols for the session layer.

These protocols define the contract between the session loop and:
- the agent engine that produces the event stream
- collaborators notified about human decisions
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, Union, runtime_checkable

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class LoopState(Enum):
    """States of the session loop."""

    STARTING = "starting"
    STREAMING = "streaming"
    COMPLETED = "completed"  # Terminal
    NEEDS_INPUT = "needs_input"  # Turn ended without a completion signal
    INTERRUPTED = "interrupted"  # Human interrupted the turn
    TERMINATED = "terminated"  # Terminal, human declined to continue


# -----------------------------------------------------------------------------
# Approval decisions
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Allow:
    """Let the tool run, possibly with rewritten input."""

    updated_input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Deny:
    """Refuse the tool call. The message is relayed to the agent."""

    message: str


ApprovalDecision = Union[Allow, Deny]

ApprovalCallback = Callable[[str, dict[str, Any]], Awaitable[ApprovalDecision]]


# -----------------------------------------------------------------------------
# Engine contract
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """An in-process tool the engine should expose to the agent.

    Attributes:
        name: Tool name as the agent sees it
        description: Usage guidance shown to the agent
        handler: Coroutine run with the tool arguments, returning reply text
    """

    name: str
    description: str
    handler: Callable[[dict[str, Any]], Awaitable[str]]


@runtime_checkable
class EngineStream(Protocol):
    """One turn's worth of raw engine events.

    Engines may also provide ``async interrupt()`` and ``async aclose()``;
    both are looked up with getattr and treated as optional.
    """

    def __aiter__(self) -> AsyncIterator[Any]: ...


@runtime_checkable
class AgentEngine(Protocol):
    """Opens event streams against an external agent."""

    def open(
        self,
        prompt: str,
        *,
        resume_token: str | None,
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
    ) -> EngineStream: ...


class PlanListener(Protocol):
    """Notified when the human accepts a plan proposed by the agent."""

    def plan_accepted(self, plan: str) -> None: ...
