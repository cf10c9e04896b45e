"""Data types for the terminal front end.

History items are frozen once appended. Pending surfaces are a closed set of
frozen dataclasses, each tagged with a SurfaceKind; the store pairs the live
surface with a one-shot future that its resolution completes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union


class HistoryKind(str, Enum):
    """Kinds of frozen history entries."""

    STEP = "step"
    NOTE = "note"
    RESPONSE = "response"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    AGENT_MESSAGE = "agent-message"
    USER_MESSAGE = "user-message"
    TOOL_CALL = "tool-call"
    SELECT_RESULT = "select-result"
    TEXT_RESULT = "text-result"
    CLARIFYING_QUESTIONS_RESULT = "clarifying-questions-result"
    DECLINED_QUESTIONS = "declined-questions"
    PLAN_APPROVED = "plan-approved"
    PLAN_REJECTED = "plan-rejected"


class ToolCallStatus(str, Enum):
    """Lifecycle status of a tool call as shown to the user."""

    PENDING = "pending"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"
    DENIED = "denied"
    INTERRUPTED = "interrupted"


class SurfaceKind(str, Enum):
    """Kinds of interactive surface that can occupy the pending slot."""

    SELECT = "select"
    TEXT = "text"
    TOOL_APPROVAL = "tool-approval"
    CLARIFYING_QUESTIONS = "clarifying-questions"
    PLAN_APPROVAL = "plan-approval"
    PERSISTENT_INPUT = "persistent-input"


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    """Terminal record of one tool call."""

    tool_name: str
    status: ToolCallStatus
    input: Mapping[str, Any] = field(default_factory=dict)
    description: str | None = None
    result: str | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class QuestionAnswer:
    question: str
    answer: str


@dataclass(frozen=True, slots=True)
class HistoryItem:
    """An append-only history entry, rendered exactly once."""

    id: int
    kind: HistoryKind
    text: str
    label: str | None = None
    tool_call: ToolCallRecord | None = None
    questions_and_answers: tuple[QuestionAnswer, ...] = ()
    plan: str | None = None


# -----------------------------------------------------------------------------
# Surfaces
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SelectOption:
    value: Any
    label: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class SelectSurface:
    kind: ClassVar[SurfaceKind] = SurfaceKind.SELECT

    message: str
    options: tuple[SelectOption, ...]
    initial_index: int = 0


@dataclass(frozen=True, slots=True)
class TextSurface:
    kind: ClassVar[SurfaceKind] = SurfaceKind.TEXT

    message: str
    placeholder: str | None = None
    default_value: str = ""


@dataclass(frozen=True, slots=True)
class ToolApprovalSurface:
    """Generic allow/deny prompt for one tool call."""

    kind: ClassVar[SurfaceKind] = SurfaceKind.TOOL_APPROVAL

    tool_name: str
    input: Mapping[str, Any]
    description: str | None = None
    diff_content: str | None = None
    file_name: str | None = None


@dataclass(frozen=True, slots=True)
class QuestionOption:
    label: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ClarifyingQuestion:
    question: str
    header: str
    options: tuple[QuestionOption, ...] = ()
    multi_select: bool = False


@dataclass(frozen=True, slots=True)
class ClarifyingQuestionsSurface:
    kind: ClassVar[SurfaceKind] = SurfaceKind.CLARIFYING_QUESTIONS

    questions: tuple[ClarifyingQuestion, ...]


@dataclass(frozen=True, slots=True)
class PlanApprovalSurface:
    kind: ClassVar[SurfaceKind] = SurfaceKind.PLAN_APPROVAL

    plan: str


@dataclass(frozen=True, slots=True)
class PersistentInputSurface:
    """Input line shown while the agent runs.

    Doubles as the restore config kept in AgentRunState, so that any
    surface that temporarily replaces it can bring it back.
    """

    kind: ClassVar[SurfaceKind] = SurfaceKind.PERSISTENT_INPUT

    on_submit: Callable[[str], None]
    on_interrupt: Callable[[], None]
    spinner_message: str = "Working..."
    placeholder: str = "Type a message or press Esc to interrupt..."


Surface = Union[
    SelectSurface,
    TextSurface,
    ToolApprovalSurface,
    ClarifyingQuestionsSurface,
    PlanApprovalSurface,
    PersistentInputSurface,
]


@dataclass(slots=True)
class PendingItem:
    """The live surface plus its one-shot resolution channel."""

    surface: Surface
    future: asyncio.Future[Any] | None = None

    @property
    def kind(self) -> SurfaceKind:
        return self.surface.kind


# -----------------------------------------------------------------------------
# Surface results
# -----------------------------------------------------------------------------


class _Cancel:
    """Sentinel resolved into select and text surfaces the user backed out of."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "CANCEL"

    def __bool__(self) -> bool:
        return False


CANCEL = _Cancel()


def is_cancel(value: Any) -> bool:
    return value is CANCEL


@dataclass(frozen=True, slots=True)
class ApprovalAnswer:
    """What the human chose on a tool approval surface."""

    allowed: bool
    feedback: str | None = None


@dataclass(frozen=True, slots=True)
class ClarifyingAnswers:
    questions: tuple[ClarifyingQuestion, ...]
    answers: Mapping[str, str] = field(default_factory=dict)
    declined: bool = False


@dataclass(frozen=True, slots=True)
class PlanDecision:
    approved: bool
    feedback: str | None = None


# -----------------------------------------------------------------------------
# Run state
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AgentRunState:
    """Run state read by the renderer and the key router.

    Attributes:
        is_running: An engine stream is open.
        session_id: Resume token captured from the engine, if any.
        interrupt_handle: Synchronous trigger that schedules an interrupt.
        persistent_input: Surface to restore after a temporary prompt.
    """

    is_running: bool = False
    session_id: str | None = None
    interrupt_handle: Callable[[], None] | None = None
    persistent_input: PersistentInputSurface | None = None
