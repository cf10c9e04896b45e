"""Keyboard routing for the pending surface.

KeyRouter turns keystrokes into actions on whatever surface currently
occupies the store's pending slot: editing its buffer, moving its
highlight, resolving it, or interrupting the agent. It keeps the per-surface
view state (buffer, highlight, question index) the renderer draws from and
resets that state whenever a different surface becomes live.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from agentwizard.logging import get_logger
from agentwizard.ui.types import (
    CANCEL,
    ApprovalAnswer,
    ClarifyingAnswers,
    ClarifyingQuestionsSurface,
    PendingItem,
    PersistentInputSurface,
    PlanApprovalSurface,
    PlanDecision,
    SelectSurface,
    TextSurface,
    ToolApprovalSurface,
)

if TYPE_CHECKING:
    from agentwizard.ui.store import UIStateStore

log = get_logger("ui.keys")

APPROVAL_OPTIONS = ("Allow", "Deny", "Deny with feedback")
PLAN_OPTIONS = ("Yes, accept plan", "No, give feedback")
OTHER_OPTION = "Type something"
SUBMIT_OPTION = "Submit"
REVIEW_OPTIONS = ("Submit answers", "Cancel")


class Key(str, Enum):
    """Non-printable keys the router understands."""

    ESCAPE = "escape"
    CTRL_C = "c-c"
    ENTER = "enter"
    UP = "up"
    DOWN = "down"
    BACKSPACE = "backspace"


@dataclass
class SurfaceView:
    """Mutable view state for the live surface.

    Attributes:
        buffer: Text being typed
        index: Highlighted option
        typing: Free-text entry active (feedback or "Type something")
        question: Current clarifying question
        answers: Answers collected so far, keyed by question text
        selections: Toggled options of a multi-select question
        reviewing: All questions answered, showing submit/cancel
    """

    buffer: str = ""
    index: int = 0
    typing: bool = False
    question: int = 0
    answers: dict[str, str] = field(default_factory=dict)
    selections: list[str] = field(default_factory=list)
    reviewing: bool = False


def question_items(surface: ClarifyingQuestionsSurface, view: SurfaceView) -> list[str]:
    """Options listed for the current question, including the extra rows."""
    question = surface.questions[view.question]
    items = [o.label for o in question.options] + [OTHER_OPTION]
    if question.multi_select:
        items.append(SUBMIT_OPTION)
    return items


class KeyRouter:
    """Routes keys to the store's pending surface."""

    def __init__(self, store: UIStateStore) -> None:
        self._store = store
        self._bound: PendingItem | None = None
        self._view = SurfaceView()

    @property
    def view(self) -> SurfaceView:
        self._sync()
        return self._view

    def _sync(self) -> PendingItem | None:
        pending = self._store.pending
        if pending is not self._bound:
            self._bound = pending
            self._view = SurfaceView()
            if pending is not None and isinstance(pending.surface, SelectSurface):
                self._view.index = pending.surface.initial_index
            if pending is not None and isinstance(pending.surface, TextSurface):
                self._view.buffer = pending.surface.default_value
        return pending

    # -- entry points ----------------------------------------------------------

    def feed(self, key: Key) -> None:
        pending = self._sync()
        if key is Key.CTRL_C:
            self._hard_stop(pending)
            return
        if pending is None:
            return

        surface = pending.surface
        if isinstance(surface, PersistentInputSurface):
            self._persistent(surface, key)
        elif isinstance(surface, TextSurface):
            self._text(key)
        elif isinstance(surface, SelectSurface):
            self._select(surface, key)
        elif isinstance(surface, ToolApprovalSurface):
            self._approval(key)
        elif isinstance(surface, PlanApprovalSurface):
            self._plan(key)
        elif isinstance(surface, ClarifyingQuestionsSurface):
            self._questions(surface, key)

    def feed_text(self, text: str) -> None:
        """Printable input, one character or a pasted run."""
        pending = self._sync()
        if pending is None or not text:
            return
        view = self._view
        surface = pending.surface
        if isinstance(surface, (PersistentInputSurface, TextSurface)) or view.typing:
            view.buffer += text.replace("\r", "").replace("\n", " ")

    # -- global ----------------------------------------------------------------

    def _hard_stop(self, pending: PendingItem | None) -> None:
        """Ctrl+C: back out of any prompt and interrupt a running agent."""
        if pending is not None and not isinstance(pending.surface, PersistentInputSurface):
            self._store.resolve_pending(self._cancel_value(pending.surface))
        handle = self._store.agent_state.interrupt_handle
        if handle is not None:
            handle()
        elif pending is not None and isinstance(pending.surface, PersistentInputSurface):
            pending.surface.on_interrupt()

    def _cancel_value(self, surface: Any) -> Any:
        if isinstance(surface, ToolApprovalSurface):
            return ApprovalAnswer(allowed=False)
        if isinstance(surface, PlanApprovalSurface):
            return PlanDecision(approved=False)
        if isinstance(surface, ClarifyingQuestionsSurface):
            return ClarifyingAnswers(questions=surface.questions, declined=True)
        return CANCEL

    def _move(self, key: Key, count: int) -> bool:
        view = self._view
        if key is Key.UP:
            view.index = max(0, view.index - 1)
            return True
        if key is Key.DOWN:
            view.index = min(count - 1, view.index + 1)
            return True
        return False

    def _edit(self, key: Key) -> bool:
        if key is Key.BACKSPACE:
            self._view.buffer = self._view.buffer[:-1]
            return True
        return False

    # -- surfaces --------------------------------------------------------------

    def _persistent(self, surface: PersistentInputSurface, key: Key) -> None:
        if key is Key.ESCAPE:
            log.info("User requested interrupt (Esc)")
            surface.on_interrupt()
        elif key is Key.ENTER:
            message = self._view.buffer.strip()
            if message:
                self._view.buffer = ""
                surface.on_submit(message)
        else:
            self._edit(key)

    def _text(self, key: Key) -> None:
        if key is Key.ESCAPE:
            self._store.resolve_pending(CANCEL)
        elif key is Key.ENTER:
            self._store.resolve_pending(self._view.buffer)
        else:
            self._edit(key)

    def _select(self, surface: SelectSurface, key: Key) -> None:
        if key is Key.ESCAPE:
            self._store.resolve_pending(CANCEL)
        elif key is Key.ENTER and surface.options:
            self._store.resolve_pending(surface.options[self._view.index].value)
        else:
            self._move(key, len(surface.options))

    def _approval(self, key: Key) -> None:
        view = self._view
        if view.typing:
            if key is Key.ESCAPE:
                view.typing = False
            elif key is Key.ENTER:
                self._store.resolve_pending(
                    ApprovalAnswer(allowed=False, feedback=view.buffer.strip() or None)
                )
            else:
                self._edit(key)
            return

        if key is Key.ESCAPE:
            self._store.resolve_pending(ApprovalAnswer(allowed=False))
        elif key is Key.ENTER:
            if view.index == 0:
                self._store.resolve_pending(ApprovalAnswer(allowed=True))
            elif view.index == 1:
                self._store.resolve_pending(ApprovalAnswer(allowed=False))
            else:
                view.typing = True
        else:
            self._move(key, len(APPROVAL_OPTIONS))

    def _plan(self, key: Key) -> None:
        view = self._view
        if view.typing:
            if key is Key.ESCAPE:
                view.typing = False
            elif key is Key.ENTER and view.buffer.strip():
                self._store.resolve_pending(PlanDecision(approved=False, feedback=view.buffer.strip()))
            else:
                self._edit(key)
            return

        if key is Key.ESCAPE:
            self._store.resolve_pending(PlanDecision(approved=False))
        elif key is Key.ENTER:
            if view.index == 0:
                self._store.resolve_pending(PlanDecision(approved=True))
            else:
                view.typing = True
        else:
            self._move(key, len(PLAN_OPTIONS))

    def _questions(self, surface: ClarifyingQuestionsSurface, key: Key) -> None:
        view = self._view
        if not surface.questions:
            if key in (Key.ENTER, Key.ESCAPE):
                self._store.resolve_pending(ClarifyingAnswers(questions=surface.questions))
            return

        if view.reviewing:
            self._review(surface, key)
            return

        if key is Key.ESCAPE:
            if view.typing:
                view.typing = False
            elif view.question > 0:
                self._goto_question(view.question - 1)
            else:
                self._decline(surface)
            return

        if key in (Key.UP, Key.DOWN):
            view.typing = False
            self._move(key, len(question_items(surface, view)))
            return

        if view.typing:
            if key is Key.ENTER:
                self._submit_custom(surface)
            else:
                self._edit(key)
            return

        if key is not Key.ENTER:
            return

        question = surface.questions[view.question]
        choice = question_items(surface, view)[view.index]
        if choice == OTHER_OPTION and view.index == len(question.options):
            view.typing = True
        elif question.multi_select and choice == SUBMIT_OPTION and view.index > len(question.options):
            picked = list(view.selections)
            custom = view.buffer.strip()
            if custom and custom not in picked:
                picked.append(custom)
            if picked:
                self._answer(surface, ", ".join(picked))
        elif question.multi_select:
            self._toggle(choice)
        else:
            self._answer(surface, choice)

    def _review(self, surface: ClarifyingQuestionsSurface, key: Key) -> None:
        view = self._view
        if key is Key.ESCAPE:
            view.reviewing = False
            view.index = 0
        elif key is Key.ENTER:
            if view.index == 0:
                self._store.resolve_pending(
                    ClarifyingAnswers(questions=surface.questions, answers=dict(view.answers))
                )
            else:
                self._decline(surface)
        else:
            self._move(key, len(REVIEW_OPTIONS))

    def _submit_custom(self, surface: ClarifyingQuestionsSurface) -> None:
        text = self._view.buffer.strip()
        if not text:
            return
        if surface.questions[self._view.question].multi_select:
            self._toggle(text)
        else:
            self._answer(surface, text)

    def _toggle(self, value: str) -> None:
        selections = self._view.selections
        if value in selections:
            selections.remove(value)
        else:
            selections.append(value)

    def _answer(self, surface: ClarifyingQuestionsSurface, answer: str) -> None:
        view = self._view
        view.answers[surface.questions[view.question].question] = answer
        if view.question == len(surface.questions) - 1:
            view.reviewing = True
            view.index = 0
            view.typing = False
        else:
            self._goto_question(view.question + 1)

    def _goto_question(self, number: int) -> None:
        view = self._view
        view.question = number
        view.index = 0
        view.typing = False
        view.buffer = ""
        view.selections = []

    def _decline(self, surface: ClarifyingQuestionsSurface) -> None:
        self._store.resolve_pending(ClarifyingAnswers(questions=surface.questions, declined=True))
