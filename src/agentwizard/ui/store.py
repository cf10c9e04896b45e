"""Single-writer UI state: append-only history plus at most one pending surface.

Every mutation goes through UIStateStore on the event loop thread. Surfaces
are resolved through a one-shot future. Replacing a live surface without
resolving it is an explicit abandon: the old future fails with
SurfaceAbandoned and the event is logged, so no awaiter is silently leaked.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from agentwizard.errors import SurfaceAbandoned
from agentwizard.logging import get_logger
from agentwizard.ui.types import (
    CANCEL,
    AgentRunState,
    ApprovalAnswer,
    ClarifyingAnswers,
    ClarifyingQuestionsSurface,
    HistoryItem,
    HistoryKind,
    PendingItem,
    PersistentInputSurface,
    PlanApprovalSurface,
    PlanDecision,
    QuestionAnswer,
    SelectOption,
    SelectSurface,
    Surface,
    SurfaceKind,
    TextSurface,
    ToolApprovalSurface,
    ToolCallRecord,
    is_cancel,
)

log = get_logger("ui.store")

# Called with the appended item, or None for pending/run-state changes
StoreListener = Callable[[HistoryItem | None], None]


class UIStateStore:
    """Owns history, the pending slot and the agent run state."""

    def __init__(self) -> None:
        self._history: list[HistoryItem] = []
        self._pending: PendingItem | None = None
        self._agent_state = AgentRunState()
        self._ids = itertools.count(1)
        self._listeners: list[StoreListener] = []

    # -- read side ------------------------------------------------------------

    @property
    def history(self) -> tuple[HistoryItem, ...]:
        return tuple(self._history)

    @property
    def pending(self) -> PendingItem | None:
        return self._pending

    @property
    def agent_state(self) -> AgentRunState:
        return self._agent_state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, item: HistoryItem | None = None) -> None:
        for listener in list(self._listeners):
            listener(item)

    # -- history --------------------------------------------------------------

    def add_item(
        self,
        kind: HistoryKind,
        text: str,
        *,
        label: str | None = None,
        tool_call: ToolCallRecord | None = None,
        questions_and_answers: Iterable[QuestionAnswer] = (),
        plan: str | None = None,
    ) -> HistoryItem:
        """Append a frozen history entry."""
        item = HistoryItem(
            id=next(self._ids),
            kind=kind,
            text=text,
            label=label,
            tool_call=tool_call,
            questions_and_answers=tuple(questions_and_answers),
            plan=plan,
        )
        self._history.append(item)
        log.debug("history[%d] %s: %s", item.id, kind.value, text[:120])
        self._notify(item)
        return item

    # -- pending slot ---------------------------------------------------------

    def show(self, surface: Surface) -> asyncio.Future[Any] | None:
        """Make ``surface`` the live pending item.

        Any current item is abandoned first. Persistent input has no
        resolver, so it gets no future.
        """
        future: asyncio.Future[Any] | None = None
        if surface.kind is not SurfaceKind.PERSISTENT_INPUT:
            future = asyncio.get_running_loop().create_future()
        self._install(surface, future)
        return future

    def _install(self, surface: Surface, future: asyncio.Future[Any] | None) -> None:
        if self._pending is not None:
            self.abandon_pending(f"replaced by {surface.kind.value}")
        self._pending = PendingItem(surface=surface, future=future)
        self._notify()

    def resolve_pending(self, value: Any) -> None:
        """Resolve the live item once and clear the slot.

        A no-op when nothing is pending, so a second call after the first
        has no effect.
        """
        pending = self._pending
        if pending is None:
            log.debug("resolve_pending with nothing pending, ignored")
            return

        self._pending = None
        if pending.future is not None and not pending.future.done():
            pending.future.set_result(value)
        self._notify()

    def abandon_pending(self, reason: str) -> None:
        """Drop the live item without resolving it."""
        pending = self._pending
        if pending is None:
            return

        self._pending = None
        if pending.kind is SurfaceKind.PERSISTENT_INPUT:
            log.debug("Persistent input set aside: %s", reason)
        else:
            log.warning("Abandoning pending %s surface: %s", pending.kind.value, reason)
        if pending.future is not None and not pending.future.done():
            pending.future.set_exception(SurfaceAbandoned(pending.kind.value, reason))
        self._notify()

    # -- persistent input -----------------------------------------------------

    def start_persistent_input(self, surface: PersistentInputSurface) -> None:
        self._agent_state = replace(self._agent_state, persistent_input=surface)
        self.show(surface)

    def stop_persistent_input(self) -> None:
        """Forget the restore config and clear the slot if it holds the input."""
        self._agent_state = replace(self._agent_state, persistent_input=None)
        if self._pending is not None and self._pending.kind is SurfaceKind.PERSISTENT_INPUT:
            self._pending = None
        self._notify()

    def restore_persistent_input(self) -> None:
        """Bring the persistent input back if the slot is free."""
        surface = self._agent_state.persistent_input
        if surface is None or self._pending is not None:
            return
        self.show(surface)

    # -- run state ------------------------------------------------------------

    def set_agent_state(self, **changes: Any) -> AgentRunState:
        self._agent_state = replace(self._agent_state, **changes)
        self._notify()
        return self._agent_state

    # -- suspending helpers ---------------------------------------------------

    async def _suspend(self, surface: Surface) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._install(surface, future)
        try:
            return await future
        finally:
            # Still live only when the awaiter itself was cancelled
            if self._pending is not None and self._pending.future is future:
                self._pending = None
                self._notify()
            self.restore_persistent_input()

    async def select(
        self,
        message: str,
        options: Iterable[SelectOption],
        initial_index: int = 0,
    ) -> Any:
        """Ask the user to pick one option. Returns its value or CANCEL."""
        surface = SelectSurface(message=message, options=tuple(options), initial_index=initial_index)
        value = await self._suspend(surface)
        if is_cancel(value):
            self.add_item(HistoryKind.SELECT_RESULT, message, label="(cancelled)")
            return CANCEL
        label = next((o.label for o in surface.options if o.value == value), str(value))
        self.add_item(HistoryKind.SELECT_RESULT, message, label=label)
        return value

    async def text(
        self,
        message: str,
        placeholder: str | None = None,
        default_value: str = "",
    ) -> str | Any:
        """Ask for free text. Returns the text or CANCEL."""
        value = await self._suspend(
            TextSurface(message=message, placeholder=placeholder, default_value=default_value)
        )
        if is_cancel(value):
            self.add_item(HistoryKind.TEXT_RESULT, message, label="(cancelled)")
            return CANCEL
        return value

    async def tool_approval(self, surface: ToolApprovalSurface) -> ApprovalAnswer:
        return await self._suspend(surface)

    async def clarifying_questions(self, surface: ClarifyingQuestionsSurface) -> ClarifyingAnswers:
        return await self._suspend(surface)

    async def plan_approval(self, surface: PlanApprovalSurface) -> PlanDecision:
        return await self._suspend(surface)
