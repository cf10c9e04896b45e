"""Message classifier: decoded engine events -> registry and history updates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentwizard.errors import is_interrupt_noise
from agentwizard.logging import VERBOSE, get_logger
from agentwizard.session.completion import is_completion_tool
from agentwizard.session.events import (
    AssistantText,
    EngineEventModel,
    SessionStarted,
    SystemInit,
    ToolRequest,
    ToolResult,
    TurnResult,
)
from agentwizard.ui.types import HistoryKind

if TYPE_CHECKING:
    from agentwizard.session.context import SessionContext
    from agentwizard.ui.store import UIStateStore

log = get_logger("session.classifier")


class MessageClassifier:
    """Applies one iteration's events to its context and the UI store.

    Flags on the context are read as each event is handled, so an interrupt
    only affects events processed after it.
    """

    def __init__(self, context: SessionContext, store: UIStateStore) -> None:
        self._context = context
        self._store = store

    def handle(self, event: EngineEventModel) -> None:
        log.log(VERBOSE, "Engine event: %s", event.type)

        if event.session_id and self._context.capture_session(event.session_id):
            self._store.set_agent_state(session_id=self._context.session_id)

        if isinstance(event, AssistantText):
            self._on_text(event)
        elif isinstance(event, ToolRequest):
            self._on_tool_request(event)
        elif isinstance(event, ToolResult):
            self._context.registry.complete(event.call_id, event.is_error, event.content)
        elif isinstance(event, TurnResult):
            self._on_turn_result(event)
        elif isinstance(event, SystemInit):
            log.info("Agent session initialized (model=%s, tools=%d)", event.model, len(event.tools))
        elif isinstance(event, SessionStarted):
            pass
        else:
            log.debug("Unhandled engine event: %s", event)

    def _on_text(self, event: AssistantText) -> None:
        # The opening message is a generic intro; keep it for the log only
        is_first = not self._context.assistant_texts
        self._context.assistant_texts.append(event.text)
        if is_first:
            log.debug("First assistant message (not shown): %s", event.text[:200])
            return
        self._store.add_item(HistoryKind.AGENT_MESSAGE, event.text)

    def _on_tool_request(self, event: ToolRequest) -> None:
        if is_completion_tool(event.name):
            log.info("Completion tool requested (id: %s)", event.call_id)
            self._context.has_completed_work = True
            return
        self._context.registry.register(event.call_id, event.name, event.input)

    def _on_turn_result(self, event: TurnResult) -> None:
        if event.is_success:
            log.info("Agent turn completed successfully")
            if event.result and event.result.strip():
                self._store.add_item(HistoryKind.SUCCESS, event.result)
            return

        log.warning("Agent error result: %s", event.subtype)
        for err in event.errors:
            log.error("Engine error: %s", err)
            if self._context.is_interrupting or is_interrupt_noise(err):
                continue
            self._store.add_item(HistoryKind.ERROR, f"Error: {err}")
