"""Session loop: drives the agent engine until the work is done.

Each iteration opens one engine stream for a (prompt, resume token) pair and
drains it completely through the classifier, interrupt or not. When the
stream ends the loop either finishes (the agent called the completion tool)
or asks the human for the next message and resumes the same session with it.
Iterations are an explicit loop, never recursion.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from agentwizard.config.schema import Config
from agentwizard.errors import SurfaceAbandoned, is_interrupt_noise
from agentwizard.logging import get_logger
from agentwizard.session.approval import ApprovalGateway
from agentwizard.session.classifier import MessageClassifier
from agentwizard.session.completion import completion_tool
from agentwizard.session.context import SessionContext
from agentwizard.session.events import decode_events
from agentwizard.session.interrupt import InterruptController
from agentwizard.session.protocols import AgentEngine, EngineStream, LoopState, PlanListener
from agentwizard.session.registry import ToolCallRegistry
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.types import HistoryKind, PersistentInputSurface, is_cancel

log = get_logger("session.loop")

FOLLOW_UP_MESSAGE = "What would you like the agent to do?"
FOLLOW_UP_PLACEHOLDER = "Type your message..."


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Outcome of run_session().

    Attributes:
        session_id: Last known resume token
        handle: Interrupt controller of the final iteration
        state: COMPLETED or TERMINATED
        iterations: Number of engine streams opened
    """

    session_id: str | None
    handle: InterruptController | None
    state: LoopState
    iterations: int


class SessionLoop:
    """Top-level driver for one supervised agent session.

    Args:
        engine: Produces event streams
        store: Single-writer UI state every component reports to
        config: Full configuration (defaults when None)
        gateway: Approval gateway; built from config when None
        plan_listener: Told about plans the human accepts
    """

    def __init__(
        self,
        engine: AgentEngine,
        store: UIStateStore,
        config: Config | None = None,
        *,
        gateway: ApprovalGateway | None = None,
        plan_listener: PlanListener | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.config = config or Config()
        self.gateway = gateway or ApprovalGateway(store, self.config.approval, plan_listener)
        self.state = LoopState.STARTING
        self.context: SessionContext | None = None
        self.controller: InterruptController | None = None
        self._stream: EngineStream | None = None

    async def run_session(self, prompt: str, resume_token: str | None = None) -> SessionResult:
        """Run until the agent completes or the human stops resuming."""
        session_id = resume_token
        max_turns = self.config.engine.max_turns
        iterations = 0

        while True:
            iterations += 1
            log.info("Starting iteration %d (resume=%s)", iterations, resume_token)
            outcome, context = await self._run_iteration(prompt, resume_token, session_id)
            session_id = context.session_id
            log.info("Iteration %d ended: %s", iterations, outcome.value)

            if outcome is LoopState.COMPLETED:
                return self._finish(LoopState.COMPLETED, session_id, iterations)

            if session_id is None:
                self.store.add_item(
                    HistoryKind.WARNING,
                    "The agent stopped before a session was established; it cannot be resumed.",
                )
                return self._finish(LoopState.TERMINATED, session_id, iterations)

            if max_turns and iterations >= max_turns:
                self.store.add_item(
                    HistoryKind.WARNING, f"Stopped after {iterations} turns without a completion signal."
                )
                return self._finish(LoopState.TERMINATED, session_id, iterations)

            message = await self._next_message(context)
            if message is None:
                log.info("User cancelled input, ending session")
                return self._finish(LoopState.TERMINATED, session_id, iterations)

            self.store.add_item(HistoryKind.USER_MESSAGE, message)
            log.info("Resuming session %s with user message", session_id)
            prompt, resume_token = message, session_id

    # -- one iteration ---------------------------------------------------------

    async def _run_iteration(
        self,
        prompt: str,
        resume_token: str | None,
        session_id: str | None,
    ) -> tuple[LoopState, SessionContext]:
        self.state = LoopState.STARTING
        context = SessionContext(registry=ToolCallRegistry(self.store), session_id=session_id)
        controller = InterruptController(context, self.store, lambda: self._stream)
        classifier = MessageClassifier(context, self.store)
        self.context, self.controller = context, controller
        self.gateway.bind(controller.request, context.registry)

        self.store.start_persistent_input(
            PersistentInputSurface(
                on_submit=self._submit_handler(context, controller),
                on_interrupt=controller.request,
                spinner_message=self.config.ui.spinner_message,
            )
        )
        self.store.set_agent_state(
            is_running=True,
            session_id=context.session_id,
            interrupt_handle=controller.request,
        )

        stream: EngineStream | None = None
        try:
            try:
                stream = self.engine.open(
                    prompt,
                    resume_token=resume_token,
                    approve=self.gateway.decide,
                    tools=[completion_tool(context)],
                )
            except Exception as e:
                if not (context.is_interrupting or is_interrupt_noise(e)):
                    raise
                log.info("Interrupt error opening stream, treating as end of turn: %s", e)
            else:
                self._stream = stream
                self.state = LoopState.STREAMING
                await self._drain(stream, context, classifier)
        except Exception as e:
            log.error("Agent run failed: %s", e)
            self._teardown()
            self.store.add_item(HistoryKind.ERROR, f"Error: {e}")
            raise
        finally:
            self._stream = None
            self.gateway.bind(None, None)
            context.registry.drop_early_denials()
            if stream is not None:
                await _close_stream(stream)

        self.state = self._decide(context)
        return self.state, context

    async def _drain(
        self,
        stream: EngineStream,
        context: SessionContext,
        classifier: MessageClassifier,
    ) -> None:
        """Consume every event until the engine closes the stream."""
        iterator = stream.__aiter__()
        while True:
            try:
                raw = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                if context.is_interrupting or is_interrupt_noise(e):
                    log.info("Interrupt error in stream, treating as end of turn: %s", e)
                    break
                raise
            for event in decode_events(raw):
                classifier.handle(event)

    def _decide(self, context: SessionContext) -> LoopState:
        if context.has_completed_work:
            return LoopState.COMPLETED
        if context.is_interrupting or context.waiting_for_user_input:
            return LoopState.INTERRUPTED
        # No completion signal: hand the turn back to the human
        log.warning("Stream ended without a completion signal, waiting for user input")
        return LoopState.NEEDS_INPUT

    def _submit_handler(
        self,
        context: SessionContext,
        controller: InterruptController,
    ) -> Callable[[str], None]:
        def on_submit(message: str) -> None:
            # Submitting while the agent runs interrupts it; the message is
            # sent when the session resumes
            log.info("User submitted while agent running, interrupting")
            context.buffered_message = message
            controller.request()

        return on_submit

    # -- between iterations ----------------------------------------------------

    async def _next_message(self, context: SessionContext) -> str | None:
        self.store.stop_persistent_input()
        self.store.set_agent_state(interrupt_handle=None)

        if context.buffered_message:
            return context.buffered_message

        while True:
            try:
                answer: Any = await self.store.text(FOLLOW_UP_MESSAGE, placeholder=FOLLOW_UP_PLACEHOLDER)
            except SurfaceAbandoned as e:
                log.warning("Follow-up prompt abandoned: %s", e)
                return None
            if is_cancel(answer):
                return None
            message = str(answer).strip()
            if message:
                return message

    def _teardown(self) -> None:
        self.store.stop_persistent_input()
        self.store.abandon_pending("session ended")
        self.store.set_agent_state(is_running=False, interrupt_handle=None)

    def _finish(self, state: LoopState, session_id: str | None, iterations: int) -> SessionResult:
        self._teardown()
        self.state = state
        if state is LoopState.COMPLETED:
            log.info("Session %s completed after %d iteration(s)", session_id, iterations)
        return SessionResult(
            session_id=session_id,
            handle=self.controller,
            state=state,
            iterations=iterations,
        )


async def _close_stream(stream: Any) -> None:
    close = getattr(stream, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as e:
        log.debug("Error closing engine stream: %s", e)
