"""Shared test utilities: scripted engine, surface responder and raw event helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from agentwizard.session.protocols import ApprovalCallback, ToolSpec
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.types import PendingItem, SurfaceKind

# =============================================================================
# Scripted engine
# =============================================================================


@dataclass
class OpenCall:
    prompt: str
    resume_token: str | None
    tools: list[ToolSpec] = field(default_factory=list)


class ScriptedStream:
    """Yields raw events; callables in the script are awaited with the stream.

    Once interrupted, the stream stops before the next step, raising
    ``error_on_interrupt`` if one is set. With ``drain_after_interrupt`` it
    keeps delivering the rest of the script, like an engine flushing
    in-flight results.
    """

    def __init__(
        self,
        steps: Sequence[Any],
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
        error: BaseException | None = None,
        error_on_interrupt: BaseException | None = None,
        drain_after_interrupt: bool = False,
    ) -> None:
        self.steps = list(steps)
        self.approve = approve
        self.tools = list(tools)
        self.error = error
        self.error_on_interrupt = error_on_interrupt
        self.drain_after_interrupt = drain_after_interrupt
        self.interrupted = False
        self.interrupt_calls = 0
        self.closed = False

    def __aiter__(self):
        return self._run()

    async def _run(self):
        for step in self.steps:
            if self.interrupted and not self.drain_after_interrupt:
                if self.error_on_interrupt is not None:
                    raise self.error_on_interrupt
                return
            if callable(step):
                await step(self)
            else:
                yield step
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def interrupt(self) -> None:
        self.interrupt_calls += 1
        self.interrupted = True

    async def aclose(self) -> None:
        self.closed = True


class ScriptedEngine:
    """Serves one ScriptedStream per open() call, in order."""

    def __init__(self, *turns: Sequence[Any], **stream_kwargs: Any) -> None:
        self.turns = list(turns)
        self.stream_kwargs = stream_kwargs
        self.calls: list[OpenCall] = []
        self.streams: list[ScriptedStream] = []

    def open(
        self,
        prompt: str,
        *,
        resume_token: str | None,
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
    ) -> ScriptedStream:
        self.calls.append(OpenCall(prompt, resume_token, list(tools)))
        steps = self.turns[len(self.streams)] if len(self.streams) < len(self.turns) else []
        stream = ScriptedStream(steps, approve, tools, **self.stream_kwargs)
        self.streams.append(stream)
        return stream


async def settle(ticks: int = 5) -> None:
    """Let scheduled tasks run."""
    for _ in range(ticks):
        await asyncio.sleep(0)


# =============================================================================
# Surface responder
# =============================================================================


def auto_respond(
    store: UIStateStore,
    answers: dict[SurfaceKind, Any] | Callable[[PendingItem], Any],
) -> list[PendingItem]:
    """Resolve surfaces as they appear.

    ``answers`` maps a surface kind to a value, or to a list of values used
    in turn. A callable receives the pending item and returns the value.
    Returns the list of surfaces that were answered.
    """
    seen: list[PendingItem] = []
    queues: dict[SurfaceKind, list[Any]] = {}
    if isinstance(answers, dict):
        queues = {k: list(v) if isinstance(v, list) else [v] for k, v in answers.items()}

    def pick(pending: PendingItem) -> Any:
        if callable(answers):
            return answers(pending)
        queue = queues[pending.kind]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def on_change(_item: Any) -> None:
        pending = store.pending
        if pending is None or pending.future is None or pending.future.done():
            return
        if any(p is pending for p in seen):
            return
        seen.append(pending)
        value = pick(pending)

        def resolve() -> None:
            if store.pending is pending:
                store.resolve_pending(value)

        asyncio.get_running_loop().call_soon(resolve)

    store.subscribe(on_change)
    return seen


# =============================================================================
# Raw event helpers
# =============================================================================


def session(session_id: str = "s1") -> dict[str, Any]:
    return {"type": "session-started", "sessionId": session_id}


def text(content: str) -> dict[str, Any]:
    return {"type": "assistant-text", "text": content}


def tool_request(call_id: str, name: str, **tool_input: Any) -> dict[str, Any]:
    return {"type": "tool-request", "callId": call_id, "name": name, "input": tool_input}


def tool_result(call_id: str, content: Any = "ok", is_error: bool = False) -> dict[str, Any]:
    return {"type": "tool-result", "callId": call_id, "content": content, "isError": is_error}


def complete(call_id: str = "done") -> dict[str, Any]:
    return tool_request(call_id, "mcp__agentwizard__CompleteIntegration")
