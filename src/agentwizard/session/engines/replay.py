"""Replay engine: plays recorded engine transcripts from JSONL.

Each line is one raw engine event, in either the flat or the SDK envelope
shape understood by ``decode_events``. Two control lines are recognised:

- ``{"type": "turn-end"}`` ends the current turn; the next ``open()`` call
  (a resumed iteration) continues after it
- ``{"type": "approval", "tool": "Bash", "input": {...}}`` asks the
  approval callback, exactly as a live engine would before running a tool

Tool requests naming an in-process tool (the completion tool) run its
handler, so a replayed session can complete the same way a live one does.

Usage:
    engine = ReplayEngine.from_path(Path("session.jsonl"))
    loop = SessionLoop(engine, store)
    await loop.run_session("replay")
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from agentwizard.errors import EngineError
from agentwizard.logging import get_logger
from agentwizard.session.protocols import ApprovalCallback, ApprovalDecision, ToolSpec

log = get_logger("session.engines.replay")

TURN_END = "turn-end"
APPROVAL = "approval"


def read_transcript(source: Path | IO[str] | Iterable[str]) -> Iterator[dict[str, Any]]:
    """Yield JSON objects from a JSONL source, skipping blank or bad lines."""
    if isinstance(source, Path):
        with open(source, encoding="utf-8") as f:
            yield from read_transcript(f)
        return

    for number, line in enumerate(source, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            log.warning("Skipping invalid transcript line %d: %s", number, e)
            continue
        if isinstance(data, dict):
            yield data


def split_turns(records: Iterable[dict[str, Any]]) -> list[list[dict[str, Any]]]:
    """Group transcript records into turns at each turn-end marker."""
    turns: list[list[dict[str, Any]]] = [[]]
    for record in records:
        if record.get("type") == TURN_END:
            turns.append([])
        else:
            turns[-1].append(record)
    if not turns[-1] and len(turns) > 1:
        turns.pop()
    return turns


@dataclass
class ReplayCall:
    """One open() call, kept for inspection."""

    prompt: str
    resume_token: str | None
    decisions: list[tuple[str, ApprovalDecision]] = field(default_factory=list)


class ReplayEngine:
    """AgentEngine that serves recorded turns in order.

    Args:
        turns: Raw events per turn
        delay: Seconds to pause between events, for demos
    """

    def __init__(self, turns: Sequence[Sequence[dict[str, Any]]], delay: float = 0.0) -> None:
        self._turns = [list(t) for t in turns]
        self._next_turn = 0
        self.delay = delay
        self.calls: list[ReplayCall] = []

    @classmethod
    def from_path(cls, path: Path, delay: float = 0.0) -> ReplayEngine:
        return cls(split_turns(read_transcript(path)), delay=delay)

    @classmethod
    def from_lines(cls, lines: Iterable[str], delay: float = 0.0) -> ReplayEngine:
        return cls(split_turns(read_transcript(lines)), delay=delay)

    @property
    def remaining_turns(self) -> int:
        return len(self._turns) - self._next_turn

    def open(
        self,
        prompt: str,
        *,
        resume_token: str | None,
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
    ) -> ReplayStream:
        if self._next_turn >= len(self._turns):
            raise EngineError("Replay transcript has no more turns")
        events = self._turns[self._next_turn]
        self._next_turn += 1

        call = ReplayCall(prompt=prompt, resume_token=resume_token)
        self.calls.append(call)
        log.info("Replaying turn %d (%d events, resume=%s)", self._next_turn, len(events), resume_token)
        return ReplayStream(events, approve, {t.name: t for t in tools}, call, self.delay)


class ReplayStream:
    """Event stream for one replayed turn."""

    def __init__(
        self,
        events: list[dict[str, Any]],
        approve: ApprovalCallback,
        tools: dict[str, ToolSpec],
        call: ReplayCall,
        delay: float,
    ) -> None:
        self._events = events
        self._approve = approve
        self._tools = tools
        self._call = call
        self._delay = delay
        self._interrupted = False
        self._closed = False

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._play()

    async def _play(self) -> AsyncIterator[Any]:
        for record in self._events:
            if self._interrupted or self._closed:
                log.debug("Replay turn cut short")
                return
            if self._delay:
                await asyncio.sleep(self._delay)

            if record.get("type") == APPROVAL:
                await self._ask(record)
                continue

            await self._run_local_tool(record)
            yield record

    async def _ask(self, record: dict[str, Any]) -> None:
        tool_name = str(record.get("tool", ""))
        tool_input = record.get("input")
        decision = await self._approve(tool_name, tool_input if isinstance(tool_input, dict) else {})
        log.debug("Replay approval %s -> %s", tool_name, decision)
        self._call.decisions.append((tool_name, decision))

    async def _run_local_tool(self, record: dict[str, Any]) -> None:
        if record.get("type") != "tool-request":
            return
        name = str(record.get("name", ""))
        spec = self._tools.get(name) or self._tools.get(name.rsplit("__", 1)[-1])
        if spec is not None:
            tool_input = record.get("input")
            await spec.handler(tool_input if isinstance(tool_input, dict) else {})

    async def interrupt(self) -> None:
        self._interrupted = True

    async def aclose(self) -> None:
        self._closed = True
