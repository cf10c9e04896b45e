"""Tool call registry.

Tracks tool invocations between the agent's request and the matching result.
Each registered call leaves exactly one terminal history entry: success or
error when its result arrives, denied when the human refuses it, interrupted
when an interrupt flushes it.
Results for ids the registry does not know are ignored, since the engine's
event ordering is not trusted.
"""

from __future__ import annotations

import difflib
import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from agentwizard.logging import get_logger
from agentwizard.ui.types import HistoryItem, HistoryKind, ToolCallRecord, ToolCallStatus

if TYPE_CHECKING:
    from agentwizard.ui.store import UIStateStore

log = get_logger("session.registry")

# Bookkeeping tools the engine uses internally; never shown
INTERNAL_TOOLS = frozenset({"Task", "AskUserQuestion", "TodoWrite"})


def _signature(tool_name: str, tool_input: Mapping[str, Any]) -> str:
    return tool_name + json.dumps(dict(tool_input), sort_keys=True, default=str)


@dataclass(frozen=True, slots=True)
class PendingToolCall:
    call_id: str
    tool_name: str
    input: Mapping[str, Any]
    description: str | None = None

    def record(self, status: ToolCallStatus, **extra: Any) -> ToolCallRecord:
        return ToolCallRecord(
            tool_name=self.tool_name,
            status=status,
            input=self.input,
            description=self.description,
            **extra,
        )


class ToolCallRegistry:
    """Open tool calls for one loop iteration, keyed by call id."""

    def __init__(self, store: UIStateStore, skip: Iterable[str] = INTERNAL_TOOLS) -> None:
        self._store = store
        self._skip = frozenset(skip)
        self._open: dict[str, PendingToolCall] = {}
        self._early_denials: list[str] = []

    def __len__(self) -> int:
        return len(self._open)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._open

    def __iter__(self) -> Iterator[PendingToolCall]:
        return iter(list(self._open.values()))

    def register(self, call_id: str, tool_name: str, tool_input: Mapping[str, Any]) -> bool:
        """Open a tool call. Returns False when the call is skipped."""
        if tool_name in self._skip:
            log.debug("Skipping internal tool %s (%s)", tool_name, call_id)
            return False
        if call_id in self._open:
            log.debug("Tool call %s already registered, ignoring duplicate", call_id)
            return False

        description = tool_input.get("description")
        call = PendingToolCall(
            call_id=call_id,
            tool_name=tool_name,
            input=MappingProxyType(dict(tool_input)),
            description=description if isinstance(description, str) else None,
        )
        log.debug("Tool use requested: %s (id: %s)", tool_name, call_id)

        signature = _signature(tool_name, tool_input)
        if signature in self._early_denials:
            self._early_denials.remove(signature)
            self._record_denied(call)
            return True

        self._open[call_id] = call
        return True

    def deny(self, tool_name: str, tool_input: Mapping[str, Any]) -> None:
        """Close the open call the human denied.

        Approval can be asked before or after the request event arrives, so
        a denial with no matching open call is remembered and applied when
        the request is registered. Internal tools are never registered, so
        their denial is recorded straight away.
        """
        description = tool_input.get("description")
        if tool_name in self._skip:
            self._record_denied(
                PendingToolCall(
                    call_id="",
                    tool_name=tool_name,
                    input=MappingProxyType(dict(tool_input)),
                    description=description if isinstance(description, str) else None,
                )
            )
            return
        signature = _signature(tool_name, tool_input)
        for call in reversed(list(self._open.values())):
            if _signature(call.tool_name, call.input) == signature:
                del self._open[call.call_id]
                self._record_denied(call)
                return
        self._early_denials.append(signature)

    def drop_early_denials(self) -> int:
        """Forget denials whose request never arrived. Returns the count."""
        dropped = len(self._early_denials)
        if dropped:
            log.debug("Dropping %d denial(s) with no matching request", dropped)
        self._early_denials.clear()
        return dropped

    def _record_denied(self, call: PendingToolCall) -> None:
        self._store.add_item(
            HistoryKind.TOOL_CALL,
            call.tool_name,
            tool_call=call.record(ToolCallStatus.DENIED),
        )

    def complete(self, call_id: str, is_error: bool, content: Any) -> HistoryItem | None:
        """Close a tool call with its result and record it in history."""
        call = self._open.pop(call_id, None)
        if call is None:
            log.debug("Result for unknown tool call %s ignored", call_id)
            return None

        if is_error:
            text = content_text(content)
            record = call.record(
                ToolCallStatus.ERROR,
                error=text if text is not None else str(content),
            )
        else:
            record = call.record(
                ToolCallStatus.SUCCESS,
                result=summarize_result(call.tool_name, content, call.input),
            )
        return self._store.add_item(HistoryKind.TOOL_CALL, call.tool_name, tool_call=record)

    def flush_interrupted(self) -> int:
        """Record every open call as interrupted and clear the registry."""
        calls = list(self._open.values())
        self._open.clear()
        for call in calls:
            self._store.add_item(
                HistoryKind.TOOL_CALL,
                call.tool_name,
                tool_call=call.record(ToolCallStatus.INTERRUPTED),
            )
        return len(calls)


# -----------------------------------------------------------------------------
# Result summaries
# -----------------------------------------------------------------------------


def content_text(content: Any) -> str | None:
    """Flatten tool result content to text, or None when it has none."""
    if isinstance(content, str):
        return content or None
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict):
                text = block.get("text")
            else:
                text = getattr(block, "text", None)
            parts.append(text if isinstance(text, str) else "")
        joined = "\n".join(parts)
        return joined or None
    return None


def count_lines(text: str) -> int:
    """Count lines, not counting the empty remainder after a final newline."""
    if not text:
        return 0
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return len(lines)


def _non_blank_lines(text: str) -> int:
    return sum(1 for line in text.strip().split("\n") if line.strip())


def diff_line_counts(old: str, new: str) -> tuple[int, int]:
    """Return (added, removed) line counts between two texts."""
    added = removed = 0
    for line in difflib.unified_diff(old.splitlines(), new.splitlines(), lineterm="", n=0):
        if line.startswith("+++") or line.startswith("---"):
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
    return added, removed


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def summarize_result(
    tool_name: str,
    content: Any,
    tool_input: Mapping[str, Any] | None = None,
) -> str | None:
    """Short human summary for a successful tool result.

    Returns None for tools without a summary and for malformed or empty
    content; never raises.
    """
    text = content_text(content)
    if not text:
        return None
    tool_input = tool_input or {}

    if tool_name == "Glob":
        return f"Found {_non_blank_lines(text)} files"
    if tool_name == "Grep":
        return f"Found {_non_blank_lines(text)} matches"
    if tool_name == "Read":
        return f"Read {count_lines(text)} lines"
    if tool_name == "Write":
        written = tool_input.get("content")
        if isinstance(written, str):
            return f"Wrote {_plural(count_lines(written), 'line')}"
        return None
    if tool_name == "Edit":
        old, new = tool_input.get("old_string"), tool_input.get("new_string")
        if isinstance(old, str) and isinstance(new, str):
            added, removed = diff_line_counts(old, new)
            return f"Added {_plural(added, 'line')}, removed {_plural(removed, 'line')}"
        return None
    return None
