"""Engine event types.

Raw engine output is decoded exactly once, at the stream boundary, into a
closed union of frozen pydantic models. Two raw shapes are understood:

- flat events already tagged with one of our kinds, e.g.
  ``{"type": "tool-request", "callId": "t1", "name": "Read", "input": {...}}``
- agent SDK message envelopes (``assistant``, ``user``, ``result``,
  ``system``) whose content blocks fan out into several events

Anything else becomes ``Unknown`` so newer engines never break the loop.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from agentwizard.logging import get_logger

log = get_logger("session.events")


class EngineEventModel(BaseModel):
    """Base model for engine events with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    session_id: str | None = Field(default=None, alias="sessionId")


class AssistantText(EngineEventModel):
    type: Literal["assistant-text"] = "assistant-text"
    text: str


class ToolRequest(EngineEventModel):
    type: Literal["tool-request"] = "tool-request"
    call_id: str = Field(alias="callId")
    name: str = "Unknown tool"
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResult(EngineEventModel):
    type: Literal["tool-result"] = "tool-result"
    call_id: str = Field(alias="callId")
    is_error: bool = Field(default=False, alias="isError")
    content: Any = None


class SessionStarted(EngineEventModel):
    type: Literal["session-started"] = "session-started"
    session_id: str = Field(alias="sessionId")


class TurnResult(EngineEventModel):
    type: Literal["turn-result"] = "turn-result"
    subtype: str = "success"
    result: str | None = None
    errors: list[str] = Field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.subtype == "success"


class SystemInit(EngineEventModel):
    type: Literal["system-init"] = "system-init"
    model: str | None = None
    tools: list[str] = Field(default_factory=list)


class Unknown(EngineEventModel):
    """Forward-compatible catch-all for shapes this version does not know."""

    type: Literal["unknown"] = "unknown"
    raw_type: str | None = None
    payload: Any = None


EngineEvent = Annotated[
    Union[AssistantText, ToolRequest, ToolResult, SessionStarted, TurnResult, SystemInit, Unknown],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(EngineEvent)

_FLAT_KINDS = frozenset(
    {"assistant-text", "tool-request", "tool-result", "session-started", "turn-result", "system-init"}
)


def decode_events(raw: Any) -> list[EngineEventModel]:
    """Decode one raw engine message into zero or more events."""
    if isinstance(raw, EngineEventModel):
        return [raw]
    if not isinstance(raw, dict):
        return [Unknown(raw_type=type(raw).__name__, payload=raw)]

    kind = raw.get("type")
    try:
        if kind in _FLAT_KINDS:
            return [_EVENT_ADAPTER.validate_python(raw)]
        if kind == "assistant":
            return _decode_assistant(raw)
        if kind == "user":
            return _decode_user(raw)
        if kind == "result":
            return [_decode_result(raw)]
        if kind == "system":
            return [_decode_system(raw)]
    except ValidationError as e:
        log.warning("Malformed %s event: %s", kind, e.errors(include_url=False))

    return [Unknown(raw_type=str(kind) if kind is not None else None, payload=raw)]


def _content_blocks(raw: dict[str, Any]) -> list[dict[str, Any]]:
    message = raw.get("message")
    content = message.get("content") if isinstance(message, dict) else raw.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _decode_assistant(raw: dict[str, Any]) -> list[EngineEventModel]:
    session_id = raw.get("session_id")
    events: list[EngineEventModel] = []
    for block in _content_blocks(raw):
        block_type = block.get("type")
        if block_type == "text" and isinstance(block.get("text"), str):
            events.append(AssistantText(text=block["text"], session_id=session_id))
        elif block_type == "tool_use":
            tool_input = block.get("input")
            events.append(
                ToolRequest(
                    call_id=str(block.get("id", "")),
                    name=block.get("name") or "Unknown tool",
                    input=tool_input if isinstance(tool_input, dict) else {},
                    session_id=session_id,
                )
            )
    return events


def _decode_user(raw: dict[str, Any]) -> list[EngineEventModel]:
    session_id = raw.get("session_id")
    return [
        ToolResult(
            call_id=str(block.get("tool_use_id", "")),
            is_error=block.get("is_error") is True,
            content=block.get("content"),
            session_id=session_id,
        )
        for block in _content_blocks(raw)
        if block.get("type") == "tool_result"
    ]


def _decode_result(raw: dict[str, Any]) -> TurnResult:
    errors = raw.get("errors") or []
    result = raw.get("result")
    return TurnResult(
        subtype=str(raw.get("subtype", "success")),
        result=result if isinstance(result, str) else None,
        errors=[str(e) for e in errors] if isinstance(errors, list) else [str(errors)],
        session_id=raw.get("session_id"),
    )


def _decode_system(raw: dict[str, Any]) -> EngineEventModel:
    if raw.get("subtype") != "init":
        return Unknown(raw_type="system", payload=raw, session_id=raw.get("session_id"))
    tools = raw.get("tools") or []
    return SystemInit(
        model=raw.get("model"),
        tools=[str(t) for t in tools] if isinstance(tools, list) else [],
        session_id=raw.get("session_id"),
    )
