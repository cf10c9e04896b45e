"""Claude Agent SDK engine.

Requires the optional ``claude`` extra (``pip install agentwizard[claude]``).
The SDK is imported on first use so the rest of the package works without it.

In-process tools (the completion tool) are served from an SDK MCP server
named after the package, so the agent sees them as
``mcp__agentwizard__<name>``.
"""

from __future__ import annotations

import importlib
from collections.abc import AsyncIterator, Sequence
from types import ModuleType
from typing import Any

from agentwizard.config.schema import COMPLETION_SERVER_NAME
from agentwizard.errors import EngineUnavailable
from agentwizard.logging import get_logger
from agentwizard.session.protocols import Allow, ApprovalCallback, ToolSpec

log = get_logger("session.engines.claude")

_sdk_module: ModuleType | None = None


def load_sdk() -> ModuleType:
    """Import claude_agent_sdk once, with an actionable error if missing."""
    global _sdk_module
    if _sdk_module is None:
        try:
            _sdk_module = importlib.import_module("claude_agent_sdk")
        except ImportError as e:
            raise EngineUnavailable(
                "claude-agent-sdk is not installed; install agentwizard[claude]"
            ) from e
    return _sdk_module


def to_raw(sdk: ModuleType, message: Any) -> Any:
    """Convert an SDK message object to the envelope dict decode_events reads."""
    if isinstance(message, sdk.AssistantMessage):
        return {
            "type": "assistant",
            "message": {"content": [_block(sdk, b) for b in message.content]},
        }
    if isinstance(message, sdk.UserMessage):
        content = message.content if isinstance(message.content, list) else []
        return {"type": "user", "message": {"content": [_block(sdk, b) for b in content]}}
    if isinstance(message, sdk.ResultMessage):
        errors = [message.result] if message.is_error and message.result else []
        return {
            "type": "result",
            "subtype": message.subtype,
            "result": message.result,
            "errors": errors,
            "session_id": message.session_id,
        }
    if isinstance(message, sdk.SystemMessage):
        data = message.data if isinstance(message.data, dict) else {}
        return {**data, "type": "system", "subtype": message.subtype}
    return message


def _block(sdk: ModuleType, block: Any) -> dict[str, Any]:
    if isinstance(block, sdk.TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, sdk.ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, sdk.ToolResultBlock):
        return {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
            "is_error": bool(block.is_error),
        }
    return {"type": type(block).__name__}


class ClaudeAgentEngine:
    """AgentEngine backed by ClaudeSDKClient.

    Args:
        model: Model override, SDK default when None
        cwd: Working directory for the agent's tools
        permission_mode: SDK permission mode; "default" routes every
            tool through the approval callback
    """

    def __init__(
        self,
        model: str | None = None,
        cwd: str | None = None,
        permission_mode: str = "default",
    ) -> None:
        self.model = model
        self.cwd = cwd
        self.permission_mode = permission_mode

    def open(
        self,
        prompt: str,
        *,
        resume_token: str | None,
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
    ) -> ClaudeStream:
        return ClaudeStream(self, prompt, resume_token, approve, tools)


class ClaudeStream:
    """One query/response exchange with a fresh SDK client."""

    def __init__(
        self,
        engine: ClaudeAgentEngine,
        prompt: str,
        resume_token: str | None,
        approve: ApprovalCallback,
        tools: Sequence[ToolSpec],
    ) -> None:
        self._engine = engine
        self._prompt = prompt
        self._resume = resume_token
        self._approve = approve
        self._tools = list(tools)
        self._client: Any = None

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._messages()

    async def _messages(self) -> AsyncIterator[Any]:
        sdk = load_sdk()
        options = sdk.ClaudeAgentOptions(
            model=self._engine.model,
            cwd=self._engine.cwd,
            resume=self._resume,
            permission_mode=self._engine.permission_mode,
            can_use_tool=self._can_use_tool,
            mcp_servers={COMPLETION_SERVER_NAME: self._tool_server(sdk)},
            stderr=lambda line: log.debug("CLI stderr: %s", line),
        )
        self._client = sdk.ClaudeSDKClient(options=options)
        log.info("Connecting to Claude agent (resume=%s)", self._resume)
        await self._client.connect()
        await self._client.query(self._prompt)
        async for message in self._client.receive_response():
            yield to_raw(sdk, message)

    def _tool_server(self, sdk: ModuleType) -> Any:
        sdk_tools = [sdk.tool(spec.name, spec.description, {})(_mcp_handler(spec)) for spec in self._tools]
        return sdk.create_sdk_mcp_server(name=COMPLETION_SERVER_NAME, version="1.0.0", tools=sdk_tools)

    async def _can_use_tool(self, tool_name: str, input_data: dict[str, Any], context: Any) -> Any:
        sdk = load_sdk()
        decision = await self._approve(tool_name, dict(input_data))
        if isinstance(decision, Allow):
            return sdk.PermissionResultAllow(updated_input=decision.updated_input)
        return sdk.PermissionResultDeny(message=decision.message)

    async def interrupt(self) -> None:
        if self._client is None:
            log.info("Interrupt before the client connected, nothing to forward")
            return
        await self._client.interrupt()

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.disconnect()


def _mcp_handler(spec: ToolSpec) -> Any:
    async def handler(args: dict[str, Any]) -> dict[str, Any]:
        text = await spec.handler(args)
        return {"content": [{"type": "text", "text": text}]}

    return handler
