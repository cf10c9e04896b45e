"""Approval gateway for tool calls requested by the agent.

The engine calls ApprovalGateway.decide() before running any tool. Rules
are evaluated in order, first match wins:

1. Always-allowed tools (completion signal, plan entry)
2. Shell commands matching the configured allow-list
3. Web search, allowed with its domain scope restricted
4. Clarifying questions, answered on a multi-step surface
5. Plan exit, accepted or rejected on the plan surface
6. Everything else, on the generic approval surface with a diff if any

Any failure while a surface is shown is downgraded to a Deny with a fixed
message; it never propagates into the engine.
"""

from __future__ import annotations

import difflib
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from agentwizard.config.schema import ApprovalConfig
from agentwizard.logging import get_logger
from agentwizard.session.protocols import Allow, ApprovalDecision, Deny, PlanListener
from agentwizard.ui.types import (
    ClarifyingQuestion,
    ClarifyingQuestionsSurface,
    HistoryKind,
    PlanApprovalSurface,
    QuestionAnswer,
    QuestionOption,
    ToolApprovalSurface,
    ToolCallRecord,
    ToolCallStatus,
)

if TYPE_CHECKING:
    from agentwizard.session.registry import ToolCallRegistry
    from agentwizard.ui.store import UIStateStore

log = get_logger("session.approval")

SHELL_TOOL = "Bash"
WEB_SEARCH_TOOL = "WebSearch"
QUESTIONS_TOOL = "AskUserQuestion"
PLAN_EXIT_TOOL = "ExitPlanMode"

DENIED_BY_USER = "User denied this action"
APPROVAL_FAILED = "Failed to get user approval"
ANSWERS_FAILED = "Failed to get user answers"
PLAN_REJECTED = "User rejected the plan"
PLAN_FAILED = "Failed to get plan approval"


# -----------------------------------------------------------------------------
# Shell allow-list
# -----------------------------------------------------------------------------


def match_command(pattern: str, command: str) -> bool:
    """Match a shell command against one allow-list pattern.

    ``foo*`` is a prefix match, ``*foo`` a suffix match and a lone ``*``
    matches everything. Any other pattern must equal the command.
    """
    if pattern == "*":
        return True
    if pattern.endswith("*") and not pattern.startswith("*"):
        return command.startswith(pattern[:-1])
    if pattern.startswith("*") and not pattern.endswith("*"):
        return command.endswith(pattern[1:])
    return command == pattern


# Shell control operators. A command containing one is never matched
# against the allow-list.
SHELL_CONTROL = (";", "&", "|", "`", "$(", ">", "<", "\n", "\r")


def has_shell_control(command: str) -> bool:
    return any(token in command for token in SHELL_CONTROL)


class ShellAllowList:
    """Deny patterns checked first, then allow patterns.

    Only a single plain command can be allowed without asking.
    """

    def __init__(self, allow: Iterable[str], deny: Iterable[str] = ()) -> None:
        self.allow = list(allow)
        self.deny = list(deny)

    def allows(self, command: str) -> bool:
        command = command.strip()
        if not command:
            return False
        if has_shell_control(command):
            log.debug("Shell command uses control operators, asking: %s", command)
            return False
        if any(match_command(p, command) for p in self.deny):
            log.debug("Shell command hit deny pattern: %s", command)
            return False
        return any(match_command(p, command) for p in self.allow)


# -----------------------------------------------------------------------------
# Diffs
# -----------------------------------------------------------------------------


def unified_diff(path: str, old: str, new: str, context: int = 3) -> str:
    lines = difflib.unified_diff(
        old.splitlines(),
        new.splitlines(),
        fromfile=path,
        tofile=path,
        n=context,
        lineterm="",
    )
    return "\n".join(lines)


def target_file(tool_input: Mapping[str, Any]) -> str | None:
    for key in ("file_path", "path"):
        value = tool_input.get(key)
        if isinstance(value, str):
            return value
    return None


def compute_diff(tool_name: str, tool_input: Mapping[str, Any]) -> str | None:
    """Diff to show for a file-modifying tool call, if one can be built."""
    file_name = target_file(tool_input)
    old, new = tool_input.get("old_string"), tool_input.get("new_string")
    content = tool_input.get("content")

    if tool_name == "Edit" and isinstance(old, str) and isinstance(new, str) and file_name:
        return unified_diff(file_name, old, new)
    if tool_name == "Write" and isinstance(content, str) and file_name:
        return unified_diff(file_name, "", content)
    file_diff = tool_input.get("file_diff")
    if isinstance(file_diff, str):
        return file_diff
    return None


def parse_questions(tool_input: Mapping[str, Any]) -> tuple[ClarifyingQuestion, ...]:
    """Build question models from the questions tool's input."""
    questions = []
    for raw in tool_input.get("questions") or []:
        if not isinstance(raw, dict) or not isinstance(raw.get("question"), str):
            continue
        options = tuple(
            QuestionOption(label=str(o.get("label", "")), description=o.get("description"))
            for o in raw.get("options") or []
            if isinstance(o, dict) and o.get("label")
        )
        questions.append(
            ClarifyingQuestion(
                question=raw["question"],
                header=str(raw.get("header") or f"Q{len(questions) + 1}"),
                options=options,
                multi_select=bool(raw.get("multiSelect", raw.get("multi_select", False))),
            )
        )
    return tuple(questions)


# -----------------------------------------------------------------------------
# Gateway
# -----------------------------------------------------------------------------


class ApprovalGateway:
    """Decides, per tool call, between auto-approval and asking the human.

    Args:
        store: UI store that hosts the approval surfaces
        config: Approval policy
        plan_listener: Optional collaborator told about accepted plans
    """

    def __init__(
        self,
        store: UIStateStore,
        config: ApprovalConfig | None = None,
        plan_listener: PlanListener | None = None,
    ) -> None:
        self._store = store
        self.config = config or ApprovalConfig()
        self.shell = ShellAllowList(self.config.shell_allow, self.config.shell_deny)
        self._auto_allow = frozenset(self.config.auto_allow_tools)
        self._plan_listener = plan_listener
        self._interrupt: Callable[[], None] | None = None
        self._registry: ToolCallRegistry | None = None

    def bind(
        self,
        interrupt: Callable[[], None] | None,
        registry: ToolCallRegistry | None,
    ) -> None:
        """Attach the current iteration's interrupt trigger and registry.

        Declined clarifying questions fire the trigger; denied tool calls
        are closed in the registry so each call keeps exactly one entry.
        """
        self._interrupt = interrupt
        self._registry = registry

    async def decide(self, tool_name: str, tool_input: dict[str, Any]) -> ApprovalDecision:
        log.debug("Approval requested for %s: %s", tool_name, tool_input)

        if tool_name in self._auto_allow:
            log.debug("Auto-approved %s", tool_name)
            return Allow(tool_input)

        if tool_name == SHELL_TOOL:
            command = tool_input.get("command")
            if isinstance(command, str) and self.shell.allows(command):
                log.info("Shell command allowed by allow-list: %s", command)
                return Allow(tool_input)

        if tool_name == WEB_SEARCH_TOOL:
            return self._scope_web_search(tool_input)

        if tool_name == QUESTIONS_TOOL:
            return await self._ask_questions(tool_input)

        if tool_name == PLAN_EXIT_TOOL:
            return await self._approve_plan(tool_input)

        return await self._ask_approval(tool_name, tool_input)

    def _scope_web_search(self, tool_input: dict[str, Any]) -> Allow:
        configured = list(self.config.web_search_domains)
        if not configured:
            return Allow(tool_input)
        requested = tool_input.get("allowed_domains")
        scoped = configured
        if isinstance(requested, list):
            scoped = [d for d in requested if d in configured] or configured
        log.debug("Web search scoped to %s", scoped)
        return Allow({**tool_input, "allowed_domains": scoped})

    async def _ask_questions(self, tool_input: dict[str, Any]) -> ApprovalDecision:
        try:
            questions = parse_questions(tool_input)
            result = await self._store.clarifying_questions(ClarifyingQuestionsSurface(questions))
        except Exception as e:
            log.error("Error in clarifying questions: %s", e)
            return Deny(ANSWERS_FAILED)

        if result.declined:
            self._store.add_item(HistoryKind.DECLINED_QUESTIONS, "User declined to answer questions")
            if self._interrupt is not None:
                self._interrupt()
        else:
            self._store.add_item(
                HistoryKind.CLARIFYING_QUESTIONS_RESULT,
                "User answered the agent's questions:",
                questions_and_answers=[
                    QuestionAnswer(q.question, result.answers.get(q.question, "(no answer)"))
                    for q in questions
                ],
            )

        return Allow(
            {
                "questions": tool_input.get("questions", []),
                "answers": dict(result.answers),
            }
        )

    async def _approve_plan(self, tool_input: dict[str, Any]) -> ApprovalDecision:
        plan = tool_input.get("plan")
        plan_text = plan if isinstance(plan, str) else ""
        try:
            decision = await self._store.plan_approval(PlanApprovalSurface(plan=plan_text))
        except Exception as e:
            log.error("Error in plan approval: %s", e)
            return Deny(PLAN_FAILED)

        if decision.approved:
            self._store.add_item(HistoryKind.PLAN_APPROVED, "Plan approved", plan=plan_text)
            if self._plan_listener is not None:
                try:
                    self._plan_listener.plan_accepted(plan_text)
                except Exception as e:
                    log.warning("Plan listener failed: %s", e)
            return Allow(tool_input)

        feedback = (decision.feedback or "").strip()
        self._store.add_item(
            HistoryKind.PLAN_REJECTED, "Plan rejected", label=feedback or None, plan=plan_text
        )
        return Deny(feedback or PLAN_REJECTED)

    async def _ask_approval(self, tool_name: str, tool_input: dict[str, Any]) -> ApprovalDecision:
        description = tool_input.get("description")
        try:
            surface = ToolApprovalSurface(
                tool_name=tool_name,
                input=tool_input,
                description=description if isinstance(description, str) else None,
                diff_content=compute_diff(tool_name, tool_input),
                file_name=target_file(tool_input),
            )
            answer = await self._store.tool_approval(surface)
        except Exception as e:
            log.error("Error in tool approval: %s", e)
            return Deny(APPROVAL_FAILED)

        log.info("Tool approval result for %s: %s", tool_name, answer)
        if answer.allowed:
            return Allow(tool_input)

        if self._registry is not None:
            self._registry.deny(tool_name, tool_input)
        else:
            self._store.add_item(
                HistoryKind.TOOL_CALL,
                tool_name,
                tool_call=ToolCallRecord(
                    tool_name=tool_name,
                    status=ToolCallStatus.DENIED,
                    input=dict(tool_input),
                    description=surface.description,
                ),
            )
        feedback = (answer.feedback or "").strip()
        return Deny(feedback or DENIED_BY_USER)
