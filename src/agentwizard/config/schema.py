"""Configuration schema dataclasses for agentwizard.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

COMPLETION_TOOL_NAME = "CompleteIntegration"
COMPLETION_SERVER_NAME = "agentwizard"


def _default_auto_allow() -> list[str]:
    return [
        COMPLETION_TOOL_NAME,
        f"mcp__{COMPLETION_SERVER_NAME}__{COMPLETION_TOOL_NAME}",
        "EnterPlanMode",
    ]


def _default_shell_allow() -> list[str]:
    return [
        "ls",
        "ls *",
        "pwd",
        "git status",
        "git diff*",
        "git log*",
        "cat *",
        "npm run lint",
        "npm run test*",
        "* --version",
    ]


@dataclass
class ApprovalConfig:
    """Approval policy for tool calls requested by the agent.

    Shell patterns use a deliberately small syntax:
    "npm install*" is a prefix match, "*--help" a suffix match,
    anything else must match the whole command.

    Example config.yaml:
        approval:
          shell_allow:
            - "npm install*"
            - "pytest"
          shell_deny:
            - "curl*"
          web_search_domains:
            - docs.python.org
    """

    auto_allow_tools: list[str] = field(default_factory=_default_auto_allow)
    shell_allow: list[str] = field(default_factory=_default_shell_allow)
    shell_deny: list[str] = field(default_factory=lambda: ["curl*", "wget*"])
    web_search_domains: list[str] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Agent engine settings."""

    model: str | None = None  # Engine default when None
    max_turns: int = 0  # Resume iterations before giving up, 0 = unlimited
    working_directory: str | None = None  # Default: current directory


@dataclass
class UIConfig:
    """Terminal front end settings."""

    spinner_message: str = "Working on your project..."
    success_message: str = "Agent run complete"
    refresh_per_second: float = 8.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    approval: ApprovalConfig = field(default_factory=ApprovalConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown top-level keys
