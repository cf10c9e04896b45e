"""Configuration management for agentwizard.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/agentwizard/ or %PROGRAMDATA%)
- User-level config (~/.config/agentwizard/, ~/.aw/ or %APPDATA%)
- Project-level config ($project_root/.aw/)
- Environment variable overrides (highest priority)

Example usage:
    from agentwizard.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.approval.shell_allow)
"""

from agentwizard.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from agentwizard.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from agentwizard.config.schema import (
    COMPLETION_SERVER_NAME,
    COMPLETION_TOOL_NAME,
    ApprovalConfig,
    Config,
    EngineConfig,
    LoggingConfig,
    UIConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "ApprovalConfig",
    "EngineConfig",
    "UIConfig",
    "LoggingConfig",
    "COMPLETION_TOOL_NAME",
    "COMPLETION_SERVER_NAME",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
