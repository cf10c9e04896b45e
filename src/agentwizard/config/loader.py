"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from agentwizard.config.merge import merge_configs
from agentwizard.config.paths import get_config_paths
from agentwizard.config.schema import (
    ApprovalConfig,
    Config,
    EngineConfig,
    LoggingConfig,
    UIConfig,
)
from agentwizard.logging import get_logger

# Module logger (may not be configured yet at import time)
log = get_logger("config")

_cached_config: Config | None = None

_KNOWN_KEYS = {"approval", "engine", "ui", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build a config dict from environment variables (highest priority)."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("AW_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    model = os.environ.get("AW_MODEL")
    if model:
        overrides.setdefault("engine", {})["model"] = model

    return overrides


def _str_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return default
    return [v for v in value if isinstance(v, str) and v]


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    defaults = ApprovalConfig()
    approval_data = data.get("approval") or {}
    approval = ApprovalConfig(
        auto_allow_tools=_str_list(approval_data.get("auto_allow_tools"), defaults.auto_allow_tools),
        shell_allow=_str_list(approval_data.get("shell_allow"), defaults.shell_allow),
        shell_deny=_str_list(approval_data.get("shell_deny"), defaults.shell_deny),
        web_search_domains=_str_list(approval_data.get("web_search_domains"), []),
    )

    engine_data = data.get("engine") or {}
    max_turns = engine_data.get("max_turns", 0)
    engine = EngineConfig(
        model=engine_data.get("model"),
        max_turns=max_turns if isinstance(max_turns, int) and max_turns > 0 else 0,
        working_directory=engine_data.get("working_directory"),
    )

    ui_defaults = UIConfig()
    ui_data = data.get("ui") or {}
    ui = UIConfig(
        spinner_message=ui_data.get("spinner_message", ui_defaults.spinner_message),
        success_message=ui_data.get("success_message", ui_defaults.success_message),
        refresh_per_second=float(ui_data.get("refresh_per_second", ui_defaults.refresh_per_second)),
    )

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}

    return Config(
        approval=approval,
        engine=engine,
        ui=ui,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.aw/config.yaml)
    3. User config (~/.config/agentwizard/ or ~/.aw/)
    4. System config (/etc/agentwizard/ or %PROGRAMDATA%)

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))

    # Only the global config is cached
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config. Useful for testing or forcing a reload."""
    global _cached_config
    _cached_config = None
