"""Logging configuration for agentwizard.

Uses Python's standard logging module with support for:
- File logging via config or AW_LOG environment variable
- Verbosity levels: error(0), warning(1), info(2), verbose(3), trace(4)
- Stderr output only when stderr is a console and no live display owns it
- A run header written once per process so appended log files stay readable
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentwizard.config.schema import LoggingConfig

# Custom log levels
TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

DEFAULT_LOG_FILE = "/tmp/agentwizard.log"

logger = logging.getLogger("agentwizard")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# --verbose=N to log levels (0=errors only, 4=everything)
_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective level: verbose (int) wins over level (str)."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_MAP.get(config.verbose, TRACE)
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None, *, console: bool = True) -> str | None:
    """Initialize logging based on configuration.

    Call this once at startup. Subsequent calls are no-ops.

    Args:
        config: Optional LoggingConfig with level, verbose, and file settings.
        console: Allow a stderr handler. The live terminal display passes
            False since log lines would tear its redraw region.

    Returns:
        The log file path in use, or None when logging goes to stderr only.
    """
    global _initialized
    if _initialized:
        return None
    _initialized = True

    log_level = resolve_level(config)
    logger.setLevel(log_level)

    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    # Config already includes the env var via the loader
    log_path = config.file if config and config.file else os.environ.get("AW_LOG")
    if not log_path and not console:
        log_path = DEFAULT_LOG_FILE

    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            _write_run_header(file_handler)
            return log_path
        except Exception as e:
            if console and sys.stderr.isatty():
                print(f"[agentwizard] Failed to open log file: {e}", file=sys.stderr)
                _add_stderr_handler(formatter, log_level)
            return None

    if console and sys.stderr.isatty():
        _add_stderr_handler(formatter, log_level)
    return None


def _write_run_header(handler: logging.FileHandler) -> None:
    stamp = time.strftime("%Y-%m-%d %H:%M:%S")
    handler.stream.write(f"\n==== agentwizard run {stamp} (pid {os.getpid()}) ====\n")
    handler.flush()


def _add_stderr_handler(formatter: logging.Formatter, level: int = logging.DEBUG) -> None:
    """Add a stderr handler to the logger."""
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional name for a child logger (e.g., "session.loop").
              If None, returns the root agentwizard logger.
    """
    if name:
        return logger.getChild(name)
    return logger
