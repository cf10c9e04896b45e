"""Command-line interface for agentwizard."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from agentwizard.config import Config, load_config
from agentwizard.errors import WizardError
from agentwizard.logging import get_logger, setup_logging
from agentwizard.session import LoopState, SessionLoop
from agentwizard.session.protocols import AgentEngine
from agentwizard.ui import HistoryKind, KeyRouter, Renderer, TerminalInput, UIStateStore

log = get_logger("cli")

console = Console(stderr=True)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentwizard",
        description="Supervise a coding agent session from the terminal",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Project directory whose .aw/config.yaml is loaded",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Engine to drive")

    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay a recorded JSONL transcript",
    )
    replay_parser.add_argument("file", type=Path, help="Transcript file (JSONL)")
    replay_parser.add_argument(
        "--prompt",
        default="replay",
        help="Prompt recorded for the first turn",
    )
    replay_parser.add_argument(
        "--delay",
        type=float,
        default=0.0,
        help="Seconds between replayed events",
    )

    run_parser = subparsers.add_parser(
        "run",
        help="Run a live Claude agent (needs the claude extra)",
    )
    run_parser.add_argument("prompt", help="Initial prompt for the agent")
    run_parser.add_argument(
        "--cwd",
        type=Path,
        help="Working directory for the agent (default: config or current)",
    )
    run_parser.add_argument(
        "--resume",
        help="Session id to resume",
    )
    run_parser.add_argument(
        "--model",
        help="Model override",
    )

    return parser


def build_engine(parsed: argparse.Namespace, config: Config) -> AgentEngine:
    """Create the engine named on the command line."""
    if parsed.mode == "replay":
        from agentwizard.session.engines.replay import ReplayEngine

        if not parsed.file.is_file():
            raise WizardError(f"Transcript not found: {parsed.file}")
        return ReplayEngine.from_path(parsed.file, delay=parsed.delay)

    from agentwizard.session.engines.claude import ClaudeAgentEngine, load_sdk

    load_sdk()
    cwd = parsed.cwd or config.engine.working_directory or os.getcwd()
    return ClaudeAgentEngine(model=parsed.model or config.engine.model, cwd=str(cwd))


async def run_session(
    engine: AgentEngine,
    config: Config,
    prompt: str,
    resume_token: str | None = None,
) -> int:
    """Drive one session with the live terminal display.

    Returns:
        Exit code
    """
    store = UIStateStore()
    router = KeyRouter(store)
    renderer = Renderer(store, router, refresh_per_second=config.ui.refresh_per_second)
    loop = SessionLoop(engine, store, config)

    with renderer, TerminalInput(router, on_key=renderer.refresh):
        result = await loop.run_session(prompt, resume_token)
        if result.state is LoopState.COMPLETED:
            store.add_item(HistoryKind.SUCCESS, config.ui.success_message)

    if result.session_id:
        console.print(f"[dim]Session: {result.session_id}[/dim]")
    return 0 if result.state is LoopState.COMPLETED else 1


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.mode is None:
        parser.print_help()
        return 1

    config = load_config(project_root=str(parsed.config) if parsed.config else None)
    if parsed.verbose:
        # Default is info (2); each -v steps toward trace (4)
        config.logging.verbose = min(2 + parsed.verbose, 4)
    log_path = setup_logging(config.logging, console=False)

    prompt = parsed.prompt
    resume = getattr(parsed, "resume", None)
    try:
        engine = build_engine(parsed, config)
        return asyncio.run(run_session(engine, config, prompt, resume))
    except WizardError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        log.exception("Session failed")
        console.print(f"[red]Error: {e}[/red]")
        if log_path:
            console.print(f"[dim]See {log_path} for details[/dim]")
        return 1


def main() -> int:
    """Console script entry point."""
    return run_cli(sys.argv[1:])
