"""CLI entry point for agentwizard."""

import sys


def main() -> int:
    """Main entry point for the agentwizard CLI."""
    from agentwizard.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
