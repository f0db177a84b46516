"""CLI entry point for playwright-repl."""

import sys


def main() -> int:
    """Main entry point for playwright-repl CLI."""
    from playwright_repl.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
