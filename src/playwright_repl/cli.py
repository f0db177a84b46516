"""Command-line interface for playwright-repl."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from playwright_repl import __version__

EPILOG = """\
examples:
  playwright-repl                           start REPL
  playwright-repl --headed                  start with visible browser
  playwright-repl --replay login.pw         replay a session
  playwright-repl --replay login.pw --step  step through replay
  echo "open https://example.com" | playwright-repl
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="playwright-repl",
        description="Interactive REPL for Playwright browser automation",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-s", "--session",
        help='Session name (default: "default")',
    )
    parser.add_argument(
        "-b", "--browser",
        help="Browser: chrome, firefox, webkit, msedge",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        default=None,
        help="Run browser in headed mode",
    )
    parser.add_argument(
        "--persistent",
        action="store_true",
        default=None,
        help="Use persistent browser profile",
    )
    parser.add_argument(
        "--profile",
        help="Persistent profile directory",
    )
    parser.add_argument(
        "--config",
        help="Daemon config file, passed through when the daemon is started",
    )
    parser.add_argument(
        "--repl-config",
        type=Path,
        help="REPL config file (default: ./playwright-repl.yaml)",
    )
    parser.add_argument(
        "--socket",
        help="Daemon socket path or pipe name (default: derived from workspace and session)",
    )
    parser.add_argument(
        "--replay",
        metavar="FILE",
        help="Replay a .pw session file and exit",
    )
    parser.add_argument(
        "--record",
        metavar="FILE",
        help="Start REPL with recording to file",
    )
    parser.add_argument(
        "--step",
        action="store_true",
        help="Pause between commands during replay",
    )
    parser.add_argument(
        "--no-auto-start",
        dest="auto_start",
        action="store_false",
        default=None,
        help="Do not start the daemon when it is not running",
    )
    parser.add_argument(
        "-q", "--silent",
        action="store_true",
        default=None,
        help="Suppress banner and status messages",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to this file",
    )
    return parser


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.step and not parsed.replay:
        parser.error("--step requires --replay")

    from playwright_repl.config import load_config
    from playwright_repl.errors import ReplError
    from playwright_repl.logging import setup_logging

    try:
        config = load_config(
            config_path=parsed.repl_config,
            session_name=parsed.session,
            socket_path=parsed.socket,
            browser=parsed.browser,
            headed=parsed.headed,
            persistent=parsed.persistent,
            profile=parsed.profile,
            daemon_config=parsed.config,
            auto_start=parsed.auto_start,
            silent=parsed.silent,
            verbose=(1 + parsed.verbose) if parsed.verbose else None,
            log_file=parsed.log_file,
        )
    except ReplError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.verbose, config.log_file)

    from playwright_repl.interactive.repl import start_repl

    try:
        return asyncio.run(
            start_repl(config, replay=parsed.replay, step=parsed.step, record=parsed.record)
        )
    except ReplError as e:
        print(f"Fatal: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
