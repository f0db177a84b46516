"""Interactive REPL for playwright-repl."""

from playwright_repl.interactive.commands import CommandHandler
from playwright_repl.interactive.repl import InteractiveRepl, start_repl

__all__ = [
    "CommandHandler",
    "InteractiveRepl",
    "start_repl",
]
