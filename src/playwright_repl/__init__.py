"""playwright-repl - persistent REPL client for the Playwright CLI daemon."""

__version__ = "0.1.0"

from playwright_repl.commands.parser import ParsedCommand, parse_input  # noqa: E402
from playwright_repl.errors import (  # noqa: E402
    ConnectionClosed,
    RemoteError,
    ReplError,
    StateConflict,
    TransportError,
    UserInputError,
)
from playwright_repl.recording import SessionManager, SessionMode, SessionPlayer, SessionRecorder  # noqa: E402
from playwright_repl.sequencer import ExecutionSequencer  # noqa: E402
from playwright_repl.transport import DaemonConnection  # noqa: E402

__all__ = [
    "ConnectionClosed",
    "DaemonConnection",
    "ExecutionSequencer",
    "ParsedCommand",
    "RemoteError",
    "ReplError",
    "SessionManager",
    "SessionMode",
    "SessionPlayer",
    "SessionRecorder",
    "StateConflict",
    "TransportError",
    "UserInputError",
    "parse_input",
]
