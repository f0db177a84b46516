"""Recording and replay functionality."""

from playwright_repl.recording.manager import SessionManager, SessionMode
from playwright_repl.recording.player import SessionPlayer
from playwright_repl.recording.recorder import SessionRecorder

__all__ = [
    "SessionManager",
    "SessionMode",
    "SessionPlayer",
    "SessionRecorder",
]
