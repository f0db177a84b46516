"""Transport layer for daemon messages."""

from playwright_repl.transport.connection import DaemonConnection
from playwright_repl.transport.framing import LineFramer
from playwright_repl.transport.messages import Request, Response

__all__ = [
    "DaemonConnection",
    "LineFramer",
    "Request",
    "Response",
]
