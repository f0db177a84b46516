"""Exception types for playwright-repl.

TransportError family: the socket channel could not deliver a request or
lost its connection. RemoteError: the daemon answered with an explicit
``error`` field. StateConflict and UserInputError never reach the socket.

Malformed or unmatched incoming records are not exceptions at all; the
transport drops them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright_repl.recording.manager import SessionMode


class ReplError(Exception):
    """Base class for all playwright-repl errors."""


class TransportError(ReplError):
    """Not connected, write failure, or unserializable outgoing payload."""


class DaemonConnectionError(TransportError):
    """Could not establish the socket connection to the daemon."""

    def __init__(self, address: str, cause: OSError | None = None) -> None:
        self.address = address
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Cannot connect to daemon at {address}{detail}")


class ConnectionClosed(TransportError):
    """The connection closed while a request was still waiting for its response."""

    def __init__(self, message: str = "Connection closed") -> None:
        super().__init__(message)


class RemoteError(ReplError):
    """The daemon rejected a command.

    The message is the daemon's ``error`` string, verbatim.
    """


class StateConflict(ReplError):
    """A session operation is not allowed in the current mode."""

    def __init__(self, message: str, mode: SessionMode) -> None:
        super().__init__(message)
        self.mode = mode


class UserInputError(ReplError):
    """Unknown command, missing arguments, or unreadable session file."""
