"""Shared test utilities for playwright-repl tests."""

from __future__ import annotations

from typing import Any

from rich.console import Console

from playwright_repl.errors import ConnectionClosed


class FakeConnection:
    """Stands in for DaemonConnection.

    ``replies`` maps a command name (or send() method) to a result, an
    exception to raise, or an async callable taking the args.
    """

    def __init__(self) -> None:
        self.connected = True
        self.runs: list[dict[str, Any]] = []
        self.sent: list[tuple[str, Any]] = []
        self.replies: dict[str, Any] = {}
        self.connect_calls = 0
        self.connect_error: Exception | None = None
        self.close_calls = 0

    async def run(self, args: dict[str, Any]) -> Any:
        self.runs.append(args)
        reply = self.replies.get(args["_"][0], {"text": ""})
        if isinstance(reply, Exception):
            if isinstance(reply, ConnectionClosed):
                self.connected = False
            raise reply
        if callable(reply):
            return await reply(args)
        return reply

    async def send(self, method: str, params: Any = None) -> Any:
        self.sent.append((method, params))
        reply = self.replies.get(method, {})
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def close(self) -> None:
        self.close_calls += 1
        self.connected = False

    @property
    def commands(self) -> list[str]:
        """Command names in the order they were run."""
        return [args["_"][0] for args in self.runs]


def output(console: Console) -> str:
    """Everything printed so far to a buffered test console."""
    return console.file.getvalue()  # type: ignore[attr-defined]
