"""Ordered, one-at-a-time command execution.

Input can arrive much faster than the daemon answers (pasted or piped
lines). Every line is queued the moment it arrives; a single drain task
works through the queue, awaiting each line completely before taking the
next. A line arriving while the drain is busy only joins the queue, so a
burst of N lines is handled by one drain in arrival order, and the daemon
never sees a request before the previous one has been answered.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape

from playwright_repl.commands.output import filter_response
from playwright_repl.commands.parser import parse_input
from playwright_repl.errors import RemoteError, TransportError
from playwright_repl.logging import VERBOSE, get_logger

if TYPE_CHECKING:
    from playwright_repl.config import ReplConfig
    from playwright_repl.recording.manager import SessionManager
    from playwright_repl.transport.connection import DaemonConnection

log = get_logger("sequencer")

LineHandler = Callable[[str], Awaitable[Any]]


class ExecutionSequencer:
    """FIFO command queue with a single drain, plus the per-command dispatch path.

    Args:
        config: Slow-command threshold and silent mode.
        connection: Channel commands are dispatched through.
        session: Told about every successfully executed line.
        console: Where results and errors are printed.
        line_handler: Called for each queued line. Defaults to run_line,
            which parses and dispatches without meta-command support.
    """

    def __init__(
        self,
        config: ReplConfig,
        connection: DaemonConnection,
        session: SessionManager,
        console: Console | None = None,
        line_handler: LineHandler | None = None,
    ) -> None:
        self.config = config
        self.connection = connection
        self.session = session
        self.console = console or Console()
        self.line_handler: LineHandler = line_handler or self.run_line
        self.command_count = 0

        self._queue: deque[str] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    # ── Queue ──────────────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        """True while a drain is working through the queue."""
        return self._drain_task is not None

    @property
    def pending(self) -> int:
        """Lines queued but not yet started."""
        return len(self._queue)

    def submit(self, line: str) -> None:
        """Queue a line; start a drain only if none is running."""
        self._queue.append(line)
        if self._drain_task is None:
            self._idle.clear()
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                line = self._queue.popleft()
                try:
                    await self.line_handler(line)
                except Exception as e:
                    log.exception("Unhandled error processing %r", line)
                    self.console.print(f"[red]Error:[/red] {escape(str(e))}")
        finally:
            self._drain_task = None
            self._idle.set()

    async def join(self) -> None:
        """Wait until the queue is empty and the last line has finished."""
        await self._idle.wait()

    def cancel(self) -> None:
        """Drop queued lines and stop the drain (used on forced exit)."""
        self._queue.clear()
        if self._drain_task is not None:
            self._drain_task.cancel()

    # ── Dispatch ───────────────────────────────────────────────────

    async def run_line(self, line: str) -> bool:
        """Parse a line and dispatch it as-is."""
        command = parse_input(line)
        if command is None or not command.name:
            return True
        return await self.execute(command.raw, command.to_args())

    async def execute(self, raw: str, args: dict[str, Any]) -> bool:
        """Send one command and wait for it to finish.

        On success: count it, show the result, let the session record the
        raw line, and report the elapsed time if it was slow. On failure:
        report the error and, if the connection dropped, try to reconnect
        once. The failed command is never retried.

        Returns:
            True if the daemon executed the command.
        """
        started = time.perf_counter()
        try:
            result = await self.connection.run(args)
        except (TransportError, RemoteError) as e:
            log.log(VERBOSE, "Command failed: %s (%s)", raw, e)
            self.console.print(f"[red]Error:[/red] {escape(str(e))}")
            await self._reconnect_if_lost()
            return False

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._show_result(result)
        self.command_count += 1
        self.session.record(raw)

        if elapsed_ms > self.config.slow_command_ms:
            self._notice(f"[dim]({elapsed_ms:.0f}ms)[/dim]")
        log.log(VERBOSE, "Executed %s in %.0fms", raw, elapsed_ms)
        return True

    def _show_result(self, result: Any) -> None:
        if not isinstance(result, dict):
            return
        text = result.get("text")
        if not isinstance(text, str) or not text:
            return
        output = filter_response(text)
        if output:
            self.console.print(output, markup=False, highlight=False)

    async def _reconnect_if_lost(self) -> None:
        if self.connection.connected:
            return
        self.console.print("[yellow]Connection lost. Trying to reconnect...[/yellow]")
        try:
            await self.connection.connect()
        except TransportError as e:
            log.info("Reconnect failed: %s", e)
            self.console.print("[red]✗[/red] Could not reconnect. Use .reconnect or restart.")
            return
        self.console.print("[green]✓[/green] Reconnected. Try your command again.")

    def _notice(self, message: str) -> None:
        if not self.config.silent:
            self.console.print(message)
