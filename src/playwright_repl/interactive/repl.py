"""Interactive REPL for playwright-repl."""

from __future__ import annotations

import asyncio
import os
import re
import stat
import sys
import threading
import time
from collections.abc import Iterable
from typing import IO, TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markup import escape

from playwright_repl.commands.parser import ALIASES
from playwright_repl.commands.vocabulary import ALL_COMMANDS, command_options
from playwright_repl.errors import DaemonConnectionError
from playwright_repl.interactive.commands import META_COMMANDS, CommandHandler
from playwright_repl.logging import get_logger
from playwright_repl.recording.manager import SessionManager, SessionMode
from playwright_repl.sequencer import ExecutionSequencer
from playwright_repl.transport.connection import DaemonConnection
from playwright_repl.workspace import is_daemon_running, start_daemon

if TYPE_CHECKING:
    from prompt_toolkit.completion import CompleteEvent
    from prompt_toolkit.document import Document

    from playwright_repl.config import ReplConfig

console = Console()
log = get_logger("repl")

DOUBLE_INTERRUPT_WINDOW = 0.5
"""Seconds within which a second Ctrl+C exits."""


# ── Prompt and completion ──────────────────────────────────────────


def prompt_message(mode: SessionMode) -> FormattedText:
    """``pw>``, prefixed with ⏺ while recording and ⏸ while paused."""
    if mode is SessionMode.RECORDING:
        return FormattedText([("ansired", "⏺ "), ("ansicyan", "pw> ")])
    if mode is SessionMode.PAUSED:
        return FormattedText([("ansiyellow", "⏸ "), ("ansicyan", "pw> ")])
    return FormattedText([("ansicyan", "pw> ")])


def complete_line(line: str) -> tuple[list[str], str]:
    """Candidates for the word being typed, and that word.

    The first word completes against commands, aliases and meta-commands;
    later ``--`` words against the options of the resolved command.
    """
    parts = re.split(r"\s+", line.lstrip())
    if len(parts) <= 1:
        prefix = parts[0]
        names = [*ALL_COMMANDS, *ALIASES, *META_COMMANDS]
        return [name for name in names if name.startswith(prefix)], prefix

    command = ALIASES.get(parts[0], parts[0])
    last = parts[-1]
    if last.startswith("--"):
        return [opt for opt in command_options(command) if opt.startswith(last)], last
    return [], last


class ReplCompleter(Completer):
    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        hits, word = complete_line(document.text_before_cursor)
        for hit in hits:
            yield Completion(hit, start_position=-len(word))


# ── Standard input ─────────────────────────────────────────────────


async def open_stdin_reader() -> asyncio.StreamReader:
    """StreamReader over stdin for piped input.

    Pipes and sockets are read through the event loop. Anything else
    (redirected files, character devices such as /dev/null, and Windows)
    cannot be polled and is fed by a reader thread.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    if _pollable(sys.stdin):
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    else:
        thread = threading.Thread(target=_pump_stdin, args=(loop, reader), daemon=True)
        thread.start()
    return reader


def _pollable(stream: IO[str]) -> bool:
    if sys.platform == "win32":
        return False
    try:
        mode = os.fstat(stream.fileno()).st_mode
    except (OSError, ValueError):
        return False
    return stat.S_ISFIFO(mode) or stat.S_ISSOCK(mode)


def _pump_stdin(loop: asyncio.AbstractEventLoop, reader: asyncio.StreamReader) -> None:
    try:
        for chunk in iter(sys.stdin.buffer.readline, b""):
            loop.call_soon_threadsafe(reader.feed_data, chunk)
        loop.call_soon_threadsafe(reader.feed_eof)
    except RuntimeError:
        # Loop already closed
        return


# ── REPL ───────────────────────────────────────────────────────────


class InteractiveRepl:
    """Reads lines from the terminal (or a pipe) and feeds the sequencer."""

    def __init__(
        self,
        config: ReplConfig,
        connection: DaemonConnection,
        session: SessionManager,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.connection = connection
        self.session = session
        self.console = console or Console()
        self.sequencer = ExecutionSequencer(config, connection, session, self.console)
        self.commands = CommandHandler(
            config, connection, session, self.sequencer, self.console, on_exit=self.stop
        )
        self.sequencer.line_handler = self.commands.process_line

        self._running = False
        self._last_interrupt = 0.0
        self._stdin: asyncio.StreamReader | None = None
        self._prompt_session: PromptSession[str] | None = None

    @property
    def prompt_session(self) -> PromptSession[str]:
        """Terminal prompt, created on first use (piped input never needs one)."""
        if self._prompt_session is None:
            self._prompt_session = PromptSession(
                history=self._history(),
                auto_suggest=AutoSuggestFromHistory(),
                completer=ReplCompleter(),
            )
        return self._prompt_session

    def _history(self) -> FileHistory | None:
        path = self.config.history_file
        if path is None:
            return None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning("History disabled: %s", e)
            return None
        return FileHistory(str(path))

    async def run(self) -> int:
        """Run until .exit, end of input, or a double Ctrl+C."""
        self._running = True
        if sys.stdin.isatty():
            forced = await self._read_terminal()
        else:
            forced = False
            await self._read_pipe()

        if forced:
            self.sequencer.cancel()
        else:
            await self.sequencer.join()

        self._running = False
        if not self.config.silent:
            self.console.print("\n[dim]Disconnecting... (daemon stays running)[/dim]")
        self.connection.close()
        return 0

    async def _read_terminal(self) -> bool:
        """Prompt loop. Returns True when the user forced an exit."""
        with patch_stdout():
            while self._running:
                try:
                    line = await self.prompt_session.prompt_async(
                        lambda: prompt_message(self.session.mode)
                    )
                except KeyboardInterrupt:
                    now = time.monotonic()
                    if now - self._last_interrupt < DOUBLE_INTERRUPT_WINDOW:
                        return True
                    self._last_interrupt = now
                    self.console.print(f"[dim]{self.interrupt_hint()}[/dim]")
                    continue
                except EOFError:
                    break

                if line.strip():
                    self.sequencer.submit(line)
        return False

    def interrupt_hint(self) -> str:
        """Shown after the first Ctrl+C."""
        if self.sequencer.busy:
            return f"(Command running, {self.sequencer.pending} queued. Ctrl+C again to cancel and exit)"
        return "(Ctrl+C again to exit, or type .exit)"

    async def _read_pipe(self) -> None:
        reader = await self._stdin_reader()
        while self._running:
            raw = await reader.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if line.strip():
                self.sequencer.submit(line)

    async def _stdin_reader(self) -> asyncio.StreamReader:
        if self._stdin is None:
            self._stdin = await open_stdin_reader()
        return self._stdin

    async def run_replay(self, filename: str, step: bool = False) -> int:
        """Replay a file and exit: 0 if every command succeeded, else 1."""
        ok = await self.commands.replay(filename, step, self.wait_for_continue)
        self.connection.close()
        return 0 if ok else 1

    async def wait_for_continue(self) -> None:
        """Block between step-mode commands until Enter; Ctrl+C or EOF stops the replay."""
        hint = "  Press Enter to continue..."
        try:
            if sys.stdin.isatty():
                await self.prompt_session.prompt_async(FormattedText([("ansibrightblack", hint)]))
                return
            self.console.print(f"[dim]{hint}[/dim]")
            reader = await self._stdin_reader()
            if not await reader.readline():
                raise EOFError
        except (KeyboardInterrupt, EOFError):
            self.console.print("[yellow]Replay stopped[/yellow]")
            self.session.end_replay()

    def stop(self) -> None:
        """Stop reading input; a pending prompt is dismissed."""
        self._running = False
        if self._stdin is not None:
            self._stdin.feed_eof()
        if self._prompt_session is not None and self._prompt_session.app.is_running:
            self._prompt_session.app.exit(exception=EOFError())


# ── Startup ────────────────────────────────────────────────────────


async def start_repl(
    config: ReplConfig,
    replay: str | None = None,
    step: bool = False,
    record: str | None = None,
) -> int:
    """Connect to the session's daemon (starting it if needed) and run the REPL.

    Returns:
        Process exit code.
    """
    if not config.silent:
        console.print(f"[bold magenta]🎭 Playwright REPL[/bold magenta] [dim]v{config.version}[/dim]")
        console.print(f"[dim]Session: {escape(config.session_name)} | Type .help for commands[/dim]\n")

    running = await is_daemon_running(config.socket_path)
    if not running and config.auto_start:
        await start_daemon(config)
        await asyncio.sleep(config.daemon_start_delay)

    connection = DaemonConnection(config, on_error=_report_socket_error)
    try:
        await connection.connect()
    except DaemonConnectionError as e:
        console.print(f"[red]✗[/red] Failed to connect: {escape(str(e))}")
        console.print(f"  Try: {escape(config.daemon_command)} open")
        return 1

    if not config.silent:
        suffix = "" if running else " (newly started)"
        console.print(f"[green]✓[/green] Connected to daemon{suffix}\n")

    session = SessionManager(config)
    repl = InteractiveRepl(config, connection, session)

    if record:
        path = session.start_recording(record)
        if not config.silent:
            console.print(f"[red]⏺[/red] Recording to [bold]{escape(str(path))}[/bold]")

    if replay:
        return await repl.run_replay(replay, step)
    return await repl.run()


def _report_socket_error(exc: BaseException) -> None:
    console.print(f"\n[yellow]⚠ Socket error:[/yellow] {escape(str(exc))}")
