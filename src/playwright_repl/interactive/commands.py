"""Meta-commands and line processing for the REPL."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from playwright_repl.commands.parser import ALIASES, parse_input
from playwright_repl.commands.translate import TEXT_LOCATOR_COMMANDS, is_translated, translate
from playwright_repl.commands.vocabulary import CATEGORIES, is_known_command
from playwright_repl.errors import ReplError, StateConflict, TransportError, UserInputError
from playwright_repl.logging import get_logger
from playwright_repl.recording.manager import SessionMode
from playwright_repl.workspace import kill_daemons

if TYPE_CHECKING:
    from playwright_repl.config import ReplConfig
    from playwright_repl.recording.manager import SessionManager
    from playwright_repl.sequencer import ExecutionSequencer
    from playwright_repl.transport.connection import DaemonConnection

log = get_logger("commands")

META_COMMANDS = (
    ".help",
    ".aliases",
    ".status",
    ".reconnect",
    ".exit",
    ".quit",
    ".record",
    ".save",
    ".replay",
    ".pause",
    ".discard",
)

Continuation = Callable[[], Awaitable[None]]


class CommandHandler:
    """Processes one input line: meta-commands locally, everything else via the daemon."""

    def __init__(
        self,
        config: ReplConfig,
        connection: DaemonConnection,
        session: SessionManager,
        sequencer: ExecutionSequencer,
        console: Console | None = None,
        on_exit: Callable[[], None] | None = None,
    ) -> None:
        self.config = config
        self.connection = connection
        self.session = session
        self.sequencer = sequencer
        self.console = console or Console()
        self.on_exit = on_exit
        self.exit_requested = False

        self._handlers: dict[str, Callable[[list[str]], Awaitable[bool]]] = {
            ".help": self._cmd_help,
            "?": self._cmd_help,
            ".aliases": self._cmd_aliases,
            ".status": self._cmd_status,
            ".reconnect": self._cmd_reconnect,
            ".record": self._cmd_record,
            ".save": self._cmd_save,
            ".pause": self._cmd_pause,
            ".discard": self._cmd_discard,
            ".replay": self._cmd_replay,
            ".exit": self._cmd_exit,
            ".quit": self._cmd_exit,
        }

    async def process_line(self, line: str) -> bool:
        """Handle one line of input.

        Returns:
            False if the line failed (unknown command, bad usage, state
            conflict, daemon error), True otherwise. Replay stops on False.
        """
        line = line.strip()
        if not line:
            return True
        if self.exit_requested:
            return False

        parts = line.split()
        handler = self._handlers.get(parts[0])
        if handler is not None:
            try:
                return await handler(parts[1:])
            except (StateConflict, UserInputError) as e:
                self.console.print(f"[yellow]{escape(str(e))}[/yellow]")
                return False

        command = parse_input(line)
        if command is None or not command.name:
            return True

        name = command.name
        if not is_known_command(name):
            self.console.print(f"[yellow]Unknown command: {escape(name)}[/yellow]")
            self.console.print("[dim]Type .help for available commands[/dim]")
            return False

        if name == "kill-all":
            return await self._kill_all()
        if name in ("close", "close-all"):
            return await self._close()

        try:
            args = translate(command)
        except UserInputError as e:
            self.console.print(f"[yellow]{escape(str(e))}[/yellow]")
            return False

        if name in TEXT_LOCATOR_COMMANDS and is_translated(args):
            self._notice(f"[dim]→ {escape(args['_'][1])}[/dim]")

        return await self.sequencer.execute(command.raw, args)

    # ── Replay ─────────────────────────────────────────────────────

    async def replay(
        self,
        filename: str | Path,
        step: bool = False,
        wait_continue: Continuation | None = None,
    ) -> bool:
        """Feed a session file through process_line, one command at a time.

        Stops at the first failed command. In step mode, wait_continue is
        awaited between commands; calling session.end_replay() meanwhile
        stops the replay.

        Returns:
            True if every command in the file ran successfully.
        """
        try:
            player = self.session.start_replay(filename, step)
        except (StateConflict, UserInputError) as e:
            self.console.print(f"[yellow]{escape(str(e))}[/yellow]")
            return False

        self.console.print(
            f"[blue]▶[/blue] Replaying [bold]{escape(str(filename))}[/bold] ({len(player)} commands)\n"
        )

        completed = False
        try:
            while True:
                line = self.session.next_command()
                if line is None:
                    completed = player.done
                    break

                self.console.print(f"[dim]{escape(player.progress)}[/dim] {escape(line)}")
                if not await self.process_line(line):
                    log.info("Replay of %s aborted at %s", filename, player.progress)
                    self.console.print(f"[red]✗[/red] Replay aborted at {escape(player.progress)}")
                    break

                if self.session.step and not player.done and wait_continue is not None:
                    await wait_continue()
        finally:
            self.session.end_replay()

        if completed:
            self.console.print("\n[green]✓[/green] Replay complete")
        return completed

    # ── Meta-commands ──────────────────────────────────────────────

    async def _cmd_help(self, args: list[str]) -> bool:
        """Show available commands."""
        table = Table(title="Available Commands", show_header=False, box=None)
        table.add_column("Category", style="bold")
        table.add_column("Commands")
        for category, names in CATEGORIES.items():
            table.add_row(f"{category}:", ", ".join(names))
        self.console.print(table)
        self.console.print("[dim]Use .aliases for shortcuts, or type any command with --help[/dim]\n")

        meta = Table(title="REPL Meta-commands")
        meta.add_column("Command", style="bold")
        meta.add_column("Description")
        for cmd, desc in (
            (".aliases", "Show command aliases"),
            (".status", "Show connection status"),
            (".reconnect", "Reconnect to daemon"),
            (".record [filename]", "Start recording commands"),
            (".save", "Stop recording and save"),
            (".pause", "Pause/resume recording"),
            (".discard", "Discard recording"),
            (".replay <filename>", "Replay a recorded session"),
            (".exit", "Exit REPL"),
        ):
            meta.add_row(cmd, desc)
        self.console.print(meta)
        return True

    async def _cmd_aliases(self, args: list[str]) -> bool:
        """Show command aliases grouped by command."""
        groups: dict[str, list[str]] = {}
        for alias, cmd in ALIASES.items():
            groups.setdefault(cmd, []).append(alias)

        table = Table(title="Command Aliases")
        table.add_column("Aliases", style="cyan")
        table.add_column("Command")
        for cmd in sorted(groups):
            table.add_row(", ".join(groups[cmd]), cmd)
        self.console.print(table)
        return True

    async def _cmd_status(self, args: list[str]) -> bool:
        """Show connection and session status."""
        connected = "[green]yes[/green]" if self.connection.connected else "[red]no[/red]"
        self.console.print(f"Connected: {connected}")
        self.console.print(f"Session: {escape(self.config.session_name)}")
        self.console.print(f"Socket: {escape(self.config.socket_path)}")
        self.console.print(f"Commands sent: {self.sequencer.command_count}")
        self.console.print(f"Mode: {self.session.mode.value}")

        mode = self.session.mode
        if mode in (SessionMode.RECORDING, SessionMode.PAUSED):
            paused = ", paused" if mode is SessionMode.PAUSED else ""
            self.console.print(
                f"Recording: [red]⏺[/red] {escape(str(self.session.recording_filename))} "
                f"({self.session.recorded_count} commands{paused})"
            )
        return True

    async def _cmd_reconnect(self, args: list[str]) -> bool:
        self.connection.close()
        try:
            await self.connection.connect()
        except TransportError as e:
            self.console.print(f"[red]✗[/red] {escape(str(e))}")
            return False
        self.console.print("[green]✓[/green] Reconnected")
        return True

    async def _cmd_record(self, args: list[str]) -> bool:
        """Start recording, optionally to a given file."""
        path = self.session.start_recording(args[0] if args else None)
        self.console.print(f"[red]⏺[/red] Recording to [bold]{escape(str(path))}[/bold]")
        return True

    async def _cmd_save(self, args: list[str]) -> bool:
        try:
            filename, count = await self.session.save()
        except OSError as e:
            self.console.print(f"[red]Error:[/red] Could not save recording: {escape(str(e))}")
            return False
        self.console.print(f"[green]✓[/green] Saved {count} commands to [bold]{escape(str(filename))}[/bold]")
        return True

    async def _cmd_pause(self, args: list[str]) -> bool:
        if self.session.toggle_pause():
            self.console.print("[yellow]⏸[/yellow] Recording paused")
        else:
            self.console.print("[red]⏺[/red] Recording resumed")
        return True

    async def _cmd_discard(self, args: list[str]) -> bool:
        self.session.discard()
        self.console.print("[yellow]Recording discarded[/yellow]")
        return True

    async def _cmd_replay(self, args: list[str]) -> bool:
        if not args:
            raise UserInputError("Usage: .replay <filename>")
        return await self.replay(args[0])

    async def _cmd_exit(self, args: list[str]) -> bool:
        self.exit_requested = True
        self.connection.close()
        if self.on_exit is not None:
            self.on_exit()
        return True

    # ── Session-level commands (not forwarded as "run") ────────────

    async def _kill_all(self) -> bool:
        try:
            killed = await kill_daemons()
        except OSError as e:
            self.console.print(f"[red]Error:[/red] {escape(str(e))}")
            return False

        if killed:
            plural = "" if killed == 1 else "es"
            self.console.print(f"[green]✓[/green] Killed {killed} daemon process{plural}")
        else:
            self.console.print("[dim]No daemon processes found[/dim]")
        self.connection.close()
        return True

    async def _close(self) -> bool:
        try:
            await self.connection.send("stop", {})
        except ReplError as e:
            self.console.print(f"[red]Error:[/red] {escape(str(e))}")
            return False
        self.console.print("[green]✓[/green] Daemon stopped")
        self.connection.close()
        return True

    def _notice(self, message: str) -> None:
        if not self.config.silent:
            self.console.print(message)
