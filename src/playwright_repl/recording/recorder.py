"""Session recording to .pw files."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

META_PREFIX = "."
COMMENT_PREFIX = "#"
SESSION_TITLE = "Playwright REPL session"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """``2026-02-09T19:30:00.000Z`` style UTC timestamp."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_filename(moment: datetime) -> str:
    """Auto-generated recording name, e.g. ``session-2026-02-09T19-30-00-000Z.pw``."""
    return "session-" + iso_timestamp(moment).replace(":", "-").replace(".", "-") + ".pw"


class SessionRecorder:
    """Buffers accepted command lines in memory until saved.

    Format:
        # Playwright REPL session
        # recorded 2026-02-09T19:30:00.000Z

        open https://myapp.com
        click e5
        fill e7 admin@test.com

    Where:
        - lines starting with # are comments
        - blank lines are ignored on load
        - every other line is one command, exactly as typed
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self.filename: Path | None = None
        self.commands: list[str] = []

    def start(self, filename: str | Path | None = None, directory: Path | None = None) -> Path:
        """Begin a new buffer and return the target file.

        Args:
            filename: Output file path. Defaults to a timestamped name.
            directory: Where a defaulted name is placed (default: cwd).
        """
        if filename:
            path = Path(filename)
        else:
            path = Path(default_filename(self._clock()))
            if directory is not None:
                path = directory / path
        self.filename = path
        self.commands = []
        return path

    def record(self, line: str) -> bool:
        """Append a line unless it is blank or a meta-command.

        Returns:
            True if the line was appended.
        """
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(META_PREFIX):
            return False
        self.commands.append(trimmed)
        return True

    def render(self) -> str:
        """File content: two header comments, a blank line, commands, trailing newline."""
        header = [
            f"{COMMENT_PREFIX} {SESSION_TITLE}",
            f"{COMMENT_PREFIX} recorded {iso_timestamp(self._clock())}",
            "",
        ]
        return "\n".join([*header, *self.commands, ""])

    def write(self) -> tuple[Path, int]:
        """Write the buffer to its file, creating parent directories.

        Raises:
            OSError: The file could not be written.
        """
        if self.filename is None:
            raise RuntimeError("Recorder was never started")

        content = self.render()
        self.filename.parent.mkdir(parents=True, exist_ok=True)
        self.filename.write_text(content, encoding="utf-8")
        return self.filename, len(self.commands)

    def clear(self) -> None:
        self.filename = None
        self.commands = []

    @property
    def command_count(self) -> int:
        return len(self.commands)
