"""Session replay from .pw files."""

from __future__ import annotations

from pathlib import Path

from playwright_repl.errors import UserInputError
from playwright_repl.recording.recorder import COMMENT_PREFIX


def parse_session(content: str) -> list[str]:
    """Command lines of a .pw file, trimmed, without blanks or # comments."""
    commands = []
    for line in content.split("\n"):
        line = line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        commands.append(line)
    return commands


class SessionPlayer:
    """Yields the commands of a recorded session one at a time.

    The command list is loaded once and never changes; the cursor only
    moves forward.

    Usage:
        player = SessionPlayer(Path("login.pw"))
        while not player.done:
            line = player.next()
            print(player.progress, line)
    """

    def __init__(self, filename: str | Path) -> None:
        self.filename = Path(filename)
        self.commands: tuple[str, ...] = tuple(self.load(self.filename))
        self.index = 0

    @staticmethod
    def load(filename: str | Path) -> list[str]:
        """Load commands from a .pw file.

        Raises:
            UserInputError: If the file does not exist or cannot be read.
        """
        path = Path(filename)
        if not path.is_file():
            raise UserInputError(f"File not found: {filename}")
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise UserInputError(f"Cannot read {filename}: {e}") from e
        return parse_session(content)

    @property
    def done(self) -> bool:
        return self.index >= len(self.commands)

    @property
    def progress(self) -> str:
        return f"[{self.index}/{len(self.commands)}]"

    def next(self) -> str | None:
        if self.done:
            return None
        line = self.commands[self.index]
        self.index += 1
        return line

    def __len__(self) -> int:
        return len(self.commands)
