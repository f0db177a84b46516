"""Session lifecycle state machine.

    idle --start_recording--> recording <--toggle_pause--> paused
    recording/paused --save|discard--> idle
    idle --start_replay--> replaying --end_replay|exhausted--> idle

Recording and replaying never overlap. Every operation is checked against
one transition table; a disallowed operation raises StateConflict and
leaves everything as it was.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from playwright_repl.errors import StateConflict
from playwright_repl.logging import get_logger
from playwright_repl.recording.player import SessionPlayer
from playwright_repl.recording.recorder import Clock, SessionRecorder, utcnow

if TYPE_CHECKING:
    from playwright_repl.config import ReplConfig

log = get_logger("session")


class SessionMode(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    REPLAYING = "replaying"


_TRANSITIONS: dict[tuple[SessionMode, str], SessionMode] = {
    (SessionMode.IDLE, "start_recording"): SessionMode.RECORDING,
    (SessionMode.RECORDING, "toggle_pause"): SessionMode.PAUSED,
    (SessionMode.PAUSED, "toggle_pause"): SessionMode.RECORDING,
    (SessionMode.RECORDING, "save"): SessionMode.IDLE,
    (SessionMode.PAUSED, "save"): SessionMode.IDLE,
    (SessionMode.RECORDING, "discard"): SessionMode.IDLE,
    (SessionMode.PAUSED, "discard"): SessionMode.IDLE,
    (SessionMode.IDLE, "start_replay"): SessionMode.REPLAYING,
    (SessionMode.REPLAYING, "end_replay"): SessionMode.IDLE,
}

_CONFLICT_MESSAGES = {
    "start_recording": "Cannot record while {mode}",
    "start_replay": "Cannot replay while {mode}",
    "toggle_pause": "Not recording",
    "save": "Not recording",
    "discard": "Not recording",
    "end_replay": "Not replaying",
}


class SessionManager:
    """Owns the recording buffer and the replay cursor.

    Args:
        config: Supplies the directory for auto-named recordings.
        clock: Time source for default filenames and file headers.
    """

    def __init__(self, config: ReplConfig | None = None, clock: Clock = utcnow) -> None:
        self.config = config
        self._mode = SessionMode.IDLE
        self._recorder = SessionRecorder(clock)
        self._player: SessionPlayer | None = None
        self._step = False

    @property
    def mode(self) -> SessionMode:
        return self._mode

    def _target(self, event: str) -> SessionMode:
        target = _TRANSITIONS.get((self._mode, event))
        if target is None:
            message = _CONFLICT_MESSAGES[event].format(mode=self._mode.value)
            raise StateConflict(message, self._mode)
        return target

    # ── Recording ──────────────────────────────────────────────────

    def start_recording(self, filename: str | Path | None = None) -> Path:
        """Start capturing commands. Returns the file they will be saved to."""
        target = self._target("start_recording")
        directory = self.config.recordings_dir if self.config else None
        path = self._recorder.start(filename, directory)
        self._mode = target
        log.info("Recording to %s", path)
        return path

    def record(self, line: str) -> None:
        """Called after each successful command; appends only while recording."""
        if self._mode is SessionMode.RECORDING:
            self._recorder.record(line)

    def toggle_pause(self) -> bool:
        """Pause or resume recording. Returns True if now paused."""
        self._mode = self._target("toggle_pause")
        return self._mode is SessionMode.PAUSED

    async def save(self) -> tuple[Path, int]:
        """Write the recording to its file and return to idle.

        Returns:
            (filename, number of commands written)

        Raises:
            StateConflict: Not recording.
            OSError: The file could not be written; the recording is kept.
        """
        target = self._target("save")
        filename, count = await asyncio.to_thread(self._recorder.write)
        self._recorder.clear()
        self._mode = target
        log.info("Saved %d commands to %s", count, filename)
        return filename, count

    def discard(self) -> None:
        """Drop the recording without writing anything."""
        self._mode = self._target("discard")
        self._recorder.clear()

    @property
    def recording_filename(self) -> Path | None:
        return self._recorder.filename

    @property
    def recorded_count(self) -> int:
        return self._recorder.command_count

    # ── Playback ───────────────────────────────────────────────────

    def start_replay(self, filename: str | Path, step: bool = False) -> SessionPlayer:
        """Load a session file for replay.

        Raises:
            StateConflict: Already recording or replaying.
            UserInputError: The file does not exist or cannot be read.
        """
        target = self._target("start_replay")
        player = SessionPlayer(filename)
        self._player = player
        self._step = step
        self._mode = target
        log.info("Replaying %s (%d commands)", player.filename, len(player))
        return player

    def next_command(self) -> str | None:
        """Advance the replay cursor.

        Returns None, and ends the replay, once the commands are exhausted or
        the replay was ended early.
        """
        if self._mode is not SessionMode.REPLAYING or self._player is None:
            return None
        line = self._player.next()
        if line is None:
            self.end_replay()
        return line

    def end_replay(self) -> None:
        """Stop replaying. No-op when no replay is active."""
        if self._mode is not SessionMode.REPLAYING:
            return
        self._mode = self._target("end_replay")
        self._player = None
        self._step = False

    @property
    def player(self) -> SessionPlayer | None:
        return self._player

    @property
    def step(self) -> bool:
        return self._step
