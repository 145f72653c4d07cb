"""Module 6 — Local media playback via ffplay"""
import logging
import os
import shutil
import signal
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from .config import PLAYER_BIN
from .errors import PlayerError

logger = logging.getLogger(__name__)


class Player:
    """One ffplay subprocess at a time. Seeking restarts the process at the new offset.

    pause()/resume() are the operator's controls and notify the listener with
    "paused" / "play", the same way a browser media element fires its events.
    """

    def __init__(self, binary: str = PLAYER_BIN):
        self._binary = binary
        self._proc: Optional[subprocess.Popen] = None
        self._source: Optional[Path] = None
        self._paused: bool = False
        self._play_start: float = 0.0
        self._paused_at: float = 0.0
        self._total_paused: float = 0.0
        self._seek_offset: float = 0.0
        self._listener: Optional[Callable[[str], None]] = None

    def set_listener(self, listener: Optional[Callable[[str], None]]):
        self._listener = listener

    # ── Media ──────────────────────────────────────────────────────────────────

    def load(self, path: Path):
        """Select the local file. Stops anything currently playing."""
        path = Path(path).expanduser()
        if not path.is_file():
            raise PlayerError(f"No such media file: {path}")
        self.stop()
        self._source = path

    @property
    def has_media(self) -> bool:
        return self._source is not None

    @property
    def media_name(self) -> Optional[str]:
        return self._source.name if self._source else None

    # ── Playback ───────────────────────────────────────────────────────────────

    def play_from(self, position: float):
        """Start playback at position (seconds). Replaces any running process."""
        if self._source is None:
            raise PlayerError("No media loaded")
        position = max(0.0, position)
        self._kill()
        try:
            self._proc = subprocess.Popen(
                [self._binary, "-nodisp", "-autoexit", "-loglevel", "quiet",
                 "-ss", f"{position:.3f}", str(self._source)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            self._proc = None
            raise PlayerError(f"Could not start {self._binary}: {e}") from e
        self._paused = False
        self._play_start = time.monotonic()
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = position

    def seek(self, position: float):
        """Jump to position. Keeps the paused/playing state."""
        position = max(0.0, position)
        if not self.is_playing():
            self._seek_offset = position
            self._play_start = 0.0
            return
        was_paused = self._paused
        self.play_from(position)
        if was_paused:
            self._suspend()

    def stop(self):
        """Terminate playback and rewind to 0."""
        self._kill()
        self._paused = False
        self._play_start = 0.0
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = 0.0

    def pause(self):
        """Suspend ffplay in place (SIGSTOP). Position is preserved."""
        if self._suspend():
            self._notify("paused")

    def resume(self):
        """Resume a paused process (SIGCONT), or restart from the held position."""
        if self._proc and self._paused:
            try:
                os.kill(self._proc.pid, signal.SIGCONT)
            except ProcessLookupError:
                pass
            if self._paused_at > 0:
                self._total_paused += time.monotonic() - self._paused_at
                self._paused_at = 0.0
            self._paused = False
        elif not self.is_playing():
            self.play_from(self._seek_offset)
        else:
            return
        self._notify("play")

    def is_playing(self) -> bool:
        if self._proc is None:
            return False
        return self._proc.poll() is None

    def is_paused(self) -> bool:
        return self._paused

    @property
    def position(self) -> float:
        """Seconds into the media, accounting for pauses and seeks."""
        if self._play_start == 0:
            return self._seek_offset
        if self._paused and self._paused_at > 0:
            raw = self._paused_at - self._play_start - self._total_paused
        else:
            raw = time.monotonic() - self._play_start - self._total_paused
        return self._seek_offset + raw

    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    # ── Internals ──────────────────────────────────────────────────────────────

    def _suspend(self) -> bool:
        if self._proc and self._proc.poll() is None and not self._paused:
            try:
                os.kill(self._proc.pid, signal.SIGSTOP)
            except ProcessLookupError:
                return False
            self._paused = True
            self._paused_at = time.monotonic()
            return True
        return False

    def _kill(self):
        if self._proc and self._proc.poll() is None:
            if self._paused:
                # SIGSTOP blocks SIGTERM, resume first
                try:
                    os.kill(self._proc.pid, signal.SIGCONT)
                except ProcessLookupError:
                    pass
            self._proc.terminate()
            try:
                self._proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._proc.kill()
        self._proc = None

    def _notify(self, event: str):
        if self._listener:
            try:
                self._listener(event)
            except Exception:
                logger.exception("Player listener failed on %s", event)
