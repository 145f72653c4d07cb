"""Client playback controller — turns room broadcasts into local seek + play.

Positions are always derived from the synced clock and the room's target
time, never from when a broadcast happened to arrive.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .clock import ClockSyncEstimator
from .config import DRIFT_THRESHOLD, TICK_INTERVAL
from .errors import PlayerError, format_error

logger = logging.getLogger(__name__)


class ClientPlaybackController:
    def __init__(
        self,
        player,
        clock: ClockSyncEstimator,
        fetch_snapshot: Callable[[], Awaitable[Optional[dict]]],
        render: Optional[Callable[[str, float], None]] = None,
        drift_threshold: float = DRIFT_THRESHOLD,
        tick_interval: float = TICK_INTERVAL,
    ):
        """
        player:          local media engine (see player.Player)
        fetch_snapshot:  coroutine returning the coordinator's room dict
        render:          called as render(phase, ms) on every display tick, where
                         ms is time remaining (countdown) or elapsed (playing);
                         also render("resync", 0) / render("error", 0)
        """
        self.player = player
        self.clock = clock
        self._fetch_snapshot = fetch_snapshot
        self._render = render or (lambda phase, ms: None)
        self.drift_threshold = drift_threshold
        self.tick_interval = tick_interval

        self.room: Optional[dict] = None
        self.joined = False
        self.resync_offered = False
        self.last_error: Optional[str] = None
        self._display_task: Optional[asyncio.Task] = None

    # ── Room events ──────────────────────────────────────────────────────────

    async def refresh(self) -> bool:
        """Pull the authoritative snapshot. False if the fetch failed."""
        try:
            room = await self._fetch_snapshot()
        except Exception as e:
            self.last_error = format_error("snapshot_fetch", raw=str(e), room=self.room)
            return False
        if room:
            self.apply_room(room)
        return True

    def apply_room(self, room: dict):
        self.room = room
        self._update_room_state()

    def on_room_updated(self, room: dict):
        self.apply_room(room)

    def on_room_joined(self, room: dict):
        """Join-in-progress: catch up to the room's current position."""
        self.joined = True
        self.apply_room(room)
        if room.get("status") == "playing":
            position = max(0.0, room.get("currentPosition") or 0.0)
            logger.info("Joining ongoing playback at %.2fs", position)
            self._start_media(position)

    def on_participants(self, data: dict):
        if self.room is not None and "participants" in data:
            self.room["participants"] = data["participants"]

    async def on_countdown_started(self, data: dict):
        if not self._knows_target():
            if not await self.refresh():
                logger.warning("Dropping countdown-started: room snapshot unavailable")
                return
        if not self._knows_target():
            self.room = {**(self.room or {}), "targetTime": data.get("targetTime"), "status": "countdown"}
        self._update_room_state()

    async def on_playback_start(self, data: dict):
        if not self._knows_target():
            if not await self.refresh():
                logger.warning("Dropping playback-start: room snapshot unavailable")
                return
        self.room = {
            **(self.room or {}),
            "targetTime": data.get("targetTime", (self.room or {}).get("targetTime")),
            "status": "playing",
            "startedAt": data.get("startTime"),
        }
        self._update_room_state()

        if self.joined and self.player.has_media:
            position = self.compute_seek_position(data)
            logger.info("Starting synchronized playback at %.2fs", position)
            self._start_media(position)

    async def on_room_reconfigured(self):
        self._cancel_display()
        self.resync_offered = False
        if self.player.is_playing():
            self.player.stop()
        await self.refresh()

    def leave(self):
        """Local half of leave-room: stop media, stop the display."""
        self.joined = False
        self.resync_offered = False
        self._cancel_display()
        if self.player.is_playing():
            self.player.stop()

    # ── Positions ────────────────────────────────────────────────────────────

    def compute_seek_position(self, data: dict) -> float:
        """Seconds into the media for a playback-start event, never negative."""
        if data.get("immediate") and data.get("seekTo") is not None:
            position = data["seekTo"]
        else:
            target = data.get("targetTime") or (self.room or {}).get("targetTime")
            position = (self.clock.synced_now() - target) / 1000 if target else 0.0
        return max(0.0, position)

    def expected_position(self) -> float:
        target = (self.room or {}).get("targetTime")
        if not target:
            return 0.0
        return max(0.0, (self.clock.synced_now() - target) / 1000)

    # ── Local media events ───────────────────────────────────────────────────

    def on_media_event(self, event: str):
        if event == "paused":
            self.on_media_paused()
        elif event == "play":
            self.on_media_play()

    def on_media_paused(self):
        if self._in_playing_room():
            self.resync_offered = True
            self._render("resync", 0)

    def on_media_play(self):
        self.resync_offered = False
        if self._in_playing_room():
            self.sync_player_position()

    def sync_player_position(self) -> bool:
        """Correct drift only beyond the threshold. True if a seek happened."""
        expected = self.expected_position()
        current = self.player.position
        diff = abs(current - expected)
        if diff <= self.drift_threshold:
            return False
        logger.info("Auto-syncing: current=%.2fs, sync=%.2fs, diff=%.2fs", current, expected, diff)
        self.player.seek(expected)
        return True

    def resync(self) -> bool:
        """Manual resync: jump to the room position and play."""
        if not self._in_playing_room():
            return False
        self.resync_offered = False
        position = self.expected_position()
        logger.info("Manual resync with room at %.2fs", position)
        return self._start_media(position)

    def close(self):
        self._cancel_display()

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _knows_target(self) -> bool:
        return bool(self.room and self.room.get("targetTime"))

    def _in_playing_room(self) -> bool:
        return self.joined and bool(self.room) and self.room.get("status") == "playing"

    def _start_media(self, position: float) -> bool:
        if not self.player.has_media:
            return False
        try:
            self.player.play_from(position)
        except PlayerError as e:
            # Local failure only, the room carries on
            self.last_error = format_error(
                "playback_start", raw=str(e), params={"position": position}, room=self.room)
            self._render("error", 0)
            return False
        return True

    def _update_room_state(self):
        """Re-derive the display from the current room. Always clears the old timer first."""
        self._cancel_display()
        room = self.room or {}
        status = room.get("status")
        target = room.get("targetTime")

        if status == "countdown" and target:
            self._display_task = asyncio.create_task(self._display_loop("countdown", target))
        elif status == "playing" and target:
            self._display_task = asyncio.create_task(self._display_loop("playing", target))
        else:
            self.resync_offered = False
            self._render("waiting", 0)

    async def _display_loop(self, phase: str, target: float):
        while True:
            now = self.clock.synced_now()
            if phase == "countdown":
                remaining = max(0.0, target - now)
                self._render(phase, remaining)
                if remaining <= 0:
                    return
            else:
                self._render(phase, max(0.0, now - target))
            await asyncio.sleep(self.tick_interval)

    def _cancel_display(self):
        if self._display_task and not self._display_task.done():
            self._display_task.cancel()
        self._display_task = None

    @property
    def display_active(self) -> bool:
        return self._display_task is not None and not self._display_task.done()
