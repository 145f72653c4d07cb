"""Session coordinator — the only owner of RoomState.

Receives commands via methods, broadcasts state via ConnectionHub.
Every command, the countdown timer's fire included, runs to completion
under one lock before the next one starts.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .room import Phase, RoomState, ParticipantRegistry
from .utils import now_ms, hr_time, as_epoch_ms, iso_ms

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    connected_at: int
    last_ping: int
    offset_ms: float = 0
    is_calibrated: bool = False


class SessionCoordinator:
    def __init__(self, hub, room: Optional[RoomState] = None, clock: Callable[[], int] = now_ms):
        """hub: ConnectionHub used for every outbound event."""
        self.hub = hub
        self.clock = clock
        self.room = room or RoomState(created_at=clock())
        self.participants = ParticipantRegistry(self.room)
        self.connections: dict[str, ConnectionInfo] = {}

        self._lock = asyncio.Lock()
        # The single pending Countdown → Playing transition, if any
        self._timer: Optional[asyncio.Task] = None
        self._started = time.monotonic()

    # ── Connection lifecycle ─────────────────────────────────────────────────

    async def connect(self, connection_id: str):
        async with self._lock:
            now = self.clock()
            self.connections[connection_id] = ConnectionInfo(connected_at=now, last_ping=now)
            await self.hub.send(connection_id, "server-time", {"timestamp": now, "hrtime": hr_time()})
        logger.info("Client connected: %s", connection_id)

    async def disconnect(self, connection_id: str):
        """Always safe. A joined participant is removed exactly as on leave."""
        async with self._lock:
            self.connections.pop(connection_id, None)
            was_participant = connection_id in self.participants
            if was_participant:
                await self._remove_participant(connection_id)
        if was_participant:
            logger.info("Client %s left the room (disconnected)", connection_id)
        logger.info("Client disconnected: %s", connection_id)

    # ── Clock sync ───────────────────────────────────────────────────────────

    async def sync_request(self, connection_id: str, client_time, sequence_id):
        # Read-only, answered outside the command lock
        await self.hub.send(connection_id, "sync-response", {
            "clientRequestTime": client_time,
            "serverTime": self.clock(),
            "serverHrTime": hr_time(),
            "sequenceId": sequence_id,
        })

    async def offset_update(self, connection_id: str, offset):
        info = self.connections.get(connection_id)
        if info is None or not isinstance(offset, (int, float)):
            return
        info.offset_ms = offset
        info.is_calibrated = True
        info.last_ping = self.clock()
        logger.debug("Client %s calibrated with offset %sms", connection_id, offset)

    async def ping(self, connection_id: str, timestamp):
        info = self.connections.get(connection_id)
        now = self.clock()
        if info is not None:
            info.last_ping = now
        await self.hub.send(connection_id, "pong", {"clientTime": timestamp, "serverTime": now})

    # ── Room commands ────────────────────────────────────────────────────────

    async def configure(self, connection_id: str, target_time) -> bool:
        """Set a new target time from any phase. Returns False if rejected."""
        target = as_epoch_ms(target_time)
        if target is None:
            logger.warning("Rejected setup-room from %s: invalid targetTime %r", connection_id, target_time)
            await self.hub.send(connection_id, "error", {
                "command": "setup-room",
                "message": "targetTime must be epoch milliseconds",
            })
            return False

        async with self._lock:
            self._cancel_timer()
            self.room.target_time = target
            self.room.started_at = None
            delay = target - self.clock()

            # The configuring connection hears about the new room before everyone else
            if delay > 0:
                self.room.phase = Phase.COUNTDOWN
                await self.hub.send(connection_id, "room-setup", {"room": self.snapshot()})
                await self.hub.broadcast("room-updated", {"room": self.snapshot()})
                await self.hub.broadcast("countdown-started", {
                    "targetTime": target,
                    "timeRemaining": delay,
                })
                self._timer = asyncio.create_task(self._countdown(delay))
                logger.info("Room configured by %s for %s (in %dms)", connection_id, iso_ms(target), delay)
            else:
                logger.info("Room configured by %s for %s, already %dms late, starting now",
                            connection_id, iso_ms(target), -delay)
                self._begin_playback()
                await self.hub.send(connection_id, "room-setup", {"room": self.snapshot()})
                await self._announce_start(immediate=True, seek_to=-delay / 1000)
        return True

    async def reconfigure(self, connection_id: Optional[str] = None):
        """Back to Waiting from any phase. Clients get a reset signal before the snapshot."""
        async with self._lock:
            self._cancel_timer()
            self.room.reset()
            await self.hub.broadcast("room-reconfigured")
            await self.hub.broadcast("room-updated", {"room": self.snapshot()})
        logger.info("Room reconfigured by %s", connection_id)

    async def join(self, connection_id: str, media_file_name=None):
        async with self._lock:
            info = self.participants.add(connection_id, media_file_name, self.clock())
            await self.hub.send(connection_id, "room-joined", {"room": self.snapshot()})
            await self.hub.broadcast("participant-joined", self._participant_payload(connection_id))
        logger.info("Client %s joined the room with file: %s", connection_id, info.media_file_name)

    async def leave(self, connection_id: str):
        """Idempotent — leaving when not a participant is a no-op."""
        async with self._lock:
            if connection_id not in self.participants:
                logger.info("Client %s was not in the room", connection_id)
                return
            await self._remove_participant(connection_id)
        logger.info("Client %s left the room", connection_id)

    async def relay_playback_state(self, connection_id: str, state, current_time, timestamp):
        """Forward a participant's local player state to the other participants."""
        if connection_id not in self.participants:
            logger.debug("Ignoring playback-state from non-participant %s", connection_id)
            return
        await self.hub.send_many(self.participants.ids(), "participant-state", {
            "participantId": connection_id,
            "state": state,
            "currentTime": current_time,
            "timestamp": timestamp,
        }, exclude=connection_id)

    async def stop(self):
        """Graceful shutdown."""
        timer = self._timer
        self._cancel_timer()
        if timer and not timer.done():
            try:
                await timer
            except (asyncio.CancelledError, Exception):
                pass

    # ── Views ────────────────────────────────────────────────────────────────

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def snapshot(self) -> dict:
        """Full room snapshot, currentPosition included."""
        return self.room.to_dict(self.clock(), self.participants.snapshot())

    def stats(self) -> dict:
        return {
            "connectedClients": len(self.connections),
            "calibratedClients": sum(1 for c in self.connections.values() if c.is_calibrated),
            "globalRoom": self.snapshot(),
            "uptime": round(time.monotonic() - self._started, 3),
        }

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _countdown(self, delay_ms: int):
        await asyncio.sleep(delay_ms / 1000)
        async with self._lock:
            # A reconfigure may have replaced us while we waited on the lock
            if self._timer is not asyncio.current_task():
                return
            self._timer = None
            self._begin_playback()
            await self._announce_start(immediate=False)

    def _begin_playback(self):
        """Countdown → Playing. Caller holds the lock."""
        self.room.phase = Phase.PLAYING
        self.room.started_at = self.clock()

    async def _announce_start(self, immediate: bool, seek_to: Optional[float] = None):
        room = self.room
        payload = {"startTime": room.started_at, "targetTime": room.target_time}
        if immediate:
            payload["immediate"] = True
            payload["seekTo"] = max(0.0, seek_to or 0.0)

        await self.hub.broadcast("playback-start", payload)
        await self.hub.broadcast("room-updated", {"room": self.snapshot()})
        logger.info("Playback started at %s%s", iso_ms(room.started_at),
                    f" (seek {payload['seekTo']:.3f}s)" if immediate else "")

    def _cancel_timer(self):
        if self._timer and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _remove_participant(self, connection_id: str):
        self.participants.remove(connection_id)
        await self.hub.broadcast("participant-left", self._participant_payload(connection_id))

    def _participant_payload(self, connection_id: str) -> dict:
        return {
            "participantId": connection_id,
            "totalParticipants": self.participants.count(),
            "participants": self.participants.snapshot(),
        }
