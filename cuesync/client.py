"""Sync client — WebSocket session with the coordinator, clock probes, event dispatch."""
import asyncio
import json
import logging
from typing import Any, Callable, Optional

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .clock import ClockSyncEstimator
from .config import SERVER_URL, SYNC_INTERVAL, RECONNECT_DELAY, HTTP_TIMEOUT
from .errors import format_error
from .playback import ClientPlaybackController
from .player import Player

logger = logging.getLogger(__name__)


def ws_url(server_url: str) -> str:
    if server_url.startswith("https://"):
        return "wss://" + server_url[len("https://"):] + "/ws"
    if server_url.startswith("http://"):
        return "ws://" + server_url[len("http://"):] + "/ws"
    return server_url.rstrip("/") + "/ws"


class SyncClient:
    def __init__(
        self,
        server_url: str = SERVER_URL,
        player: Optional[Player] = None,
        render: Optional[Callable[[str, float], None]] = None,
        on_event: Optional[Callable[[str, Any], None]] = None,
        sync_interval: float = SYNC_INTERVAL,
    ):
        """
        render:   forwarded to the playback controller's display loop
        on_event: called as on_event(event, data) after every inbound event and
                  for local "connected" / "disconnected" notices
        """
        self.server_url = server_url.rstrip("/")
        self.ws_url = ws_url(self.server_url)
        self.player = player or Player()
        self.clock = ClockSyncEstimator(self.send)
        self.controller = ClientPlaybackController(self.player, self.clock, self.fetch_room, render=render)
        self.player.set_listener(self._on_media_event)
        self.sync_interval = sync_interval

        self._on_event = on_event or (lambda event, data: None)
        self._ws = None
        self._running = False
        self._sync_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self._rejoin = False

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    # ── HTTP ─────────────────────────────────────────────────────────────────

    async def fetch_room(self) -> Optional[dict]:
        """GET /api/room — the authoritative snapshot."""
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            r = await client.get(f"{self.server_url}/api/room")
            r.raise_for_status()
            return r.json().get("room")

    # ── Outbound ─────────────────────────────────────────────────────────────

    async def send(self, event: str, payload: Optional[dict] = None) -> bool:
        if self._ws is None:
            logger.warning("Not connected — dropping %s", event)
            return False
        try:
            await self._ws.send(json.dumps({"type": event, **(payload or {})}))
        except ConnectionClosed:
            logger.warning("Connection closed — %s not sent", event)
            return False
        return True

    async def setup_room(self, target_ms: float) -> bool:
        return await self.send("setup-room", {"targetTime": int(target_ms)})

    async def reconfigure_room(self) -> bool:
        # Stop the local display before the room resets
        self.controller.close()
        return await self.send("reconfigure-room")

    async def join_room(self) -> bool:
        if not self.player.has_media:
            logger.warning("Select a media file before joining")
            return False
        return await self.send("join-room", {"mediaFileName": self.player.media_name})

    async def leave_room(self) -> bool:
        if not self.controller.joined:
            return False
        self.controller.leave()
        sent = await self.send("leave-room")
        await self.controller.refresh()
        return sent

    # ── Session ──────────────────────────────────────────────────────────────

    async def run(self):
        """Connect and keep reconnecting until stop()."""
        self._running = True
        while self._running:
            try:
                async with websockets.connect(self.ws_url) as ws:
                    await self._session(ws)
            except asyncio.CancelledError:
                raise
            except (OSError, WebSocketException) as e:
                msg = format_error("server_unreachable", raw=str(e), room=self.controller.room)
                self._on_event("disconnected", {"message": msg})
            finally:
                self._teardown()
            if self._running:
                await asyncio.sleep(RECONNECT_DELAY)

    async def stop(self):
        self._running = False
        ws = self._ws
        self._teardown()
        if ws is not None:
            await ws.close()
        self.controller.close()
        self.player.stop()

    async def _session(self, ws):
        self._ws = ws
        self.clock.reset()
        self._on_event("connected", {"url": self.ws_url})
        self._sync_task = asyncio.create_task(self._sync_loop())

        await self.controller.refresh()
        if self._rejoin and self.player.has_media:
            # The coordinator only knows connections; a new one must join again
            await self.join_room()
        self._rejoin = False

        async for raw in ws:
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Coordinator sent non-JSON frame")
                continue
            try:
                await self._dispatch(message.get("type"), message.get("data") or {})
            except Exception:
                logger.exception("Failed to handle %s", message.get("type"))

    def _teardown(self):
        if self._ws is not None and self.controller.joined:
            self._rejoin = True
            self.controller.joined = False
        self._ws = None
        if self._sync_task and not self._sync_task.done():
            self._sync_task.cancel()
        self._sync_task = None

    async def _sync_loop(self):
        while True:
            await self.clock.request_sync()
            await asyncio.sleep(self.sync_interval)

    # ── Inbound ──────────────────────────────────────────────────────────────

    async def _dispatch(self, event: str, data: dict):
        c = self.controller

        if event == "sync-response":
            accepted = self.clock.on_sync_response(
                data.get("sequenceId"), data.get("serverTime"), data.get("clientRequestTime"),
            )
            if accepted:
                await self.send("offset-update", {"offset": self.clock.offset_ms})

        elif event == "room-joined":
            c.on_room_joined(data.get("room") or {})

        elif event in ("room-updated", "room-setup"):
            c.on_room_updated(data.get("room") or {})

        elif event in ("participant-joined", "participant-left"):
            c.on_participants(data)

        elif event == "countdown-started":
            await c.on_countdown_started(data)

        elif event == "playback-start":
            await c.on_playback_start(data)

        elif event == "room-reconfigured":
            await c.on_room_reconfigured()

        elif event == "error":
            logger.warning("Coordinator rejected %s: %s", data.get("command"), data.get("message"))

        self._on_event(event, data)

    def _on_media_event(self, event: str):
        self.controller.on_media_event(event)
        if self.controller.joined and self.is_connected:
            task = asyncio.get_running_loop().create_task(self.send("playback-state", {
                "state": event,
                "currentTime": self.player.position,
                "timestamp": self.clock.synced_now(),
            }))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
