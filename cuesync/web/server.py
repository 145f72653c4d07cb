"""Starlette app — HTTP routes + WebSocket + static file serving."""
import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.responses import JSONResponse, FileResponse, Response
from starlette.routing import Route, WebSocketRoute, Mount
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..config import APP_VERSION, STATIC_DIR
from ..coordinator import SessionCoordinator
from ..utils import now_ms, hr_time, iso_ms
from .state import ConnectionHub

logger = logging.getLogger(__name__)


def _coordinator(request) -> SessionCoordinator:
    return request.app.state.coordinator


# ── Health ───────────────────────────────────────────────────────────────────

async def health(request):
    return JSONResponse({"status": "ok", "version": APP_VERSION})


# ── Clock & room queries ─────────────────────────────────────────────────────

async def server_time(request):
    now = now_ms()
    return JSONResponse({"timestamp": now, "hrtime": hr_time(), "iso": iso_ms(now)})


async def room_info(request):
    return JSONResponse({"room": _coordinator(request).snapshot()})


async def room_stats(request):
    return JSONResponse(_coordinator(request).stats())


# ── WebSocket ────────────────────────────────────────────────────────────────

async def websocket_endpoint(websocket: WebSocket):
    coordinator: SessionCoordinator = websocket.app.state.coordinator
    hub: ConnectionHub = websocket.app.state.hub

    await websocket.accept()
    client_id = str(uuid.uuid4())
    queue = hub.subscribe(client_id)
    await coordinator.connect(client_id)

    # Two tasks: one reads from client, one writes from queue
    async def _reader():
        try:
            while True:
                text = await websocket.receive_text()
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    logger.warning("WS %s sent non-JSON frame", client_id)
                    continue
                if not isinstance(data, dict):
                    logger.warning("WS %s sent non-object frame", client_id)
                    continue
                try:
                    await _handle_ws_message(coordinator, client_id, data)
                except Exception:
                    logger.exception("WS %s: failed to handle %s", client_id, data.get("type"))
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WS reader error: %s", e)

    async def _writer():
        try:
            while True:
                event, data = await queue.get()
                await websocket.send_json({"type": event, "data": data})
        except Exception:
            pass

    reader_task = asyncio.create_task(_reader())
    writer_task = asyncio.create_task(_writer())

    try:
        done, pending = await asyncio.wait(
            [reader_task, writer_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        hub.unsubscribe(client_id)
        await coordinator.disconnect(client_id)


async def _handle_ws_message(coordinator: SessionCoordinator, client_id: str, data: dict):
    """Route incoming WebSocket messages to coordinator commands."""
    msg_type = data.get("type", "")

    if msg_type == "sync-request":
        await coordinator.sync_request(client_id, data.get("clientTime"), data.get("sequenceId"))

    elif msg_type == "offset-update":
        await coordinator.offset_update(client_id, data.get("offset"))

    elif msg_type == "ping":
        await coordinator.ping(client_id, data.get("timestamp"))

    elif msg_type == "setup-room":
        await coordinator.configure(client_id, data.get("targetTime"))

    elif msg_type == "join-room":
        await coordinator.join(client_id, data.get("mediaFileName"))

    elif msg_type == "leave-room":
        await coordinator.leave(client_id)

    elif msg_type == "reconfigure-room":
        await coordinator.reconfigure(client_id)

    elif msg_type == "playback-state":
        await coordinator.relay_playback_state(
            client_id, data.get("state"), data.get("currentTime"), data.get("timestamp"),
        )

    else:
        logger.warning("Unknown WS message type: %s", msg_type)


# ── Pages ────────────────────────────────────────────────────────────────────

def _page(name: str):
    async def serve(request):
        page = STATIC_DIR / name
        if page.exists():
            return FileResponse(page)
        return Response(f"{name} not found in {STATIC_DIR}", status_code=503)
    return serve


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(coordinator: SessionCoordinator | None = None) -> Starlette:
    hub = coordinator.hub if coordinator else ConnectionHub()
    coordinator = coordinator or SessionCoordinator(hub)

    routes = [
        Route("/api/health", health),
        Route("/api/time", server_time),
        Route("/api/room", room_info),
        Route("/api/stats", room_stats),
        WebSocketRoute("/ws", websocket_endpoint),
        Route("/", _page("join.html")),
        Route("/ses", _page("session.html")),
    ]

    if STATIC_DIR.exists():
        routes.append(Mount("/static", app=StaticFiles(directory=str(STATIC_DIR)), name="static"))

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Coordinator ready for room %s", coordinator.room.id)
        yield
        await coordinator.stop()
        logger.info("Coordinator stopped")

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.hub = hub
    app.state.coordinator = coordinator
    return app
