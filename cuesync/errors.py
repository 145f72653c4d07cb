"""Structured error logging — JSON lines in errors.log, tagged with the room the client saw."""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import APP_VERSION, DEV_MODE, ERRORS_LOG, OUTPUT_DIR

logger = logging.getLogger(__name__)

_FRIENDLY_MESSAGES = {
    "playback_start": "Couldn't start local playback — check your media file.",
    "snapshot_fetch": "Couldn't fetch the room state — waiting for the next update.",
    "server_unreachable": "Coordinator unreachable — retrying...",
}


class PlayerError(Exception):
    """Local playback engine refused a command (missing binary, no media, ...)."""


def room_context(room: Optional[dict]) -> Optional[dict]:
    """The parts of a room snapshot worth keeping next to a failure."""
    if not room:
        return None
    return {
        "status": room.get("status"),
        "targetTime": room.get("targetTime"),
        "startedAt": room.get("startedAt"),
        "participants": len(room.get("participants") or []),
    }


def format_error(
    stage: str,
    raw: str = "",
    params: Optional[dict] = None,
    room: Optional[dict] = None,
) -> str:
    """Append one entry to errors.log and return what to show the operator."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "stage": stage,
        "error": raw,
        "params": params,
        "room": room_context(room),
        "version": APP_VERSION,
        "python": sys.version.split()[0],
    }

    _append_to_log(entry)
    status = entry["room"]["status"] if entry["room"] else "unknown"
    logger.error("Error at %s (room %s): %s", stage, status, raw)

    if DEV_MODE:
        return json.dumps(entry, indent=2)
    return _FRIENDLY_MESSAGES.get(stage, f"Something went wrong ({stage}).")


def _append_to_log(entry: dict):
    try:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        with open(ERRORS_LOG, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError:
        logger.warning("Could not write %s", ERRORS_LOG)
