"""Operator command parser (keyword matching) for the watch prompt."""
import re
from datetime import datetime, time as dtime
from typing import Optional

_UNITS_MS = {"s": 1000, "m": 60_000, "h": 3_600_000}

HELP = [
    ("setup HH:MM[:SS]", "start everyone at that local clock time today"),
    ("setup +30s | +5m | +1h", "start after a delay"),
    ("setup now", "start immediately"),
    ("reconfigure", "cancel the schedule, back to waiting"),
    ("load <path>", "select the local media file"),
    ("join / leave", "join or leave the room with the loaded file"),
    ("pause / play", "local player controls"),
    ("resync", "jump back to the room position"),
    ("status", "show room, clock offset and participants"),
    ("quit", "exit"),
]


def parse_command(text: str, synced_now: float, today: Optional[datetime] = None) -> dict:
    """
    Returns:
    {
        "command": "setup" | "reconfigure" | "join" | "leave" | "resync" |
                   "pause" | "play" | "load" | "status" | "help" | "quit" | None,
        "target_ms": int | None,   # setup only, coordinator-clock epoch ms
        "path":      str | None,   # load only
        "error":     str | None,
        "raw":       original text,
    }
    """
    t = text.strip()
    low = t.lower()
    result: dict = {"command": None, "target_ms": None, "path": None, "error": None, "raw": text}

    if not low:
        return result

    if re.fullmatch(r"quit|exit|q", low):
        result["command"] = "quit"
        return result

    setup = re.fullmatch(r"(?:setup|start|at)\s+(.+)", low)
    if setup:
        target = parse_target(setup.group(1), synced_now, today)
        if target is None:
            result["error"] = f"Can't read a start time from '{setup.group(1)}'"
            return result
        result["command"] = "setup"
        result["target_ms"] = target
        return result

    load = re.fullmatch(r"(?:load|open|file)\s+(.+)", t, flags=re.IGNORECASE)
    if load:
        result["command"] = "load"
        result["path"] = load.group(1).strip().strip("'\"")
        return result

    aliases = {
        "reconfigure": "reconfigure", "reset": "reconfigure",
        "join": "join",
        "leave": "leave",
        "resync": "resync", "sync": "resync",
        "pause": "pause",
        "play": "play", "resume": "play",
        "status": "status", "info": "status",
        "help": "help", "?": "help",
    }
    if low in aliases:
        result["command"] = aliases[low]
        return result

    result["error"] = f"Unknown command '{t}' — type help"
    return result


def parse_target(text: str, synced_now: float, today: Optional[datetime] = None) -> Optional[int]:
    """Resolve 'now', '+90s' / '+5m' / '+1h' or 'HH:MM[:SS]' to epoch ms.

    Relative targets are measured from the synced clock. Clock times are taken
    as today's local wall time, even when already past (the room then starts
    immediately at the right offset).
    """
    t = text.strip().lower()

    if t == "now":
        return int(synced_now)

    rel = re.fullmatch(r"\+\s*(\d+(?:\.\d+)?)\s*([smh]?)", t)
    if rel:
        amount = float(rel.group(1))
        unit = rel.group(2) or "s"
        return int(synced_now + amount * _UNITS_MS[unit])

    clock = re.fullmatch(r"(\d{1,2}):(\d{2})(?::(\d{2}))?", t)
    if clock:
        h, m, s = int(clock.group(1)), int(clock.group(2)), int(clock.group(3) or 0)
        if h > 23 or m > 59 or s > 59:
            return None
        day = (today or datetime.now()).date()
        return int(datetime.combine(day, dtime(h, m, s)).timestamp() * 1000)

    return None
