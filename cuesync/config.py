"""Module 1 — Config & Constants"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (two levels up from cuesync/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
STATIC_DIR = ROOT_DIR / os.getenv("STATIC_DIR", "static")
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "output")
ERRORS_LOG = OUTPUT_DIR / "errors.log"

# ─── Coordinator ──────────────────────────────────────────────────────────────
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("PORT", "3000"))
ROOM_ID = os.getenv("ROOM_ID", "SHARED_ROOM")

# Per-connection outbound queue. Oldest event is dropped when a peer lags.
QUEUE_MAXSIZE = int(os.getenv("QUEUE_MAXSIZE", "50"))

UNKNOWN_MEDIA_NAME = "Unknown file"

# ─── Client ───────────────────────────────────────────────────────────────────
SERVER_URL = os.getenv("CUESYNC_SERVER", "http://localhost:3000").rstrip("/")
SYNC_INTERVAL = float(os.getenv("SYNC_INTERVAL", "30"))        # seconds between probes
SYNC_TIMEOUT_MS = int(os.getenv("SYNC_TIMEOUT_MS", "5000"))    # probe is stale after this
TICK_INTERVAL = float(os.getenv("TICK_INTERVAL", "0.1"))       # countdown display resolution
DRIFT_THRESHOLD = float(os.getenv("DRIFT_THRESHOLD", "1.0"))   # seconds tolerated before re-seek
RECONNECT_DELAY = float(os.getenv("RECONNECT_DELAY", "3"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "5"))

PLAYER_BIN = os.getenv("PLAYER_BIN", "ffplay")

APP_VERSION = "0.1.0"

# ─── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ─── Dev mode ─────────────────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "1").strip() in ("1", "true", "yes")
