"""Time helpers shared by the coordinator and the client."""
import math
import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Wall clock as epoch milliseconds."""
    return int(time.time() * 1000)


def hr_time() -> str:
    """Monotonic high-resolution counter in nanoseconds, as a string (JSON-safe)."""
    return str(time.perf_counter_ns())


def iso_ms(epoch_ms: float) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")


def as_epoch_ms(value) -> int | None:
    """Coerce a client-supplied instant to int epoch ms. None if unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    # Must be a datetime-representable instant
    try:
        iso_ms(value)
    except (OverflowError, ValueError, OSError):
        return None
    return int(value)


def fmt_time(seconds: float) -> str:
    m, s = divmod(int(seconds), 60)
    return f"{m}:{s:02d}"


def fmt_countdown(remaining_ms: float) -> str:
    """Format a remaining duration as mm:ss or h:mm:ss, rounding up partial seconds."""
    total_s = math.ceil(max(0, remaining_ms) / 1000)
    h, rem = divmod(total_s, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def fmt_clock(epoch_ms: float | None) -> str:
    """Local wall-clock rendering of an epoch ms instant."""
    if epoch_ms is None:
        return "--:--:--"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%H:%M:%S")
