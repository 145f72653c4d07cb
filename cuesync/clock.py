"""Client clock sync — round-trip probes against the coordinator clock.

offset = (serverTime + rtt/2) - now, assuming symmetric latency. Each accepted
response overwrites the previous estimate: no smoothing, no outlier rejection.
"""
import logging
import uuid
from typing import Awaitable, Callable, Optional

from .config import SYNC_TIMEOUT_MS
from .utils import now_ms

logger = logging.getLogger(__name__)


class ClockSyncEstimator:
    def __init__(
        self,
        send: Callable[[str, dict], Awaitable[None]],
        clock: Callable[[], int] = now_ms,
        timeout_ms: int = SYNC_TIMEOUT_MS,
    ):
        """send: coroutine (event, payload) that delivers a message to the coordinator."""
        self._send = send
        self._clock = clock
        self._timeout_ms = timeout_ms
        self._pending: dict[str, int] = {}   # sequenceId -> clientSendTime

        self.offset_ms: float = 0.0
        self.last_rtt_ms: Optional[float] = None
        self.samples = 0

    def reset(self):
        """Back to a zero offset. Called at every (re)connection."""
        self._pending.clear()
        self.offset_ms = 0.0
        self.last_rtt_ms = None
        self.samples = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def request_sync(self) -> str:
        """Send one probe. Returns its sequence id."""
        self._prune()
        sequence_id = uuid.uuid4().hex[:9]
        sent_at = self._clock()
        self._pending[sequence_id] = sent_at
        await self._send("sync-request", {"clientTime": sent_at, "sequenceId": sequence_id})
        return sequence_id

    def on_sync_response(self, sequence_id, server_time, client_request_time) -> bool:
        """Apply a sync-response. Stale, duplicate or unknown probes are ignored."""
        sent_at = self._pending.pop(sequence_id, None)
        if sent_at is None:
            logger.debug("Ignoring sync-response for unknown probe %s", sequence_id)
            return False
        now = self._clock()
        if now - sent_at > self._timeout_ms:
            logger.debug("Ignoring late sync-response %s (%dms)", sequence_id, now - sent_at)
            return False
        if not isinstance(server_time, (int, float)) or not isinstance(client_request_time, (int, float)):
            logger.debug("Ignoring malformed sync-response %s", sequence_id)
            return False

        rtt = now - client_request_time
        self.offset_ms = (server_time + rtt / 2) - now
        self.last_rtt_ms = rtt
        self.samples += 1
        logger.info("Time sync: offset=%.1fms, latency=%.1fms", self.offset_ms, rtt / 2)
        return True

    def synced_now(self) -> float:
        """Best local estimate of the coordinator's current time (epoch ms)."""
        return self._clock() + self.offset_ms

    def _prune(self):
        cutoff = self._clock() - self._timeout_ms
        for seq in [s for s, sent in self._pending.items() if sent < cutoff]:
            del self._pending[seq]
