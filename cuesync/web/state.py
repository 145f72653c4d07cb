"""ConnectionHub — outbound delivery bridge between the coordinator and WebSocket peers."""
import asyncio
import logging
from typing import Any, Iterable, Optional

from ..config import QUEUE_MAXSIZE

logger = logging.getLogger(__name__)


class ConnectionHub:
    def __init__(self, maxsize: int = QUEUE_MAXSIZE):
        self._maxsize = maxsize
        self._subscribers: dict[str, asyncio.Queue] = {}

    def subscribe(self, client_id: str) -> asyncio.Queue:
        """Register a new connection. Returns a queue that receives (event, data) tuples."""
        q: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers[client_id] = q
        return q

    def unsubscribe(self, client_id: str):
        self._subscribers.pop(client_id, None)

    @property
    def client_count(self) -> int:
        return len(self._subscribers)

    def is_connected(self, client_id: str) -> bool:
        return client_id in self._subscribers

    async def send(self, client_id: str, event: str, data: Any = None):
        """Push an event to a single connection."""
        q = self._subscribers.get(client_id)
        if q is None:
            logger.debug("Drop %s for gone client %s", event, client_id)
            return
        if not self._put(q, event, data):
            self._subscribers.pop(client_id, None)

    async def broadcast(self, event: str, data: Any = None):
        """Push an event to every connected client, joined or not."""
        await self.send_many(list(self._subscribers), event, data)

    async def send_many(self, client_ids: Iterable[str], event: str, data: Any = None,
                        exclude: Optional[str] = None):
        dead = []
        for cid in client_ids:
            if cid == exclude:
                continue
            q = self._subscribers.get(cid)
            if q is None:
                continue
            if not self._put(q, event, data):
                dead.append(cid)
        for cid in dead:
            self._subscribers.pop(cid, None)

    @staticmethod
    def _put(q: asyncio.Queue, event: str, data: Any) -> bool:
        try:
            q.put_nowait((event, data))
        except asyncio.QueueFull:
            # Slow client: drop oldest
            try:
                q.get_nowait()
                q.put_nowait((event, data))
            except (asyncio.QueueEmpty, asyncio.QueueFull):
                return False
        return True
