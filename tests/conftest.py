"""Shared fixtures: fake clocks, a recording player, hub/coordinator pairs."""
import pytest

from cuesync.coordinator import SessionCoordinator
from cuesync.errors import PlayerError
from cuesync.web.state import ConnectionHub

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakePlayer:
    def __init__(self, has_media: bool = True, fail: bool = False):
        self.has_media = has_media
        self.media_name = "movie.mp4" if has_media else None
        self.fail = fail
        self.position = 0.0
        self.plays: list[float] = []
        self.seeks: list[float] = []
        self.stops = 0
        self.listener = None
        self._playing = False

    def set_listener(self, listener):
        self.listener = listener

    def play_from(self, position: float):
        if self.fail:
            raise PlayerError("autoplay denied")
        self.plays.append(position)
        self.position = position
        self._playing = True

    def seek(self, position: float):
        self.seeks.append(position)
        self.position = position

    def stop(self):
        self.stops += 1
        self._playing = False
        self.position = 0.0

    def is_playing(self) -> bool:
        return self._playing


def drain(queue) -> list[tuple]:
    """Everything queued for one connection so far, as (event, data) tuples."""
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


def event_names(events) -> list[str]:
    return [name for name, _ in events]


def first(events, name):
    return next(data for event, data in events if event == name)


@pytest.fixture(autouse=True)
def _errors_log(tmp_path, monkeypatch):
    """Keep structured error logs out of the working tree."""
    monkeypatch.setattr("cuesync.errors.OUTPUT_DIR", tmp_path)
    monkeypatch.setattr("cuesync.errors.ERRORS_LOG", tmp_path / "errors.log")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
async def coordinator(hub, clock):
    c = SessionCoordinator(hub, clock=clock)
    yield c
    await c.stop()


@pytest.fixture
async def peers(hub, coordinator):
    """Three connected peers: an operator, a viewer, and a second viewer."""
    queues = {}
    for cid in ("host", "alice", "bob"):
        queues[cid] = hub.subscribe(cid)
        await coordinator.connect(cid)
    for q in queues.values():
        drain(q)
    return queues
