import json

from cuesync import errors
from cuesync.errors import format_error, room_context

from conftest import T0


def _entries(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def test_entry_records_room_the_client_saw(tmp_path):
    room = {"status": "playing", "targetTime": T0, "startedAt": T0 + 3,
            "participants": [{"id": "a"}, {"id": "b"}], "currentPosition": 1.2}

    format_error("playback_start", raw="ffplay missing", params={"position": 1.2}, room=room)

    (entry,) = _entries(tmp_path / "errors.log")
    assert entry["stage"] == "playback_start"
    assert entry["error"] == "ffplay missing"
    assert entry["params"] == {"position": 1.2}
    assert entry["room"] == {"status": "playing", "targetTime": T0, "startedAt": T0 + 3, "participants": 2}
    assert entry["version"]


def test_entry_without_room(tmp_path):
    format_error("server_unreachable", raw="refused")
    format_error("snapshot_fetch", raw="timeout", room={})

    first, second = _entries(tmp_path / "errors.log")
    assert first["room"] is None
    assert second["room"] is None


def test_friendly_message_outside_dev_mode(monkeypatch):
    monkeypatch.setattr(errors, "DEV_MODE", False)
    assert "retrying" in format_error("server_unreachable", raw="refused")
    assert format_error("mystery") == "Something went wrong (mystery)."


def test_dev_mode_returns_entry(monkeypatch):
    monkeypatch.setattr(errors, "DEV_MODE", True)
    shown = json.loads(format_error("snapshot_fetch", raw="boom", room={"status": "waiting"}))
    assert shown["room"]["status"] == "waiting"
    assert shown["room"]["participants"] == 0


def test_room_context_tolerates_partial_snapshot():
    assert room_context(None) is None
    assert room_context({"status": "countdown"}) == {
        "status": "countdown", "targetTime": None, "startedAt": None, "participants": 0,
    }
