from cuesync.room import Phase, RoomState, ParticipantRegistry

from conftest import T0


class TestRoomState:
    def test_defaults(self):
        room = RoomState(created_at=T0)
        assert room.id == "SHARED_ROOM"
        assert room.phase == Phase.WAITING
        assert room.target_time is None
        assert room.started_at is None
        assert room.participants == {}

    def test_position_is_zero_unless_playing(self):
        room = RoomState(created_at=T0, phase=Phase.COUNTDOWN, target_time=T0 + 1000)
        assert room.current_position(T0 + 5000) == 0

    def test_position_measured_from_actual_start(self):
        room = RoomState(created_at=T0, phase=Phase.PLAYING, target_time=T0, started_at=T0 + 40)
        assert room.current_position(T0 + 1040) == 1.0

    def test_reset_keeps_participants(self):
        room = RoomState(created_at=T0, phase=Phase.PLAYING, target_time=T0, started_at=T0)
        ParticipantRegistry(room).add("a", "a.mp4", T0)

        room.reset()

        assert room.phase == Phase.WAITING
        assert room.target_time is None
        assert room.started_at is None
        assert "a" in room.participants

    def test_to_dict_uses_wire_names(self):
        room = RoomState(created_at=T0, phase=Phase.PLAYING, target_time=T0, started_at=T0)
        d = room.to_dict(T0 + 2000, [])
        assert d == {
            "id": "SHARED_ROOM",
            "createdAt": T0,
            "status": "playing",
            "targetTime": T0,
            "startedAt": T0,
            "participants": [],
            "currentPosition": 2.0,
        }


class TestParticipantRegistry:
    def test_add_and_snapshot_in_join_order(self):
        reg = ParticipantRegistry(RoomState())
        reg.add("b", "second.mkv", T0 + 5)
        reg.add("a", "first.mp4", T0 + 9)

        assert reg.ids() == ["b", "a"]
        assert reg.snapshot() == [
            {"id": "b", "mediaFileName": "second.mkv", "joinedAt": T0 + 5},
            {"id": "a", "mediaFileName": "first.mp4", "joinedAt": T0 + 9},
        ]

    def test_rejoin_replaces_entry(self):
        reg = ParticipantRegistry(RoomState())
        reg.add("a", "old.mp4", T0)
        reg.add("a", "new.mp4", T0 + 1)
        assert reg.count() == 1
        assert reg.snapshot()[0]["mediaFileName"] == "new.mp4"

    def test_blank_or_missing_names(self):
        reg = ParticipantRegistry(RoomState())
        assert reg.add("a", "   ", T0).media_file_name == "Unknown file"
        assert reg.add("b", None, T0).media_file_name == "Unknown file"
        assert reg.add("c", 42, T0).media_file_name == "Unknown file"
        assert reg.add("d", "  clip.mp4 ", T0).media_file_name == "clip.mp4"

    def test_remove(self):
        reg = ParticipantRegistry(RoomState())
        reg.add("a", "a.mp4", T0)
        assert reg.remove("a") is True
        assert reg.remove("a") is False
        assert "a" not in reg
        assert reg.count() == 0
