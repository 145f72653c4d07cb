"""Module 2 — Room state + participant registry"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .config import ROOM_ID, UNKNOWN_MEDIA_NAME


class Phase(str, Enum):
    WAITING = "waiting"
    COUNTDOWN = "countdown"
    PLAYING = "playing"


@dataclass
class ParticipantInfo:
    media_file_name: str
    joined_at: int


@dataclass
class RoomState:
    """The single shared session. Mutated only by SessionCoordinator."""
    id: str = ROOM_ID
    created_at: int = 0
    phase: Phase = Phase.WAITING
    target_time: Optional[int] = None   # epoch ms, coordinator clock
    started_at: Optional[int] = None    # epoch ms when playback actually started
    participants: dict[str, ParticipantInfo] = field(default_factory=dict)

    def reset(self):
        self.phase = Phase.WAITING
        self.target_time = None
        self.started_at = None

    def current_position(self, now: int) -> float:
        """Seconds into the media on the coordinator clock. 0 unless playing."""
        if self.phase != Phase.PLAYING or self.started_at is None:
            return 0
        return (now - self.started_at) / 1000

    def to_dict(self, now: int, participants: list[dict]) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "status": self.phase.value,
            "targetTime": self.target_time,
            "startedAt": self.started_at,
            "participants": participants,
            "currentPosition": self.current_position(now),
        }


class ParticipantRegistry:
    """Projection of RoomState.participants shared by every broadcast path."""

    def __init__(self, room: RoomState):
        self._room = room

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._room.participants

    def add(self, connection_id: str, media_file_name, joined_at: int) -> ParticipantInfo:
        name = media_file_name.strip() if isinstance(media_file_name, str) else ""
        name = name or UNKNOWN_MEDIA_NAME
        info = ParticipantInfo(media_file_name=name, joined_at=joined_at)
        self._room.participants[connection_id] = info
        return info

    def remove(self, connection_id: str) -> bool:
        return self._room.participants.pop(connection_id, None) is not None

    def count(self) -> int:
        return len(self._room.participants)

    def ids(self) -> list[str]:
        return list(self._room.participants)

    def snapshot(self) -> list[dict]:
        return [
            {"id": cid, "mediaFileName": info.media_file_name, "joinedAt": info.joined_at}
            for cid, info in self._room.participants.items()
        ]
