"""Process-wide map from room id to live room."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator

from .meetings import MeetingSnapshot
from .moderation import Clock, utcnow
from .permissions import RoomKind
from .room import DEFAULT_MAX_PARTICIPANTS, Room, RoomSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RoomHint:
    """What the creating request knows about a room that does not exist yet."""

    name: str | None = None
    kind: RoomKind = RoomKind.STANDARD
    meeting: MeetingSnapshot | None = None


class SessionRegistry:
    """Owns every live :class:`Room`.

    Callers must create a room and insert its first participant inside the
    same synchronous call; an empty room is deleted as soon as it is seen.
    """

    def __init__(
        self,
        *,
        default_max_participants: int = DEFAULT_MAX_PARTICIPANTS,
        clock: Clock = utcnow,
    ) -> None:
        self._rooms: Dict[str, Room] = {}
        self._default_max_participants = default_max_participants
        self._clock = clock

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def rooms_for(self, participant_id: str) -> list[Room]:
        return [room for room in self._rooms.values() if participant_id in room]

    def participant_count(self) -> int:
        return sum(len(room) for room in self._rooms.values())

    def get_or_create_room(
        self,
        room_id: str,
        hint: RoomHint | None = None,
    ) -> tuple[Room, bool]:
        """Return the live room or build one from ``hint``.

        Settings are fixed by whichever call created the room; the hint of
        later callers is ignored.
        """

        room = self._rooms.get(room_id)
        if room is not None:
            return room, False

        hint = hint or RoomHint()
        meeting = hint.meeting
        kind = RoomKind.parse(meeting.kind) if meeting is not None else hint.kind
        room = Room(
            room_id,
            name=(meeting.title if meeting is not None else None) or hint.name,
            kind=kind,
            designated_host_id=meeting.host_id if meeting is not None else None,
            settings=RoomSettings.from_snapshot(
                meeting,
                kind=kind,
                default_max_participants=self._default_max_participants,
            ),
            meeting_id=meeting.id if meeting is not None else None,
            created_at=self._clock(),
        )
        self._rooms[room_id] = room
        logger.info(
            "Room created",
            extra={"room": room_id, "kind": kind.value, "meeting": room.meeting_id},
        )
        return room, True

    def delete_room(self, room_id: str) -> Room | None:
        room = self._rooms.pop(room_id, None)
        if room is not None:
            logger.info("Room destroyed", extra={"room": room_id})
        return room

    def discard_if_empty(self, room: Room) -> bool:
        if room.is_empty and self._rooms.get(room.id) is room:
            self.delete_room(room.id)
            return True
        return False


__all__ = ["RoomHint", "SessionRegistry"]
