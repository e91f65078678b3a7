"""Boundary with the REST-managed meeting records.

Meetings are owned by the scheduling side of the product. The session core
only reads a settings snapshot when it lazily creates a room and reports
status transitions back when a room starts or is force-ended.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict

from .errors import NotFoundError
from .moderation import Clock, utcnow

logger = logging.getLogger(__name__)


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class MeetingSnapshot:
    """Settings of a meeting as seen at room-creation time."""

    id: str
    room_id: str
    title: str = "Meeting"
    kind: str = "standard"
    host_id: str | None = None
    status: MeetingStatus = MeetingStatus.SCHEDULED
    require_password: bool = False
    password: str | None = None
    max_participants: int | None = None
    allow_screen_share: bool = True
    allow_chat: bool = True
    allow_reactions: bool = True
    allow_recording: bool = True
    waiting_room: bool = False
    created_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    def to_public(self) -> dict[str, object]:
        return {
            "id": self.id,
            "roomId": self.room_id,
            "title": self.title,
            "kind": self.kind,
            "hostId": self.host_id,
            "status": self.status.value,
            "requirePassword": self.require_password,
            "maxParticipants": self.max_participants,
            "allowScreenShare": self.allow_screen_share,
            "allowChat": self.allow_chat,
            "allowReactions": self.allow_reactions,
            "allowRecording": self.allow_recording,
            "waitingRoom": self.waiting_room,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
        }


StatusListener = Callable[[MeetingSnapshot], None]


@dataclass
class InMemoryMeetingDirectory:
    """Process-local meeting records used by the REST bridge."""

    clock: Clock = utcnow
    _meetings: Dict[str, MeetingSnapshot] = field(default_factory=dict)
    _by_room: Dict[str, str] = field(default_factory=dict)
    _listeners: list[StatusListener] = field(default_factory=list)

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def register(self, snapshot: MeetingSnapshot) -> MeetingSnapshot:
        if snapshot.created_at is None:
            snapshot = replace(snapshot, created_at=self.clock())
        previous = self._meetings.get(snapshot.id)
        if previous is not None and previous.room_id != snapshot.room_id:
            self._by_room.pop(previous.room_id, None)
        self._meetings[snapshot.id] = snapshot
        self._by_room[snapshot.room_id] = snapshot.id
        return snapshot

    def get(self, meeting_id: str) -> MeetingSnapshot:
        snapshot = self._meetings.get(meeting_id)
        if snapshot is None:
            raise NotFoundError("Meeting not found")
        return snapshot

    def find_by_room(self, room_id: str) -> MeetingSnapshot | None:
        meeting_id = self._by_room.get(room_id)
        if meeting_id is None:
            return None
        return self._meetings.get(meeting_id)

    def mark_started(self, meeting_id: str) -> MeetingSnapshot:
        snapshot = self.get(meeting_id)
        if snapshot.status is MeetingStatus.ACTIVE:
            return snapshot
        return self._transition(
            snapshot, status=MeetingStatus.ACTIVE, started_at=self.clock(), ended_at=None
        )

    def mark_ended(self, meeting_id: str) -> MeetingSnapshot:
        snapshot = self.get(meeting_id)
        if snapshot.status is MeetingStatus.ENDED:
            return snapshot
        return self._transition(snapshot, status=MeetingStatus.ENDED, ended_at=self.clock())

    def mark_cancelled(self, meeting_id: str) -> MeetingSnapshot:
        """Cancel a meeting; finished meetings are returned unchanged."""

        snapshot = self.get(meeting_id)
        if snapshot.status in (MeetingStatus.ENDED, MeetingStatus.CANCELLED):
            return snapshot
        return self._transition(snapshot, status=MeetingStatus.CANCELLED, ended_at=self.clock())

    def _transition(self, snapshot: MeetingSnapshot, **changes: object) -> MeetingSnapshot:
        updated = replace(snapshot, **changes)
        self._meetings[updated.id] = updated
        logger.info(
            "Meeting status changed",
            extra={"meeting": updated.id, "status": updated.status.value},
        )
        for listener in list(self._listeners):
            listener(updated)
        return updated

    def __len__(self) -> int:
        return len(self._meetings)


__all__ = [
    "MeetingStatus",
    "MeetingSnapshot",
    "InMemoryMeetingDirectory",
]
