"""Room aggregate: participants, roles, chat, reactions, polls and recording."""

from __future__ import annotations

import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Sequence

from .binding import ConnectionBinding
from .errors import (
    AuthorizationError,
    CapacityError,
    NotFoundError,
    ValidationError,
)
from .meetings import MeetingSnapshot
from .moderation import utcnow
from .permissions import (
    ATTENDEE_BASELINE,
    Capability,
    Role,
    RoomKind,
    can_share_screen,
    permissions_for,
    serialize_permissions,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARTICIPANTS = 10000

Restriction = Callable[[str], bool]


def _never_restricted(_: str) -> bool:
    return False


class RecordingStatus(str, Enum):
    STOPPED = "stopped"
    RECORDING = "recording"
    PAUSED = "paused"


# action -> (allowed source states, resulting state)
RECORDING_TRANSITIONS: dict[str, tuple[frozenset[RecordingStatus], RecordingStatus]] = {
    "start": (frozenset({RecordingStatus.STOPPED}), RecordingStatus.RECORDING),
    "pause": (frozenset({RecordingStatus.RECORDING}), RecordingStatus.PAUSED),
    "resume": (frozenset({RecordingStatus.PAUSED}), RecordingStatus.RECORDING),
    "stop": (
        frozenset({RecordingStatus.RECORDING, RecordingStatus.PAUSED}),
        RecordingStatus.STOPPED,
    ),
}

TOGGLEABLE_SETTINGS = frozenset(
    {"allow_screen_share", "allow_chat", "allow_reactions", "allow_raise_hand"}
)


@dataclass(slots=True)
class RoomSettings:
    password: str | None = None
    require_password: bool = False
    max_participants: int = DEFAULT_MAX_PARTICIPANTS
    allow_screen_share: bool = True
    allow_chat: bool = True
    allow_reactions: bool = True
    allow_recording: bool = True
    allow_raise_hand: bool = True
    mute_on_entry: bool = False
    waiting_room: bool = False
    allow_co_hosts: bool = True

    @property
    def password_required(self) -> bool:
        return self.require_password and bool(self.password)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: MeetingSnapshot | None,
        *,
        kind: RoomKind,
        default_max_participants: int = DEFAULT_MAX_PARTICIPANTS,
    ) -> "RoomSettings":
        if snapshot is None:
            return cls(
                max_participants=default_max_participants,
                mute_on_entry=kind is RoomKind.WEBINAR,
            )
        return cls(
            password=snapshot.password or None,
            require_password=snapshot.require_password,
            max_participants=snapshot.max_participants or default_max_participants,
            allow_screen_share=snapshot.allow_screen_share,
            allow_chat=snapshot.allow_chat,
            allow_reactions=snapshot.allow_reactions,
            allow_recording=snapshot.allow_recording,
            mute_on_entry=kind is RoomKind.WEBINAR,
            waiting_room=snapshot.waiting_room,
        )

    def to_public(self) -> dict[str, Any]:
        return {
            "requirePassword": self.password_required,
            "maxParticipants": self.max_participants,
            "allowScreenShare": self.allow_screen_share,
            "allowChat": self.allow_chat,
            "allowReactions": self.allow_reactions,
            "allowRecording": self.allow_recording,
            "allowRaiseHand": self.allow_raise_hand,
            "muteOnEntry": self.mute_on_entry,
            "waitingRoom": self.waiting_room,
            "allowCoHosts": self.allow_co_hosts,
        }


@dataclass
class Participant:
    id: str
    user_name: str
    role: Role
    permissions: frozenset[Capability]
    join_seq: int
    joined_at: datetime
    connection_id: str | None = None
    audio_muted: bool = False
    video_muted: bool = False
    screen_sharing: bool = False
    profile: dict[str, Any] = field(default_factory=dict)

    def to_public(self, permissions: Iterable[Capability] | None = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "userName": self.user_name,
            "role": self.role.value,
            "isAudioMuted": self.audio_muted,
            "isVideoMuted": self.video_muted,
            "isScreenSharing": self.screen_sharing,
            "joinedAt": self.joined_at.isoformat(),
            "connected": self.connection_id is not None,
            "permissions": serialize_permissions(
                self.permissions if permissions is None else permissions
            ),
        }


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    participant_id: str
    user_name: str
    message: str
    timestamp: datetime

    def to_public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.participant_id,
            "userName": self.user_name,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    id: str
    participant_id: str
    user_name: str
    emoji: str
    timestamp: datetime

    def to_public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.participant_id,
            "userName": self.user_name,
            "emoji": self.emoji,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class HandRaise:
    room_id: str
    participant_id: str
    raised_at: datetime
    acknowledged: bool = False

    def to_public(self) -> dict[str, Any]:
        return {
            "userId": self.participant_id,
            "raisedAt": self.raised_at.isoformat(),
            "acknowledged": self.acknowledged,
        }


@dataclass
class Poll:
    id: str
    question: str
    options: tuple[str, ...]
    created_by: str
    created_at: datetime
    closes_at: datetime | None = None
    votes: Dict[str, int] = field(default_factory=dict)
    closed: bool = False

    def results(self) -> list[int]:
        counts = [0] * len(self.options)
        for option_index in self.votes.values():
            counts[option_index] += 1
        return counts

    def to_public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "results": self.results(),
            "totalVotes": len(self.votes),
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat(),
            "closesAt": self.closes_at.isoformat() if self.closes_at else None,
            "closed": self.closed,
        }


class Room:
    """One live session.

    The room exclusively owns its participants; connection ids are plain
    values kept in :class:`ConnectionBinding`, never references back into the
    transport.
    """

    def __init__(
        self,
        room_id: str,
        *,
        name: str | None = None,
        kind: RoomKind = RoomKind.STANDARD,
        designated_host_id: str | None = None,
        settings: RoomSettings | None = None,
        meeting_id: str | None = None,
        created_at: datetime | None = None,
    ) -> None:
        self.id = room_id
        self.name = name or f"Room {room_id}"
        self.kind = kind
        self.host_id: str | None = None
        self.designated_host_id = designated_host_id
        self.settings = settings or RoomSettings(mute_on_entry=kind is RoomKind.WEBINAR)
        self.meeting_id = meeting_id
        self.created_at = created_at or utcnow()
        self.participants: Dict[str, Participant] = {}
        self.binding = ConnectionBinding()
        self.recording_status = RecordingStatus.STOPPED
        self.chat_history: list[ChatMessage] = []
        self.reaction_history: list[ReactionEvent] = []
        self.polls: list[Poll] = []
        self.active_poll: Poll | None = None
        self.hand_raises: Dict[str, HandRaise] = {}
        self._join_counter = itertools.count(1)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.participants)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self.participants

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def get(self, participant_id: str) -> Participant | None:
        return self.participants.get(participant_id)

    def require(self, participant_id: str) -> Participant:
        participant = self.participants.get(participant_id)
        if participant is None:
            raise NotFoundError("Participant not found")
        return participant

    def by_connection(self, connection_id: str) -> Participant | None:
        participant_id = self.binding.participant_for(connection_id)
        if participant_id is None:
            return None
        return self.participants.get(participant_id)

    def ordered(self) -> list[Participant]:
        return sorted(self.participants.values(), key=lambda item: item.join_seq)

    def host(self) -> Participant | None:
        if self.host_id is None:
            return None
        return self.participants.get(self.host_id)

    def check_admission(self, password: str | None) -> None:
        if len(self.participants) >= self.settings.max_participants:
            raise CapacityError("Room is at maximum capacity")
        if self.settings.password_required and password != self.settings.password:
            raise AuthorizationError("Incorrect password", reason="password")

    def add_participant(
        self,
        participant_id: str,
        *,
        user_name: str,
        connection_id: str | None = None,
        password: str | None = None,
        profile: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Participant:
        if participant_id in self.participants:
            raise ValidationError("Participant already joined this room")
        self.check_admission(password)

        # The designated host reclaims the role from whoever stood in.
        previous_host = self.host()
        if previous_host is None or participant_id == self.designated_host_id:
            role = Role.HOST
        elif self.kind is RoomKind.WEBINAR:
            role = Role.ATTENDEE
        else:
            role = Role.PARTICIPANT

        participant = Participant(
            id=participant_id,
            user_name=user_name,
            role=role,
            permissions=permissions_for(role, allow_screen_share=self.settings.allow_screen_share),
            join_seq=next(self._join_counter),
            joined_at=now or utcnow(),
            audio_muted=self.settings.mute_on_entry and role is not Role.HOST,
            profile=dict(profile or {}),
        )
        self.participants[participant_id] = participant
        if role is Role.HOST:
            if previous_host is not None:
                self._assign_role(previous_host, self._demoted_host_role())
                logger.info(
                    "Host role reclaimed",
                    extra={"room": self.id, "participant": participant_id},
                )
            self.host_id = participant_id
        if connection_id is not None:
            self.bind(participant_id, connection_id)
        return participant

    def remove_participant(
        self, participant_id: str
    ) -> tuple[Participant | None, Participant | None]:
        """Remove a participant and run host transfer when needed.

        Returns ``(departed, new_host)``; ``new_host`` is ``None`` unless the
        host role moved.
        """

        participant = self.participants.pop(participant_id, None)
        if participant is None:
            return None, None
        self.binding.unbind(participant_id)
        participant.connection_id = None
        self.hand_raises.pop(participant_id, None)

        new_host = None
        if participant.role is Role.HOST and self.participants:
            new_host = self._transfer_host()
        return participant, new_host

    def _transfer_host(self) -> Participant:
        remaining = self.ordered()
        candidates = [item for item in remaining if item.role is Role.CO_HOST] or remaining
        new_host = candidates[0]
        self._assign_role(new_host, Role.HOST)
        self.host_id = new_host.id
        logger.info(
            "Host transferred", extra={"room": self.id, "participant": new_host.id}
        )
        return new_host

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    def bind(self, participant_id: str, connection_id: str) -> str | None:
        participant = self.require(participant_id)
        previous = self.binding.bind(participant_id, connection_id)
        participant.connection_id = connection_id
        return previous

    def unbind(self, participant_id: str) -> str | None:
        participant = self.participants.get(participant_id)
        if participant is not None:
            participant.connection_id = None
        return self.binding.unbind(participant_id)

    # ------------------------------------------------------------------
    # Roles and permissions
    # ------------------------------------------------------------------
    def _assign_role(self, participant: Participant, role: Role) -> None:
        participant.role = role
        participant.permissions = permissions_for(
            role, allow_screen_share=self.settings.allow_screen_share
        )

    def _demoted_host_role(self) -> Role:
        return Role.CO_HOST if self.settings.allow_co_hosts else Role.PARTICIPANT

    def set_role(self, participant_id: str, role: Role) -> list[Participant]:
        """Change a role and return every participant whose role changed."""

        participant = self.require(participant_id)
        if participant.role is role:
            return []
        if participant.role is Role.HOST:
            raise ValidationError("Assign the host role to someone else instead")
        if role is Role.CO_HOST and not self.settings.allow_co_hosts:
            raise AuthorizationError("Co-hosts are disabled in this room")

        changed = [participant]
        if role is Role.HOST:
            previous = self.host()
            if previous is not None:
                self._assign_role(previous, self._demoted_host_role())
                changed.append(previous)
            self.host_id = participant.id
        self._assign_role(participant, role)
        return changed

    def effective_permissions(
        self, participant: Participant, *, restricted: bool = False
    ) -> frozenset[Capability]:
        if restricted:
            return ATTENDEE_BASELINE
        granted = set(participant.permissions)
        if can_share_screen(participant.role, allow_screen_share=self.settings.allow_screen_share):
            granted.add(Capability.SHARE_SCREEN)
        else:
            granted.discard(Capability.SHARE_SCREEN)
        return frozenset(granted)

    def permits(
        self, participant_id: str, capability: Capability, *, restricted: bool = False
    ) -> bool:
        participant = self.participants.get(participant_id)
        if participant is None:
            return False
        if restricted:
            return capability in ATTENDEE_BASELINE
        if capability is Capability.SHARE_SCREEN:
            return can_share_screen(
                participant.role, allow_screen_share=self.settings.allow_screen_share
            )
        return capability in participant.permissions

    def require_permission(
        self, participant_id: str, capability: Capability, *, restricted: bool = False
    ) -> Participant:
        participant = self.require(participant_id)
        if not self.permits(participant_id, capability, restricted=restricted):
            raise AuthorizationError("Insufficient permissions")
        return participant

    # ------------------------------------------------------------------
    # Media state
    # ------------------------------------------------------------------
    def set_audio_muted(self, participant_id: str, muted: bool) -> bool:
        participant = self.require(participant_id)
        if participant.audio_muted == muted:
            return False
        participant.audio_muted = muted
        return True

    def set_video_muted(self, participant_id: str, muted: bool) -> bool:
        participant = self.require(participant_id)
        if participant.video_muted == muted:
            return False
        participant.video_muted = muted
        return True

    def set_screen_sharing(self, participant_id: str, sharing: bool) -> bool:
        participant = self.require(participant_id)
        if participant.screen_sharing == sharing:
            return False
        participant.screen_sharing = sharing
        return True

    # ------------------------------------------------------------------
    # Chat, reactions and hands
    # ------------------------------------------------------------------
    def append_chat(
        self, participant_id: str, message: str, *, now: datetime | None = None
    ) -> ChatMessage:
        participant = self.require(participant_id)
        if not self.settings.allow_chat:
            raise AuthorizationError("Chat is disabled in this room")
        entry = ChatMessage(
            id=str(uuid.uuid4()),
            participant_id=participant.id,
            user_name=participant.user_name,
            message=message,
            timestamp=now or utcnow(),
        )
        self.chat_history.append(entry)
        return entry

    def append_reaction(
        self, participant_id: str, emoji: str, *, now: datetime | None = None
    ) -> ReactionEvent:
        participant = self.require(participant_id)
        if not self.settings.allow_reactions:
            raise AuthorizationError("Reactions are disabled in this room")
        entry = ReactionEvent(
            id=str(uuid.uuid4()),
            participant_id=participant.id,
            user_name=participant.user_name,
            emoji=emoji,
            timestamp=now or utcnow(),
        )
        self.reaction_history.append(entry)
        return entry

    def raise_hand(
        self, participant_id: str, *, now: datetime | None = None
    ) -> tuple[HandRaise, bool]:
        self.require(participant_id)
        if not self.settings.allow_raise_hand:
            raise AuthorizationError("Raising hands is disabled in this room")
        existing = self.hand_raises.get(participant_id)
        if existing is not None:
            return existing, False
        entry = HandRaise(room_id=self.id, participant_id=participant_id, raised_at=now or utcnow())
        self.hand_raises[participant_id] = entry
        return entry, True

    def lower_hand(self, participant_id: str) -> bool:
        return self.hand_raises.pop(participant_id, None) is not None

    def acknowledge_hand(self, participant_id: str) -> HandRaise:
        entry = self.hand_raises.get(participant_id)
        if entry is None:
            raise NotFoundError("Hand is not raised")
        entry.acknowledged = True
        return entry

    # ------------------------------------------------------------------
    # Polls
    # ------------------------------------------------------------------
    def open_poll(
        self,
        participant_id: str,
        question: str,
        options: Sequence[str],
        *,
        duration_seconds: float | None = None,
        now: datetime | None = None,
    ) -> Poll:
        if self.active_poll is not None:
            raise ValidationError("Another poll is already running")
        if len(options) < 2:
            raise ValidationError("A poll needs at least two options")
        created_at = now or utcnow()
        poll = Poll(
            id=str(uuid.uuid4()),
            question=question,
            options=tuple(options),
            created_by=participant_id,
            created_at=created_at,
            closes_at=(
                created_at + timedelta(seconds=duration_seconds) if duration_seconds else None
            ),
        )
        self.polls.append(poll)
        self.active_poll = poll
        return poll

    def vote(self, participant_id: str, poll_id: str, option_index: int) -> Poll:
        self.require(participant_id)
        poll = self.active_poll
        if poll is None or poll.id != poll_id:
            raise NotFoundError("Poll is not active")
        if not 0 <= option_index < len(poll.options):
            raise ValidationError("Unknown poll option")
        poll.votes[participant_id] = option_index
        return poll

    def close_poll(self, poll_id: str) -> Poll | None:
        """Close the active poll if it is still ``poll_id``; otherwise no-op."""

        poll = self.active_poll
        if poll is None or poll.id != poll_id:
            return None
        poll.closed = True
        self.active_poll = None
        return poll

    # ------------------------------------------------------------------
    # Recording and settings
    # ------------------------------------------------------------------
    def set_recording(self, action: str) -> RecordingStatus:
        if not self.settings.allow_recording:
            raise AuthorizationError("Recording is disabled in this room")
        transition = RECORDING_TRANSITIONS.get(action)
        if transition is None:
            raise ValidationError("Unsupported recording action")
        sources, target = transition
        if self.recording_status not in sources:
            raise ValidationError(
                f"Cannot {action} recording while {self.recording_status.value}"
            )
        self.recording_status = target
        return target

    def update_settings(self, **changes: bool) -> dict[str, bool]:
        applied: dict[str, bool] = {}
        for name, value in changes.items():
            if name not in TOGGLEABLE_SETTINGS:
                raise ValidationError(f"Setting '{name}' cannot be changed")
            if getattr(self.settings, name) != value:
                setattr(self.settings, name, value)
                applied[name] = value
        return applied

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def snapshot(self, restricted: Restriction = _never_restricted) -> list[dict[str, Any]]:
        return [
            participant.to_public(
                self.effective_permissions(participant, restricted=restricted(participant.id))
            )
            for participant in self.ordered()
        ]

    def state(self, restricted: Restriction = _never_restricted) -> dict[str, Any]:
        return {
            "roomId": self.id,
            "roomName": self.name,
            "roomType": self.kind.value,
            "hostId": self.host_id,
            "participants": self.snapshot(restricted),
            "settings": self.settings.to_public(),
            "chatHistory": [entry.to_public() for entry in self.chat_history],
            "raisedHands": [entry.to_public() for entry in self.hand_raises.values()],
            "activePoll": self.active_poll.to_public() if self.active_poll else None,
            "recordingStatus": self.recording_status.value,
        }

    def summary(self) -> dict[str, Any]:
        return {
            "roomId": self.id,
            "name": self.name,
            "type": self.kind.value,
            "hostId": self.host_id,
            "participants": [
                {
                    "id": participant.id,
                    "userName": participant.user_name,
                    "role": participant.role.value,
                    "isAudioMuted": participant.audio_muted,
                    "isVideoMuted": participant.video_muted,
                }
                for participant in self.ordered()
            ],
            "participantCount": len(self.participants),
            "meetingId": self.meeting_id,
            "recordingStatus": self.recording_status.value,
            "reactionCount": len(self.reaction_history),
            "messageCount": len(self.chat_history),
            "createdAt": self.created_at.isoformat(),
        }


__all__ = [
    "DEFAULT_MAX_PARTICIPANTS",
    "RecordingStatus",
    "RoomSettings",
    "Participant",
    "ChatMessage",
    "ReactionEvent",
    "HandRaise",
    "Poll",
    "Room",
]
