"""Room state, roles and moderation for live sessions."""

from .binding import ConnectionBinding
from .errors import (
    AuthorizationError,
    CapacityError,
    ModerationError,
    NotFoundError,
    SessionError,
    ValidationError,
)
from .meetings import (
    InMemoryMeetingDirectory,
    MeetingSnapshot,
    MeetingStatus,
)
from .moderation import ModerationStore, utcnow
from .permissions import Capability, Role, RoomKind
from .registry import RoomHint, SessionRegistry
from .room import Participant, RecordingStatus, Room, RoomSettings

__all__ = [
    "AuthorizationError",
    "CapacityError",
    "Capability",
    "ConnectionBinding",
    "InMemoryMeetingDirectory",
    "MeetingSnapshot",
    "MeetingStatus",
    "ModerationError",
    "ModerationStore",
    "NotFoundError",
    "Participant",
    "RecordingStatus",
    "Role",
    "Room",
    "RoomHint",
    "RoomKind",
    "RoomSettings",
    "SessionError",
    "SessionRegistry",
    "ValidationError",
    "utcnow",
]
