"""Role and capability matrix for live rooms."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class RoomKind(str, Enum):
    """Kinds of live session."""

    STANDARD = "standard"
    WEBINAR = "webinar"

    @classmethod
    def parse(cls, value: object) -> "RoomKind":
        """Map client/meeting supplied kinds onto the two supported ones."""

        if isinstance(value, RoomKind):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.WEBINAR.value:
            return cls.WEBINAR
        return cls.STANDARD


class Role(str, Enum):
    """Roles a participant can hold inside a room."""

    HOST = "host"
    MODERATOR = "moderator"
    CO_HOST = "co-host"
    PANELIST = "panelist"
    PARTICIPANT = "participant"
    ATTENDEE = "attendee"

    @property
    def is_staff(self) -> bool:
        return self in STAFF_ROLES


class Capability(str, Enum):
    """Privileged actions gated by role."""

    MUTE_OTHERS = "canMute"
    UNMUTE_OTHERS = "canUnmute"
    REMOVE_PARTICIPANT = "canKick"
    MANAGE_POLLS = "canManagePolls"
    MANAGE_WHITEBOARD = "canManageWhiteboard"
    MANAGE_BREAKOUTS = "canManageBreakouts"
    RECORD = "canRecord"
    SHARE_SCREEN = "canShareScreen"


STAFF_ROLES = frozenset({Role.HOST, Role.MODERATOR, Role.CO_HOST})

# Roles that may present only when the room allows screen sharing.
GATED_SCREEN_SHARE_ROLES = frozenset({Role.PARTICIPANT, Role.PANELIST})

_STAFF_CAPABILITIES = frozenset(
    {
        Capability.MUTE_OTHERS,
        Capability.UNMUTE_OTHERS,
        Capability.REMOVE_PARTICIPANT,
        Capability.MANAGE_POLLS,
        Capability.MANAGE_WHITEBOARD,
        Capability.SHARE_SCREEN,
    }
)

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.HOST: _STAFF_CAPABILITIES | {Capability.MANAGE_BREAKOUTS, Capability.RECORD},
    Role.MODERATOR: _STAFF_CAPABILITIES,
    Role.CO_HOST: _STAFF_CAPABILITIES,
    Role.PANELIST: frozenset(),
    Role.PARTICIPANT: frozenset(),
    Role.ATTENDEE: frozenset(),
}

# Baseline applied to suspended participants for the duration of the suspension.
ATTENDEE_BASELINE: frozenset[Capability] = ROLE_CAPABILITIES[Role.ATTENDEE]


def permissions_for(role: Role, *, allow_screen_share: bool) -> frozenset[Capability]:
    """Return the capability set assigned to ``role``."""

    granted = set(ROLE_CAPABILITIES[role])
    if role in GATED_SCREEN_SHARE_ROLES and allow_screen_share:
        granted.add(Capability.SHARE_SCREEN)
    return frozenset(granted)


def can_share_screen(role: Role, *, allow_screen_share: bool) -> bool:
    """Use-time screen share gate; reads the current room setting."""

    if role in STAFF_ROLES:
        return True
    if role in GATED_SCREEN_SHARE_ROLES:
        return allow_screen_share
    return False


def serialize_permissions(granted: Iterable[Capability]) -> dict[str, bool]:
    granted_set = set(granted)
    return {capability.value: capability in granted_set for capability in Capability}


__all__ = [
    "RoomKind",
    "Role",
    "Capability",
    "STAFF_ROLES",
    "ROLE_CAPABILITIES",
    "ATTENDEE_BASELINE",
    "permissions_for",
    "can_share_screen",
    "serialize_permissions",
]
