"""Inbound websocket events.

Every frame is a JSON object tagged by ``type``. Frames are validated into
one of the models below before anything touches room state; field names
follow the browser client's camelCase.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    constr,
    model_validator,
)
from pydantic.alias_generators import to_camel

from convene.realtime.relay import ANSWER, ICE_CANDIDATE, OFFER

Identifier = constr(strip_whitespace=True, min_length=1, max_length=128)
DisplayName = constr(strip_whitespace=True, min_length=1, max_length=100)
Reason = constr(strip_whitespace=True, max_length=500)


class InboundEvent(BaseModel):
    """Base class for client frames."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class JoinRoom(InboundEvent):
    type: Literal["join-room"]
    room_id: Identifier
    user_id: Identifier
    user_name: DisplayName
    password: str | None = None
    room_type: str | None = None
    room_name: str | None = Field(default=None, max_length=128)
    user_data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def lift_user_data(cls, data: Any) -> Any:
        """Accept ``password`` and ``meetingType`` nested inside ``userData``."""

        if not isinstance(data, dict):
            return data
        user_data = data.get("userData")
        if not isinstance(user_data, dict):
            return data
        lifted = dict(data)
        if lifted.get("password") is None and user_data.get("password") is not None:
            lifted["password"] = user_data["password"]
        if lifted.get("roomType") is None and user_data.get("meetingType") is not None:
            lifted["roomType"] = user_data["meetingType"]
        lifted["userData"] = {
            key: value for key, value in user_data.items() if key not in {"password", "meetingType"}
        }
        return lifted


class LeaveRoom(InboundEvent):
    type: Literal["leave-room"]


class SendMessage(InboundEvent):
    type: Literal["send-message"]
    message: constr(strip_whitespace=True, min_length=1)


class SendReaction(InboundEvent):
    type: Literal["send-reaction"]
    emoji: constr(strip_whitespace=True, min_length=1) = Field(
        validation_alias=AliasChoices("emoji", "reaction")
    )


class RaiseHand(InboundEvent):
    type: Literal["raise-hand"]


class LowerHand(InboundEvent):
    type: Literal["lower-hand"]


class AcknowledgeHand(InboundEvent):
    type: Literal["acknowledge-hand"]
    target_id: Identifier


class SignalMessage(InboundEvent):
    """Offer, answer or ICE candidate addressed to one peer.

    The payload is opaque; an explicit ``null`` (end of candidates) is
    forwarded like any other value, but a frame must carry one.
    """

    type: Literal["webrtc-offer", "webrtc-answer", "ice-candidate"]
    target_id: Identifier
    payload: Any = None

    @model_validator(mode="before")
    @classmethod
    def lift_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("payload") is not None:
            return data
        key = {OFFER: "offer", ANSWER: "answer", ICE_CANDIDATE: "candidate"}.get(data.get("type"))
        if key is not None and key in data:
            return {**data, "payload": data[key]}
        if "payload" not in data:
            raise ValueError("Signaling payload is required")
        return data


def _muted_from_enabled(data: Any, enabled_key: str) -> Any:
    """Translate the client's ``is*Enabled`` flag into ``muted``."""

    if not isinstance(data, dict) or enabled_key not in data:
        return data
    if any(key in data for key in ("muted", enabled_key.replace("Enabled", "Muted"))):
        return data
    enabled = data[enabled_key]
    if not isinstance(enabled, bool):
        raise ValueError(f"{enabled_key} must be a boolean")
    return {**data, "muted": not enabled}


class ToggleAudio(InboundEvent):
    type: Literal["toggle-audio"]
    muted: bool | None = Field(
        default=None, validation_alias=AliasChoices("isAudioMuted", "muted")
    )

    @model_validator(mode="before")
    @classmethod
    def accept_enabled_flag(cls, data: Any) -> Any:
        return _muted_from_enabled(data, "isAudioEnabled")


class ToggleVideo(InboundEvent):
    type: Literal["toggle-video"]
    muted: bool | None = Field(
        default=None, validation_alias=AliasChoices("isVideoMuted", "muted")
    )

    @model_validator(mode="before")
    @classmethod
    def accept_enabled_flag(cls, data: Any) -> Any:
        return _muted_from_enabled(data, "isVideoEnabled")


class StartScreenShare(InboundEvent):
    type: Literal["start-screen-share"]


class StopScreenShare(InboundEvent):
    type: Literal["stop-screen-share"]


class EndRoom(InboundEvent):
    type: Literal["end-room"]


class MuteParticipant(InboundEvent):
    type: Literal["mute-participant"]
    target_id: Identifier


class UnmuteParticipant(InboundEvent):
    type: Literal["unmute-participant"]
    target_id: Identifier


class RemoveParticipant(InboundEvent):
    type: Literal["remove-participant"]
    target_id: Identifier
    reason: Reason | None = None


class ChangeRole(InboundEvent):
    type: Literal["change-role"]
    target_id: Identifier
    role: constr(strip_whitespace=True, to_lower=True, min_length=1)


class BlockParticipant(InboundEvent):
    type: Literal["block-participant"]
    target_id: Identifier
    reason: Reason | None = None


class SuspendParticipant(InboundEvent):
    type: Literal["suspend-participant"]
    target_id: Identifier
    minutes: float = Field(gt=0, le=60 * 24 * 365)
    reason: Reason | None = None


class CreatePoll(InboundEvent):
    type: Literal["create-poll"]
    question: constr(strip_whitespace=True, min_length=1, max_length=500)
    options: list[constr(strip_whitespace=True, min_length=1, max_length=200)] = Field(
        min_length=2, max_length=10
    )
    duration_seconds: float | None = Field(default=None, gt=0)


class VotePoll(InboundEvent):
    type: Literal["vote-poll"]
    poll_id: Identifier
    option_index: int = Field(ge=0)


class ClosePoll(InboundEvent):
    type: Literal["close-poll"]
    poll_id: Identifier


class RecordingControl(InboundEvent):
    type: Literal["recording"]
    action: Literal["start", "pause", "resume", "stop"]


class UpdateSettings(InboundEvent):
    type: Literal["update-settings"]
    allow_screen_share: bool | None = None
    allow_chat: bool | None = None
    allow_reactions: bool | None = None
    allow_raise_hand: bool | None = None

    def changes(self) -> dict[str, bool]:
        return self.model_dump(exclude={"type"}, exclude_none=True)


class Ping(InboundEvent):
    type: Literal["ping"]


ClientEvent = Annotated[
    Union[
        JoinRoom,
        LeaveRoom,
        SendMessage,
        SendReaction,
        RaiseHand,
        LowerHand,
        AcknowledgeHand,
        SignalMessage,
        ToggleAudio,
        ToggleVideo,
        StartScreenShare,
        StopScreenShare,
        EndRoom,
        MuteParticipant,
        UnmuteParticipant,
        RemoveParticipant,
        ChangeRole,
        BlockParticipant,
        SuspendParticipant,
        CreatePoll,
        VotePoll,
        ClosePoll,
        RecordingControl,
        UpdateSettings,
        Ping,
    ],
    Field(discriminator="type"),
]

client_event_adapter: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)

INBOUND_EVENT_TYPES = frozenset(
    {
        "join-room",
        "leave-room",
        "send-message",
        "send-reaction",
        "raise-hand",
        "lower-hand",
        "acknowledge-hand",
        OFFER,
        ANSWER,
        ICE_CANDIDATE,
        "toggle-audio",
        "toggle-video",
        "start-screen-share",
        "stop-screen-share",
        "end-room",
        "mute-participant",
        "unmute-participant",
        "remove-participant",
        "change-role",
        "block-participant",
        "suspend-participant",
        "create-poll",
        "vote-poll",
        "close-poll",
        "recording",
        "update-settings",
        "ping",
    }
)


def parse_client_event(data: Any) -> InboundEvent:
    """Validate a decoded frame; raises :class:`pydantic.ValidationError`."""

    return client_event_adapter.validate_python(data)


__all__ = [
    "ClientEvent",
    "INBOUND_EVENT_TYPES",
    "InboundEvent",
    "JoinRoom",
    "SignalMessage",
    "UpdateSettings",
    "client_event_adapter",
    "parse_client_event",
]
