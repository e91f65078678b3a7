"""Schemas for the meeting bridge endpoints."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, constr
from pydantic.alias_generators import to_camel

from convene.sessions.meetings import MeetingSnapshot


class MeetingCreate(BaseModel):
    """Payload linking a scheduled meeting to a room id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: constr(strip_whitespace=True, min_length=1, max_length=128) | None = Field(
        default=None, description="Meeting identifier; generated when omitted"
    )
    room_id: constr(strip_whitespace=True, min_length=1, max_length=128)
    title: constr(strip_whitespace=True, min_length=1, max_length=200) = "Meeting"
    kind: Literal["standard", "webinar"] = "standard"
    host_id: constr(strip_whitespace=True, min_length=1, max_length=128) | None = None
    require_password: bool = False
    password: str | None = Field(default=None, max_length=128)
    max_participants: int | None = Field(default=None, ge=1)
    allow_screen_share: bool = True
    allow_chat: bool = True
    allow_reactions: bool = True
    allow_recording: bool = True
    waiting_room: bool = False

    def to_snapshot(self) -> MeetingSnapshot:
        return MeetingSnapshot(
            id=self.id or uuid.uuid4().hex,
            room_id=self.room_id,
            title=self.title,
            kind=self.kind,
            host_id=self.host_id,
            require_password=self.require_password,
            password=self.password,
            max_participants=self.max_participants,
            allow_screen_share=self.allow_screen_share,
            allow_chat=self.allow_chat,
            allow_reactions=self.allow_reactions,
            allow_recording=self.allow_recording,
            waiting_room=self.waiting_room,
        )
