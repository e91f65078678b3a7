"""Schemas for the moderation endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, constr
from pydantic.alias_generators import to_camel


class _ModerationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: constr(strip_whitespace=True, min_length=1, max_length=128)
    reason: constr(strip_whitespace=True, max_length=500) | None = None


class BlockCreate(_ModerationRequest):
    """Permanently block an identity from joining any room."""


class SuspensionCreate(_ModerationRequest):
    """Suspend an identity for a number of minutes."""

    minutes: float = Field(gt=0, le=60 * 24 * 365, description="Suspension length in minutes")
