"""Pydantic schemas for API payloads."""

from .events import ClientEvent, InboundEvent, parse_client_event
from .meetings import MeetingCreate
from .moderation import BlockCreate, SuspensionCreate

__all__ = [
    "BlockCreate",
    "ClientEvent",
    "InboundEvent",
    "MeetingCreate",
    "SuspensionCreate",
    "parse_client_event",
]
