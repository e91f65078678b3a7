"""Realtime delivery and inbound event handling for live sessions."""

from .broadcaster import EventBroadcaster
from .connections import ConnectionHub, OutboundSender, safe_send_json
from .managers import SessionCoordinator
from .relay import SIGNAL_KINDS, SignalingRelay

__all__ = [
    "ConnectionHub",
    "EventBroadcaster",
    "OutboundSender",
    "SIGNAL_KINDS",
    "SessionCoordinator",
    "SignalingRelay",
    "safe_send_json",
]
