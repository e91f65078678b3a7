"""Point-to-point forwarding of WebRTC negotiation messages.

Offers, answers and ICE candidates are opaque to the server. The relay only
resolves who sent a message and which connection currently belongs to the
requested target, then forwards the payload untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from app.monitoring.metrics import signaling_relay_total
from convene.sessions.registry import SessionRegistry

from .broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)

OFFER = "webrtc-offer"
ANSWER = "webrtc-answer"
ICE_CANDIDATE = "ice-candidate"

SIGNAL_KINDS = frozenset({OFFER, ANSWER, ICE_CANDIDATE})


def build_signal_envelope(sender_id: str, payload: Any) -> dict[str, Any]:
    return {"fromId": sender_id, "payload": payload}


class SignalingRelay:
    def __init__(self, registry: SessionRegistry, broadcaster: EventBroadcaster) -> None:
        self._registry = registry
        self._broadcaster = broadcaster

    def relay(
        self,
        kind: str,
        room_id: str | None,
        from_connection: str,
        target_id: str,
        payload: Any,
    ) -> bool:
        """Forward ``payload`` to ``target_id``; unresolvable hops are dropped."""

        if kind not in SIGNAL_KINDS:
            raise ValueError(f"Unsupported signaling kind '{kind}'")

        room = self._registry.get_room(room_id) if room_id else None
        if room is None:
            return self._dropped(kind, "no-room", room_id, target_id)
        sender_id = room.binding.participant_for(from_connection)
        if sender_id is None:
            return self._dropped(kind, "unknown-sender", room_id, target_id)
        target_connection = room.binding.resolve(target_id)
        if target_connection is None:
            return self._dropped(kind, "unknown-target", room_id, target_id)

        delivered = self._broadcaster.send_to(
            target_connection, kind, build_signal_envelope(sender_id, payload)
        )
        signaling_relay_total.labels(kind, "delivered" if delivered else "closed").inc()
        return delivered

    @staticmethod
    def _dropped(kind: str, outcome: str, room_id: str | None, target_id: str) -> bool:
        signaling_relay_total.labels(kind, outcome).inc()
        logger.debug(
            "Signaling message dropped",
            extra={"kind": kind, "outcome": outcome, "room": room_id, "target": target_id},
        )
        return False


__all__ = [
    "ANSWER",
    "ICE_CANDIDATE",
    "OFFER",
    "SIGNAL_KINDS",
    "SignalingRelay",
    "build_signal_envelope",
]
