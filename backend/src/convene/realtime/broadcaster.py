"""Fan-out of room events to bound connections."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from convene.sessions.room import Room

from .connections import OutboundSender

logger = logging.getLogger(__name__)

Restriction = Callable[[str], bool]


def _unrestricted(_: str) -> bool:
    return False


class EventBroadcaster:
    """Builds ``{"type": event, ...}`` frames and hands them to the hub.

    Recipients are resolved from the room binding at call time; participants
    waiting for reconnection have no connection and are skipped.
    """

    def __init__(self, sender: OutboundSender, *, restricted: Restriction = _unrestricted) -> None:
        self._sender = sender
        self._restricted = restricted

    @staticmethod
    def frame(event: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        message: dict[str, Any] = {"type": event}
        if payload:
            message.update(payload)
        return message

    def send_to(
        self, connection_id: str | None, event: str, payload: dict[str, Any] | None = None
    ) -> bool:
        if connection_id is None:
            return False
        return self._sender.send(connection_id, self.frame(event, payload))

    def send_to_participant(
        self, room: Room, participant_id: str, event: str, payload: dict[str, Any] | None = None
    ) -> bool:
        return self.send_to(room.binding.resolve(participant_id), event, payload)

    def emit(
        self,
        room: Room,
        event: str,
        payload: dict[str, Any] | None = None,
        *,
        exclude: Iterable[str] = (),
    ) -> int:
        """Send one event to every connected participant except ``exclude`` ids."""

        excluded = set(exclude)
        message = self.frame(event, payload)
        delivered = 0
        for participant in room.ordered():
            if participant.id in excluded or participant.connection_id is None:
                continue
            if self._sender.send(participant.connection_id, message):
                delivered += 1
        logger.debug(
            "Room event emitted",
            extra={"room": room.id, "event": event, "recipients": delivered},
        )
        return delivered

    def participants(self, room: Room) -> int:
        return self.emit(
            room,
            "room-participants",
            {
                "roomId": room.id,
                "hostId": room.host_id,
                "participants": room.snapshot(self._restricted),
            },
        )


__all__ = ["EventBroadcaster"]
