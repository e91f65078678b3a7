"""Per-room mapping between durable identities and live connections."""

from __future__ import annotations

from typing import Dict


class ConnectionBinding:
    """Bidirectional participant id <-> connection id index for one room.

    Both maps are updated together inside every mutator so the reverse lookup
    used by the signaling relay is O(1) and never disagrees with the primary
    map.
    """

    def __init__(self) -> None:
        self._by_participant: Dict[str, str] = {}
        self._by_connection: Dict[str, str] = {}

    def bind(self, participant_id: str, connection_id: str) -> str | None:
        """Point ``participant_id`` at ``connection_id``.

        Returns the connection that was previously bound, if any. That
        connection is not notified; the transport lets it expire.
        """

        previous = self._by_participant.get(participant_id)
        if previous == connection_id:
            return None
        if previous is not None:
            self._by_connection.pop(previous, None)
        stale_owner = self._by_connection.get(connection_id)
        if stale_owner is not None and stale_owner != participant_id:
            self._by_participant.pop(stale_owner, None)
        self._by_participant[participant_id] = connection_id
        self._by_connection[connection_id] = participant_id
        return previous

    def unbind(self, participant_id: str) -> str | None:
        connection_id = self._by_participant.pop(participant_id, None)
        if connection_id is not None:
            self._by_connection.pop(connection_id, None)
        return connection_id

    def resolve(self, participant_id: str) -> str | None:
        return self._by_participant.get(participant_id)

    def participant_for(self, connection_id: str) -> str | None:
        return self._by_connection.get(connection_id)

    def connections(self) -> list[str]:
        return list(self._by_connection)

    def __len__(self) -> int:
        return len(self._by_participant)


__all__ = ["ConnectionBinding"]
