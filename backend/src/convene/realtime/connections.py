"""Websocket connection hub with per-connection outbound queues."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import realtime_connections, realtime_events_total

logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Send JSON through ``websocket``, returning ``False`` once it is gone."""

    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Failed to send websocket message: %s", exc)
        return False


class OutboundSender(Protocol):
    """Anything that can enqueue a frame for a connection id without waiting."""

    def send(self, connection_id: str, payload: dict[str, Any]) -> bool: ...


@dataclass(slots=True)
class Connection:
    id: str
    websocket: WebSocket
    outbox: asyncio.Queue[dict[str, Any]] = field(default_factory=asyncio.Queue)
    writer: asyncio.Task[None] | None = None
    closed: bool = False


class ConnectionHub:
    """Owns every open websocket and the task draining its outbox.

    ``send`` never awaits: frames are appended to the connection's queue and
    written in enqueue order by a single writer task, so two frames sent to
    the same connection always arrive in the order they were produced.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def register(self, websocket: WebSocket, *, connection_id: str | None = None) -> Connection:
        connection = Connection(id=connection_id or uuid.uuid4().hex, websocket=websocket)
        connection.writer = asyncio.create_task(
            self._drain(connection), name=f"realtime-writer-{connection.id}"
        )
        self._connections[connection.id] = connection
        realtime_connections.inc()
        logger.debug("Connection registered", extra={"connection": connection.id})
        return connection

    def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None or connection.closed:
            return False
        connection.outbox.put_nowait(payload)
        realtime_events_total.labels(payload.get("type", "message"), "out").inc()
        return True

    async def unregister(self, connection_id: str) -> None:
        """Forget a connection and drop whatever is still queued for it."""

        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        connection.closed = True
        realtime_connections.dec()
        writer = connection.writer
        if writer is not None and not writer.done():
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
        logger.debug(
            "Connection unregistered",
            extra={"connection": connection_id, "dropped": connection.outbox.qsize()},
        )

    async def shutdown(self) -> None:
        for connection_id in list(self._connections):
            await self.unregister(connection_id)

    async def _drain(self, connection: Connection) -> None:
        while True:
            payload = await connection.outbox.get()
            if not await safe_send_json(connection.websocket, payload):
                connection.closed = True
                break


__all__ = ["Connection", "ConnectionHub", "OutboundSender", "safe_send_json"]
