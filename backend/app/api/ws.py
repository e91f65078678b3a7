"""WebSocket endpoint for live sessions."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from pydantic import ValidationError as PayloadError

from app.monitoring.metrics import realtime_events_total
from app.schemas import events
from app.schemas.events import INBOUND_EVENT_TYPES, InboundEvent, parse_client_event
from convene.realtime.managers import SessionCoordinator
from convene.sessions.errors import SessionError

router = APIRouter(tags=["ws"])

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    ping: Callable[[], bool],
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver*, calling *ping* while the peer is idle.

    *ping* enqueues a keepalive frame and returns ``False`` once the
    connection can no longer be written to.
    """

    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not ping():
                    break
                last_ping_sent = now
            continue
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


# ---------------------------------------------------------------------------
# Event dispatch
# ---------------------------------------------------------------------------

Handler = Callable[[SessionCoordinator, str, Any], Any]
_HANDLERS: Dict[type[InboundEvent], Handler] = {}


def handles(*models: type[InboundEvent]) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        for model in models:
            _HANDLERS[model] = handler
        return handler

    return register


@handles(events.JoinRoom)
def _join_room(coordinator: SessionCoordinator, connection_id: str, event: events.JoinRoom) -> None:
    coordinator.join_room(
        connection_id,
        event.room_id,
        event.user_id,
        event.user_name,
        password=event.password,
        room_type=event.room_type,
        room_name=event.room_name,
        profile=event.user_data,
    )


@handles(events.LeaveRoom)
def _leave_room(coordinator: SessionCoordinator, connection_id: str, event: events.LeaveRoom) -> None:
    coordinator.leave(connection_id)


@handles(events.SendMessage)
def _send_message(coordinator: SessionCoordinator, connection_id: str, event: events.SendMessage) -> None:
    coordinator.send_message(connection_id, event.message)


@handles(events.SendReaction)
def _send_reaction(coordinator: SessionCoordinator, connection_id: str, event: events.SendReaction) -> None:
    coordinator.send_reaction(connection_id, event.emoji)


@handles(events.RaiseHand)
def _raise_hand(coordinator: SessionCoordinator, connection_id: str, event: events.RaiseHand) -> None:
    coordinator.raise_hand(connection_id)


@handles(events.LowerHand)
def _lower_hand(coordinator: SessionCoordinator, connection_id: str, event: events.LowerHand) -> None:
    coordinator.lower_hand(connection_id)


@handles(events.AcknowledgeHand)
def _acknowledge_hand(
    coordinator: SessionCoordinator, connection_id: str, event: events.AcknowledgeHand
) -> None:
    coordinator.acknowledge_hand(connection_id, event.target_id)


@handles(events.SignalMessage)
def _relay_signal(coordinator: SessionCoordinator, connection_id: str, event: events.SignalMessage) -> None:
    coordinator.relay_signal(connection_id, event.type, event.target_id, event.payload)


@handles(events.ToggleAudio)
def _toggle_audio(coordinator: SessionCoordinator, connection_id: str, event: events.ToggleAudio) -> None:
    coordinator.toggle_audio(connection_id, event.muted)


@handles(events.ToggleVideo)
def _toggle_video(coordinator: SessionCoordinator, connection_id: str, event: events.ToggleVideo) -> None:
    coordinator.toggle_video(connection_id, event.muted)


@handles(events.StartScreenShare)
def _start_screen_share(
    coordinator: SessionCoordinator, connection_id: str, event: events.StartScreenShare
) -> None:
    coordinator.start_screen_share(connection_id)


@handles(events.StopScreenShare)
def _stop_screen_share(
    coordinator: SessionCoordinator, connection_id: str, event: events.StopScreenShare
) -> None:
    coordinator.stop_screen_share(connection_id)


@handles(events.EndRoom)
def _end_room(coordinator: SessionCoordinator, connection_id: str, event: events.EndRoom) -> None:
    coordinator.end_room(connection_id)


@handles(events.MuteParticipant)
def _mute(coordinator: SessionCoordinator, connection_id: str, event: events.MuteParticipant) -> None:
    coordinator.mute_participant(connection_id, event.target_id)


@handles(events.UnmuteParticipant)
def _unmute(coordinator: SessionCoordinator, connection_id: str, event: events.UnmuteParticipant) -> None:
    coordinator.unmute_participant(connection_id, event.target_id)


@handles(events.RemoveParticipant)
def _remove(coordinator: SessionCoordinator, connection_id: str, event: events.RemoveParticipant) -> None:
    coordinator.remove_participant(connection_id, event.target_id, event.reason)


@handles(events.ChangeRole)
def _change_role(coordinator: SessionCoordinator, connection_id: str, event: events.ChangeRole) -> None:
    coordinator.change_role(connection_id, event.target_id, event.role)


@handles(events.BlockParticipant)
def _block(coordinator: SessionCoordinator, connection_id: str, event: events.BlockParticipant) -> None:
    coordinator.block_participant(connection_id, event.target_id, event.reason)


@handles(events.SuspendParticipant)
def _suspend(coordinator: SessionCoordinator, connection_id: str, event: events.SuspendParticipant) -> None:
    coordinator.suspend_participant(connection_id, event.target_id, event.minutes, event.reason)


@handles(events.CreatePoll)
def _create_poll(coordinator: SessionCoordinator, connection_id: str, event: events.CreatePoll) -> None:
    coordinator.create_poll(connection_id, event.question, event.options, event.duration_seconds)


@handles(events.VotePoll)
def _vote_poll(coordinator: SessionCoordinator, connection_id: str, event: events.VotePoll) -> None:
    coordinator.vote_poll(connection_id, event.poll_id, event.option_index)


@handles(events.ClosePoll)
def _close_poll(coordinator: SessionCoordinator, connection_id: str, event: events.ClosePoll) -> None:
    coordinator.close_poll(connection_id, event.poll_id)


@handles(events.RecordingControl)
def _recording(coordinator: SessionCoordinator, connection_id: str, event: events.RecordingControl) -> None:
    coordinator.set_recording(connection_id, event.action)


@handles(events.UpdateSettings)
def _update_settings(
    coordinator: SessionCoordinator, connection_id: str, event: events.UpdateSettings
) -> None:
    coordinator.update_settings(connection_id, event.changes())


@handles(events.Ping)
def _ping(coordinator: SessionCoordinator, connection_id: str, event: events.Ping) -> None:
    coordinator.ping(connection_id)


def _reject(
    coordinator: SessionCoordinator,
    connection_id: str,
    event_type: str | None,
    reason: str,
    message: str,
) -> None:
    if event_type == "join-room":
        coordinator.broadcaster.send_to(
            connection_id, "join-rejected", {"reason": reason, "message": message}
        )
        return
    coordinator.broadcaster.send_to(
        connection_id, "error", {"event": event_type, "reason": reason, "message": message}
    )


def _describe(exc: PayloadError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part)
    return f"{location}: {first['msg']}" if location else first["msg"]


def handle_frame(coordinator: SessionCoordinator, connection_id: str, raw: str) -> None:
    """Decode, validate and apply one inbound frame.

    Failures are answered with a unicast ``join-rejected`` or ``error``
    frame; nothing raised here reaches the receive loop.
    """

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        _reject(coordinator, connection_id, None, "validation", "Invalid message format")
        return
    if not isinstance(data, dict):
        _reject(coordinator, connection_id, None, "validation", "Message payload must be a JSON object")
        return

    raw_type = data.get("type")
    event_type = raw_type if isinstance(raw_type, str) and raw_type in INBOUND_EVENT_TYPES else None
    realtime_events_total.labels(event_type or "unknown", "in").inc()
    if event_type is None:
        _reject(coordinator, connection_id, None, "validation", "Unsupported event type")
        return

    try:
        event = parse_client_event(data)
        _HANDLERS[type(event)](coordinator, connection_id, event)
    except PayloadError as exc:
        _reject(coordinator, connection_id, event_type, "validation", _describe(exc))
    except SessionError as exc:
        _reject(coordinator, connection_id, event_type, exc.reason, exc.message)
    except Exception:
        logger.exception(
            "Unhandled error while processing realtime event",
            extra={"connection": connection_id, "event": event_type},
        )
        _reject(coordinator, connection_id, event_type, "error", "Internal server error")


@router.websocket("/ws")
async def websocket_session(websocket: WebSocket) -> None:
    """Serve one browser connection for its whole lifetime."""

    coordinator: SessionCoordinator = websocket.app.state.coordinator
    settings = websocket.app.state.settings

    await websocket.accept()
    connection = coordinator.hub.register(websocket)
    coordinator.connection_opened(connection.id)

    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            ping=lambda: coordinator.broadcaster.send_to(connection.id, "ping"),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            handle_frame(coordinator, connection.id, raw_message)
    except WebSocketDisconnect:
        pass
    finally:
        coordinator.disconnect(connection.id)
        await coordinator.hub.unregister(connection.id)
