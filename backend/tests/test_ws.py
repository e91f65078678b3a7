"""End-to-end websocket tests through the FastAPI application."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import pytest
from fastapi.websockets import WebSocketState
from starlette.testclient import WebSocketTestSession

from app.api import ws as ws_module
from app.api.ws import handle_frame, iter_keepalive_messages
from convene.realtime.managers import SessionCoordinator


def receive_until(connection: WebSocketTestSession, event: str, limit: int = 20) -> dict[str, Any]:
    """Read frames until ``event`` arrives; unrelated frames are skipped."""

    for _ in range(limit):
        frame = connection.receive_json()
        if frame["type"] == event:
            return frame
    raise AssertionError(f"{event} not received")


def join(connection: WebSocketTestSession, room_id: str, user_id: str, **extra: Any) -> dict[str, Any]:
    connection.send_json(
        {"type": "join-room", "roomId": room_id, "userId": user_id, "userName": user_id.title(), **extra}
    )
    return receive_until(connection, "joined-room")


def test_connection_is_confirmed(client) -> None:
    with client.websocket_connect("/ws") as connection:
        confirmed = connection.receive_json()
        assert confirmed["type"] == "connection-confirmed"
        assert confirmed["connectionId"]

        connection.send_json({"type": "ping"})
        assert connection.receive_json()["type"] == "pong"


def test_two_peers_join_and_exchange_offer(client) -> None:
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        alice.receive_json()
        bob.receive_json()

        joined = join(alice, "r1", "alice")
        assert joined["userRole"] == "host"
        receive_until(alice, "room-participants")

        joined_bob = join(bob, "r1", "bob")
        assert [item["id"] for item in joined_bob["participants"]] == ["alice", "bob"]
        assert receive_until(alice, "user-joined")["userId"] == "bob"

        offer = {"type": "offer", "sdp": "v=0"}
        alice.send_json({"type": "webrtc-offer", "targetId": "bob", "offer": offer})
        relayed = receive_until(bob, "webrtc-offer")
        assert relayed == {"type": "webrtc-offer", "fromId": "alice", "payload": offer}

        bob.send_json({"type": "send-message", "message": "hi all"})
        assert receive_until(alice, "new-message")["message"] == "hi all"
        assert receive_until(bob, "new-message")["userId"] == "bob"

        summary = client.get("/api/rooms/r1").json()
        assert summary["participantCount"] == 2
        assert summary["hostId"] == "alice"


def test_join_errors_are_reported_as_rejections(client) -> None:
    client.post("/api/moderation/blocks", json={"userId": "mallory"})

    with client.websocket_connect("/ws") as connection:
        connection.receive_json()

        connection.send_json({"type": "join-room", "roomId": "r1", "userName": "Nobody"})
        rejected = connection.receive_json()
        assert rejected["type"] == "join-rejected"
        assert rejected["reason"] == "validation"

        connection.send_json(
            {"type": "join-room", "roomId": "r1", "userId": "mallory", "userName": "Mallory"}
        )
        blocked = connection.receive_json()
        assert blocked == {
            "type": "join-rejected",
            "reason": "blocked",
            "message": "You have been blocked from joining meetings",
        }


def test_malformed_frames_produce_error_events(client) -> None:
    with client.websocket_connect("/ws") as connection:
        connection.receive_json()

        connection.send_text("{not json")
        assert connection.receive_json()["reason"] == "validation"

        connection.send_json({"type": "teleport"})
        unsupported = connection.receive_json()
        assert unsupported["type"] == "error"
        assert unsupported["event"] is None

        connection.send_json({"type": "send-message", "message": "hello?"})
        not_joined = connection.receive_json()
        assert not_joined == {
            "type": "error",
            "event": "send-message",
            "reason": "not-found",
            "message": "Join a room first",
        }


def test_password_protected_meeting(client) -> None:
    client.post(
        "/api/meetings",
        json={"id": "m1", "roomId": "secret", "requirePassword": True, "password": "pw"},
    )

    with client.websocket_connect("/ws") as connection:
        connection.receive_json()
        connection.send_json(
            {"type": "join-room", "roomId": "secret", "userId": "alice", "userName": "Alice"}
        )
        rejected = connection.receive_json()
        assert rejected["type"] == "join-rejected"
        assert rejected["reason"] == "password"

        joined = join(connection, "secret", "alice", userData={"password": "pw"})
        assert joined["roomSettings"]["requirePassword"] is True
        assert client.get("/api/meetings/m1").json()["status"] == "active"


def test_rest_end_meeting_notifies_connected_participants(client) -> None:
    meeting = client.post("/api/meetings", json={"roomId": "r7"}).json()

    with client.websocket_connect("/ws") as connection:
        connection.receive_json()
        join(connection, "r7", "alice")

        client.post(f"/api/meetings/{meeting['id']}/end")

        ended = receive_until(connection, "meeting-ended")
        assert ended["meetingId"] == meeting["id"]
        assert client.get("/api/rooms/active").json()["count"] == 0


def test_handle_frame_reports_unexpected_errors(coordinator, sender, monkeypatch) -> None:
    def explode(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(SessionCoordinator, "ping", explode)

    handle_frame(coordinator, "c1", json.dumps({"type": "ping"}))

    assert sender.last("c1", "error") == {
        "type": "error",
        "event": "ping",
        "reason": "error",
        "message": "Internal server error",
    }


def test_handle_frame_rejects_non_object_payloads(coordinator, sender) -> None:
    handle_frame(coordinator, "c1", "[1, 2, 3]")
    assert sender.last("c1", "error")["reason"] == "validation"


class IdleWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED


@pytest.mark.anyio
async def test_keepalive_pings_idle_peer() -> None:
    pings: list[float] = []
    messages: asyncio.Queue[str] = asyncio.Queue()

    def ping() -> bool:
        pings.append(time.monotonic())
        if len(pings) == 2:
            messages.put_nowait("hello")
        return True

    received = []
    async for message in iter_keepalive_messages(
        IdleWebSocket(),
        messages.get,
        ping=ping,
        timeout_seconds=0.02,
        ping_interval_seconds=0.02,
    ):
        received.append(message)
        break

    assert received == ["hello"]
    assert len(pings) == 2


@pytest.mark.anyio
async def test_keepalive_stops_when_ping_fails() -> None:
    messages: asyncio.Queue[str] = asyncio.Queue()

    received = [
        message
        async for message in iter_keepalive_messages(
            IdleWebSocket(),
            messages.get,
            ping=lambda: False,
            timeout_seconds=0.01,
            ping_interval_seconds=0.01,
        )
    ]

    assert received == []


def test_every_event_type_has_a_handler() -> None:
    from app.schemas.events import InboundEvent

    assert set(ws_module._HANDLERS) == set(InboundEvent.__subclasses__())


def test_enabled_flags_set_media_state(coordinator, sender) -> None:
    coordinator.join_room("c-alice", "r1", "alice", "Alice")
    coordinator.join_room("c-bob", "r1", "bob", "Bob")
    room = coordinator.registry.get_room("r1")

    handle_frame(coordinator, "c-bob", json.dumps({"type": "toggle-audio", "isAudioEnabled": True}))
    assert room.get("bob").audio_muted is False
    assert "participant-audio-toggle" not in sender.events("c-alice")

    handle_frame(coordinator, "c-bob", json.dumps({"type": "toggle-audio", "isAudioEnabled": False}))
    assert room.get("bob").audio_muted is True
    assert sender.last("c-alice", "participant-audio-toggle") == {
        "type": "participant-audio-toggle",
        "userId": "bob",
        "isAudioMuted": True,
    }

    handle_frame(coordinator, "c-bob", json.dumps({"type": "toggle-video", "isVideoEnabled": False}))
    assert room.get("bob").video_muted is True
    assert sender.last("c-alice", "participant-video-toggle")["isVideoMuted"] is True


def test_end_of_candidates_is_relayed(coordinator, sender) -> None:
    coordinator.join_room("c-alice", "r1", "alice", "Alice")
    coordinator.join_room("c-bob", "r1", "bob", "Bob")

    handle_frame(
        coordinator,
        "c-alice",
        json.dumps({"type": "ice-candidate", "targetId": "bob", "candidate": None}),
    )

    assert sender.last("c-bob", "ice-candidate") == {
        "type": "ice-candidate",
        "fromId": "alice",
        "payload": None,
    }
    assert "error" not in sender.events("c-alice")
