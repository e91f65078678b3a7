"""Behavioural tests for the session coordinator."""

from __future__ import annotations

import asyncio

import pytest

from app.monitoring.metrics import (
    session_join_rejections_total,
    sessions_active_participants,
    sessions_active_rooms,
)
from conftest import make_settings
from convene.realtime.managers import SessionCoordinator
from convene.sessions.errors import (
    AuthorizationError,
    CapacityError,
    ModerationError,
    NotFoundError,
    ValidationError,
)
from convene.sessions.meetings import MeetingSnapshot, MeetingStatus
from convene.sessions.permissions import Role


def build(sender, clock, **overrides) -> SessionCoordinator:
    return SessionCoordinator(make_settings(**overrides), hub=sender, clock=clock)


def seat(coordinator: SessionCoordinator, *names: str, room_id: str = "r1") -> None:
    for name in names:
        coordinator.join_room(f"c-{name}", room_id, name, name.title())


# ---------------------------------------------------------------------------
# Join / leave
# ---------------------------------------------------------------------------


def test_room_lifecycle_with_capacity_and_host_transfer(sender, clock) -> None:
    coordinator = build(sender, clock, default_max_participants=2)
    rejected_before = session_join_rejections_total.value("capacity")

    alice = coordinator.join_room("c1", "r1", "alice", "Alice")
    assert alice.role is Role.HOST
    joined = sender.last("c1", "joined-room")
    assert joined["roomId"] == "r1"
    assert joined["userRole"] == "host"
    assert joined["reconnected"] is False
    assert [item["id"] for item in joined["participants"]] == ["alice"]

    coordinator.join_room("c2", "r1", "bob", "Bob")
    assert sender.last("c1", "user-joined")["userId"] == "bob"
    assert "user-joined" not in sender.events("c2")
    assert [item["id"] for item in sender.last("c2", "room-participants")["participants"]] == [
        "alice",
        "bob",
    ]

    with pytest.raises(CapacityError):
        coordinator.join_room("c3", "r1", "carol", "Carol")
    assert session_join_rejections_total.value("capacity") == rejected_before + 1
    assert len(coordinator.registry.get_room("r1")) == 2

    assert coordinator.leave("c1") is True
    room = coordinator.registry.get_room("r1")
    assert room.host_id == "bob"
    assert room.get("bob").role is Role.HOST
    host_changed = sender.last("c2", "host-changed")
    assert host_changed["hostId"] == "bob"
    assert host_changed["previousHostId"] == "alice"
    assert sender.last("c2", "user-left")["userId"] == "alice"

    assert coordinator.leave("c2") is True
    assert coordinator.registry.get_room("r1") is None
    assert sessions_active_rooms.value() == 0
    assert sessions_active_participants.value() == 0


def test_capacity_frees_up_after_a_leave(sender, clock) -> None:
    coordinator = build(sender, clock, default_max_participants=2)
    seat(coordinator, "p1", "p2")
    with pytest.raises(CapacityError):
        coordinator.join_room("c-p3", "r1", "p3", "P3")

    coordinator.leave("c-p1")
    coordinator.join_room("c-p3", "r1", "p3", "P3")
    assert [item.id for item in coordinator.registry.get_room("r1").ordered()] == ["p2", "p3"]


@pytest.mark.parametrize(("password", "accepted"), [("abc123", True), ("ABC123", False), (None, False)])
def test_meeting_password_is_exact(coordinator, password, accepted) -> None:
    coordinator.meetings.register(
        MeetingSnapshot(id="m1", room_id="r1", require_password=True, password="abc123")
    )
    if accepted:
        coordinator.join_room("c1", "r1", "alice", "Alice", password=password)
        assert "alice" in coordinator.registry.get_room("r1")
    else:
        with pytest.raises(AuthorizationError):
            coordinator.join_room("c1", "r1", "alice", "Alice", password=password)
        assert coordinator.registry.get_room("r1") is None


def test_leave_without_room_is_a_noop(coordinator) -> None:
    assert coordinator.leave("nobody") is False
    coordinator.disconnect("nobody")


def test_events_before_join_are_rejected(coordinator) -> None:
    with pytest.raises(NotFoundError):
        coordinator.send_message("c1", "hello")
    with pytest.raises(NotFoundError):
        coordinator.raise_hand("c1")


def test_failed_first_join_does_not_leave_an_empty_room(coordinator) -> None:
    coordinator.meetings.register(
        MeetingSnapshot(id="m1", room_id="r1", require_password=True, password="pw")
    )
    with pytest.raises(AuthorizationError) as excinfo:
        coordinator.join_room("c1", "r1", "alice", "Alice", password="wrong")

    assert excinfo.value.reason == "password"
    assert coordinator.registry.get_room("r1") is None

    coordinator.join_room("c1", "r1", "alice", "Alice", password="pw")
    assert "alice" in coordinator.registry.get_room("r1")


def test_repeated_join_on_same_connection_resends_state(coordinator, sender) -> None:
    coordinator.join_room("c1", "r1", "alice", "Alice")
    coordinator.join_room("c1", "r1", "alice", "Alice")

    frames = sender.of_type("c1", "joined-room")
    assert len(frames) == 2
    assert frames[-1]["reconnected"] is True
    assert len(coordinator.registry.get_room("r1")) == 1


def test_joining_another_room_leaves_the_first(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.join_room("c-bob", "r2", "bob", "Bob")

    assert "bob" not in coordinator.registry.get_room("r1")
    assert "bob" in coordinator.registry.get_room("r2")
    assert sender.last("c-alice", "user-left")["userId"] == "bob"
    assert coordinator.room_for_connection("c-bob").id == "r2"


def test_new_connection_takes_over_participant(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.join_room("c-bob-2", "r1", "bob", "Bob")

    room = coordinator.registry.get_room("r1")
    assert room.binding.resolve("bob") == "c-bob-2"
    assert sender.last("c-bob-2", "joined-room")["reconnected"] is True

    sender.clear()
    coordinator.send_message("c-alice", "still there?")
    assert sender.events("c-bob") == []
    assert sender.events("c-bob-2") == ["new-message"]

    # The old socket closing later must not evict the new binding.
    coordinator.disconnect("c-bob")
    assert "bob" in room


def test_disconnect_without_grace_removes_immediately(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.disconnect("c-bob")

    assert "bob" not in coordinator.registry.get_room("r1")
    assert sender.last("c-alice", "user-left")["reason"] == "disconnected"


# ---------------------------------------------------------------------------
# Chat, reactions, hands and media state
# ---------------------------------------------------------------------------


def test_chat_reaches_everyone_including_sender(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    sender.clear()

    coordinator.send_message("c-bob", "  hello  ")

    for connection_id in ("c-alice", "c-bob"):
        frame = sender.last(connection_id, "new-message")
        assert frame["message"] == "hello"
        assert frame["userId"] == "bob"
    assert len(coordinator.registry.get_room("r1").chat_history) == 1


def test_chat_history_keeps_send_order_across_reactions(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.send_message("c-alice", "one")
    coordinator.send_reaction("c-bob", "👍")
    coordinator.send_message("c-bob", "two")
    coordinator.send_reaction("c-alice", "🎉")
    coordinator.send_message("c-alice", "three")

    room = coordinator.registry.get_room("r1")
    assert [entry.message for entry in room.chat_history] == ["one", "two", "three"]
    assert [frame["message"] for frame in sender.of_type("c-bob", "new-message")] == [
        "one",
        "two",
        "three",
    ]
    late = coordinator.join_room("c-carol", "r1", "carol", "Carol")
    assert late.id == "carol"
    history = sender.last("c-carol", "joined-room")["chatHistory"]
    assert [entry["message"] for entry in history] == ["one", "two", "three"]


def test_chat_validation(sender, clock) -> None:
    coordinator = build(sender, clock, chat_message_max_length=5)
    seat(coordinator, "alice")

    with pytest.raises(ValidationError):
        coordinator.send_message("c-alice", "   ")
    with pytest.raises(ValidationError):
        coordinator.send_message("c-alice", "too long")


def test_disabled_reactions_are_refused(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.send_reaction("c-bob", "🎉")
    assert sender.last("c-alice", "new-reaction")["emoji"] == "🎉"

    coordinator.update_settings("c-alice", {"allow_reactions": False})
    assert sender.last("c-bob", "room-settings")["settings"]["allowReactions"] is False
    with pytest.raises(AuthorizationError):
        coordinator.send_reaction("c-bob", "🎉")


def test_hand_raise_flow(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob", "carol")

    coordinator.raise_hand("c-bob")
    coordinator.raise_hand("c-bob")
    assert len(sender.of_type("c-alice", "hand-raised")) == 1

    with pytest.raises(AuthorizationError):
        coordinator.acknowledge_hand("c-carol", "bob")
    coordinator.acknowledge_hand("c-alice", "bob")
    assert sender.last("c-bob", "hand-acknowledged")["acknowledgedBy"] == "alice"

    coordinator.lower_hand("c-bob")
    assert sender.last("c-carol", "hand-lowered")["userId"] == "bob"


def test_media_toggles_exclude_sender(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    sender.clear()

    coordinator.toggle_audio("c-bob")
    coordinator.toggle_video("c-bob", True)
    coordinator.toggle_video("c-bob", True)

    assert sender.events("c-bob") == []
    assert sender.last("c-alice", "participant-audio-toggle") == {
        "type": "participant-audio-toggle",
        "userId": "bob",
        "isAudioMuted": True,
    }
    assert len(sender.of_type("c-alice", "participant-video-toggle")) == 1


def test_screen_share_follows_room_setting(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.start_screen_share("c-bob")
    bob_view = sender.last("c-alice", "room-participants")["participants"][1]
    assert bob_view["isScreenSharing"] is True
    coordinator.stop_screen_share("c-bob")

    coordinator.update_settings("c-alice", {"allow_screen_share": False})
    with pytest.raises(AuthorizationError):
        coordinator.start_screen_share("c-bob")
    coordinator.start_screen_share("c-alice")


def test_only_host_updates_settings(coordinator) -> None:
    seat(coordinator, "alice", "bob")
    with pytest.raises(AuthorizationError):
        coordinator.update_settings("c-bob", {"allow_chat": False})
    assert coordinator.update_settings("c-alice", {"allow_chat": True}) == {}


# ---------------------------------------------------------------------------
# Signaling
# ---------------------------------------------------------------------------


def test_signal_relay_uses_connection_identity(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob", "carol")
    sender.clear()
    offer = {"type": "offer", "sdp": "v=0"}

    assert coordinator.relay_signal("c-alice", "webrtc-offer", "bob", offer) is True
    assert sender.frames["c-bob"] == [{"type": "webrtc-offer", "fromId": "alice", "payload": offer}]
    assert sender.events("c-carol") == []

    assert coordinator.relay_signal("c-alice", "ice-candidate", "ghost", {}) is False
    assert coordinator.relay_signal("c-unknown", "webrtc-answer", "bob", {}) is False


def test_signal_follows_target_across_rebinding(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.join_room("c-bob-2", "r1", "bob", "Bob")
    sender.clear()

    coordinator.relay_signal("c-alice", "ice-candidate", "bob", {"candidate": "a=1"})

    assert sender.events("c-bob") == []
    assert sender.events("c-bob-2") == ["ice-candidate"]
    assert coordinator.relay_signal("c-bob", "webrtc-answer", "alice", {}) is False


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


def test_staff_can_mute_but_not_the_host(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob", "carol")

    with pytest.raises(AuthorizationError):
        coordinator.mute_participant("c-bob", "carol")

    coordinator.mute_participant("c-alice", "bob")
    assert sender.last("c-bob", "force-mute")["byUserId"] == "alice"
    assert sender.last("c-carol", "participant-audio-toggle")["isAudioMuted"] is True
    assert coordinator.registry.get_room("r1").get("bob").audio_muted is True

    coordinator.unmute_participant("c-alice", "bob")
    assert sender.last("c-bob", "force-unmute")["byUserName"] == "Alice"

    coordinator.change_role("c-alice", "bob", "co-host")
    with pytest.raises(AuthorizationError):
        coordinator.mute_participant("c-bob", "alice")
    with pytest.raises(ValidationError):
        coordinator.mute_participant("c-alice", "alice")


def test_remove_participant(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.remove_participant("c-alice", "bob", "off topic")

    assert sender.last("c-bob", "removed-from-room")["reason"] == "off topic"
    assert "bob" not in coordinator.registry.get_room("r1")
    assert sender.last("c-alice", "user-left")["reason"] == "removed"
    with pytest.raises(NotFoundError):
        coordinator.send_message("c-bob", "let me back in")


def test_change_role(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")

    with pytest.raises(AuthorizationError):
        coordinator.change_role("c-bob", "bob", "host")
    with pytest.raises(ValidationError):
        coordinator.change_role("c-alice", "bob", "emperor")

    coordinator.change_role("c-alice", "bob", "host")
    room = coordinator.registry.get_room("r1")
    assert room.host_id == "bob"
    assert room.get("alice").role is Role.CO_HOST
    assert sender.last("c-alice", "host-changed")["hostId"] == "bob"


def test_block_removes_from_rooms_and_rejects_rejoin(coordinator, sender) -> None:
    seat(coordinator, "alice", "mallory")
    rejected_before = session_join_rejections_total.value("blocked")

    coordinator.block_participant("c-alice", "mallory", "spam")

    assert sender.last("c-mallory", "moderation-notice")["action"] == "blocked"
    assert "mallory" not in coordinator.registry.get_room("r1")
    with pytest.raises(ModerationError) as excinfo:
        coordinator.join_room("c-mallory", "r1", "mallory", "Mallory")
    assert excinfo.value.reason == "blocked"
    assert session_join_rejections_total.value("blocked") == rejected_before + 1

    assert coordinator.unblock("mallory") is True
    coordinator.join_room("c-mallory", "r1", "mallory", "Mallory")


def test_suspension_rejects_joins_until_it_expires(coordinator, clock) -> None:
    coordinator.suspend("dave", 1)

    clock.advance(30)
    with pytest.raises(ModerationError) as excinfo:
        coordinator.join_room("c-dave", "r1", "dave", "Dave")
    assert excinfo.value.reason == "suspended"
    assert coordinator.registry.get_room("r1") is None

    clock.advance(31)
    coordinator.join_room("c-dave", "r1", "dave", "Dave")
    assert "dave" in coordinator.registry.get_room("r1")


def test_suspended_participant_keeps_seat_with_baseline_permissions(
    coordinator, sender, clock
) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.change_role("c-alice", "bob", "co-host")
    coordinator.start_screen_share("c-bob")

    coordinator.suspend_participant("c-alice", "bob", 5, "cool off")

    room = coordinator.registry.get_room("r1")
    assert "bob" in room
    assert room.get("bob").screen_sharing is False
    notice = sender.last("c-bob", "moderation-notice")
    assert notice["action"] == "suspended"
    assert notice["expiresAt"] == "2024-05-01T12:05:00+00:00"
    bob_view = sender.last("c-alice", "room-participants")["participants"][1]
    assert bob_view["permissions"]["canMute"] is False
    with pytest.raises(AuthorizationError):
        coordinator.mute_participant("c-bob", "alice")

    clock.advance(301)
    coordinator.start_screen_share("c-bob")
    assert room.get("bob").screen_sharing is True


def test_lift_suspension_notifies(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.suspend("bob", 10)
    assert coordinator.lift_suspension("bob") is True
    assert sender.last("c-bob", "moderation-notice")["action"] == "suspension-lifted"
    assert coordinator.lift_suspension("bob") is False


# ---------------------------------------------------------------------------
# Polls and recording
# ---------------------------------------------------------------------------


def test_poll_vote_and_close(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")

    with pytest.raises(AuthorizationError):
        coordinator.create_poll("c-bob", "Lunch?", ["Pizza", "Salad"])
    coordinator.create_poll("c-alice", "Lunch?", ["Pizza", "Salad"])
    poll = sender.last("c-bob", "poll-created")["poll"]

    coordinator.vote_poll("c-bob", poll["id"], 1)
    assert sender.last("c-alice", "poll-updated")["poll"]["results"] == [0, 1]

    coordinator.close_poll("c-alice", poll["id"])
    closed = sender.last("c-bob", "poll-closed")
    assert closed["reason"] == "closed"
    assert closed["poll"]["closed"] is True
    with pytest.raises(NotFoundError):
        coordinator.close_poll("c-alice", poll["id"])


def test_recording_requires_capability(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")

    with pytest.raises(AuthorizationError):
        coordinator.set_recording("c-bob", "start")
    coordinator.set_recording("c-alice", "start")
    frame = sender.last("c-bob", "recording-status")
    assert frame["status"] == "recording"
    assert frame["byUserId"] == "alice"
    with pytest.raises(ValidationError):
        coordinator.set_recording("c-alice", "resume")


# ---------------------------------------------------------------------------
# Ending rooms and meetings
# ---------------------------------------------------------------------------


def test_only_host_can_end_room(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    with pytest.raises(AuthorizationError):
        coordinator.end_room("c-bob")

    coordinator.end_room("c-alice")

    assert sender.last("c-bob", "room-ended")["endedBy"] == "alice"
    assert coordinator.registry.get_room("r1") is None
    assert coordinator.room_for_connection("c-bob") is None


def test_force_end_room(coordinator, sender) -> None:
    seat(coordinator, "alice")
    summary = coordinator.force_end_room("r1")

    assert summary["participantCount"] == 1
    assert sender.last("c-alice", "room-ended")["endedBy"] is None
    with pytest.raises(NotFoundError):
        coordinator.force_end_room("r1")


def test_linked_meeting_drives_room_lifecycle(coordinator, sender) -> None:
    coordinator.meetings.register(
        MeetingSnapshot(id="m1", room_id="r1", title="Weekly", host_id="bob", max_participants=5)
    )

    coordinator.join_room("c-alice", "r1", "alice", "Alice")
    room = coordinator.registry.get_room("r1")
    assert room.name == "Weekly"
    assert room.meeting_id == "m1"
    assert room.host_id == "alice"
    assert room.get("alice").role is Role.HOST
    assert coordinator.meetings.get("m1").status is MeetingStatus.ACTIVE

    coordinator.join_room("c-bob", "r1", "bob", "Bob")
    assert room.get("bob").role is Role.HOST
    assert room.get("alice").role is Role.CO_HOST
    assert sender.last("c-alice", "host-changed") == {
        "type": "host-changed",
        "roomId": "r1",
        "hostId": "bob",
        "hostName": "Bob",
        "previousHostId": "alice",
    }

    coordinator.meetings.mark_ended("m1")

    assert sender.last("c-alice", "meeting-ended")["meetingId"] == "m1"
    assert coordinator.registry.get_room("r1") is None
    with pytest.raises(NotFoundError) as excinfo:
        coordinator.join_room("c-alice", "r1", "alice", "Alice")
    assert excinfo.value.reason == "meeting-ended"


def test_meeting_room_without_its_host_stays_manageable(coordinator, sender) -> None:
    coordinator.meetings.register(MeetingSnapshot(id="m9", room_id="r9", host_id="admin"))
    seat(coordinator, "alice", "bob", "carol", room_id="r9")
    room = coordinator.registry.get_room("r9")

    assert room.get("alice").role is Role.HOST
    assert "host-changed" not in sender.events("c-alice")

    coordinator.leave("c-alice")
    assert room.host_id == "bob"
    assert sender.last("c-carol", "host-changed")["hostId"] == "bob"

    coordinator.end_room("c-bob")
    assert coordinator.registry.get_room("r9") is None
    assert coordinator.meetings.get("m9").status is MeetingStatus.ENDED


def test_cancelled_meeting_closes_room_and_refuses_joins(coordinator, sender) -> None:
    coordinator.meetings.register(MeetingSnapshot(id="m1", room_id="r1"))
    seat(coordinator, "alice")

    cancelled = coordinator.meetings.mark_cancelled("m1")

    assert cancelled.status is MeetingStatus.CANCELLED
    assert cancelled.ended_at is not None
    assert sender.last("c-alice", "meeting-ended")["message"] == "The meeting has been cancelled"
    assert coordinator.registry.get_room("r1") is None
    with pytest.raises(NotFoundError) as excinfo:
        coordinator.join_room("c-alice", "r1", "alice", "Alice")
    assert excinfo.value.reason == "meeting-ended"
    assert coordinator.meetings.mark_cancelled("m1") == cancelled


def test_ending_room_marks_meeting_ended(coordinator, sender) -> None:
    coordinator.meetings.register(MeetingSnapshot(id="m1", room_id="r1"))
    seat(coordinator, "alice", "bob")

    coordinator.end_room("c-alice")

    assert coordinator.meetings.get("m1").status is MeetingStatus.ENDED
    assert sender.events("c-bob").count("room-ended") == 1
    assert "meeting-ended" not in sender.events("c-bob")


def test_read_models(coordinator) -> None:
    seat(coordinator, "alice", "bob")
    seat(coordinator, "carol", room_id="r2")

    rooms = {item["roomId"]: item for item in coordinator.active_rooms()}
    assert rooms["r1"]["participantCount"] == 2
    assert rooms["r2"]["hostId"] == "carol"
    assert coordinator.room_summary("r1")["hostId"] == "alice"
    with pytest.raises(NotFoundError):
        coordinator.room_summary("r404")


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_poll_closes_itself_after_duration(coordinator, sender) -> None:
    seat(coordinator, "alice", "bob")
    coordinator.create_poll("c-alice", "Ready?", ["Yes", "No"], 0.05)

    await asyncio.sleep(0.2)

    closed = sender.last("c-bob", "poll-closed")
    assert closed["reason"] == "timeout"
    assert coordinator.registry.get_room("r1").active_poll is None


@pytest.mark.anyio
async def test_poll_timer_ignores_recreated_room(coordinator, sender) -> None:
    seat(coordinator, "alice")
    coordinator.create_poll("c-alice", "Ready?", ["Yes", "No"], 0.05)
    coordinator.leave("c-alice")
    seat(coordinator, "alice")
    sender.clear()

    await asyncio.sleep(0.2)

    assert sender.events("c-alice") == []


@pytest.mark.anyio
async def test_grace_period_expires(sender, clock) -> None:
    coordinator = build(sender, clock, reconnect_grace_seconds=0.05)
    seat(coordinator, "alice", "bob")

    coordinator.disconnect("c-bob")
    room = coordinator.registry.get_room("r1")
    assert "bob" in room
    assert room.get("bob").connection_id is None
    bob_view = sender.last("c-alice", "room-participants")["participants"][1]
    assert bob_view["connected"] is False

    await asyncio.sleep(0.2)

    assert "bob" not in room
    assert sender.last("c-alice", "user-left")["reason"] == "disconnected"
    await coordinator.shutdown()


@pytest.mark.anyio
async def test_reconnect_within_grace_keeps_seat(sender, clock) -> None:
    coordinator = build(sender, clock, reconnect_grace_seconds=0.1)
    seat(coordinator, "alice", "bob")

    coordinator.disconnect("c-alice")
    coordinator.join_room("c-alice-2", "r1", "alice", "Alice")

    await asyncio.sleep(0.25)

    room = coordinator.registry.get_room("r1")
    assert room.host_id == "alice"
    assert room.binding.resolve("alice") == "c-alice-2"
    assert sender.last("c-alice-2", "joined-room")["reconnected"] is True
    assert "user-left" not in sender.events("c-bob")
    await coordinator.shutdown()
