"""Session coordinator: applies inbound realtime events to live rooms."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, Mapping, Sequence, Set

import httpx

from app.monitoring.metrics import (
    session_join_rejections_total,
    sessions_active_participants,
    sessions_active_rooms,
)
from convene.sessions.errors import (
    AuthorizationError,
    NotFoundError,
    SessionError,
    ValidationError,
)
from convene.sessions.meetings import (
    InMemoryMeetingDirectory,
    MeetingSnapshot,
    MeetingStatus,
)
from convene.sessions.moderation import Block, Clock, ModerationStore, Suspension, utcnow
from convene.sessions.permissions import Capability, Role, RoomKind
from convene.sessions.registry import RoomHint, SessionRegistry
from convene.sessions.room import Participant, RecordingStatus, Room

from .broadcaster import EventBroadcaster
from .connections import ConnectionHub, OutboundSender
from .relay import SignalingRelay

logger = logging.getLogger(__name__)

CLOSED_MEETING_STATUSES = frozenset({MeetingStatus.ENDED, MeetingStatus.CANCELLED})


class SessionCoordinator:
    """Owns the registry and every collaborator needed to serve a room.

    Each public method handles one inbound event and runs to completion
    without awaiting, so a room is never observed half-updated. Delayed
    effects are scheduled on the running loop and re-check the registry
    before they act.
    """

    def __init__(
        self,
        settings,
        *,
        hub: OutboundSender | None = None,
        registry: SessionRegistry | None = None,
        moderation: ModerationStore | None = None,
        meetings: InMemoryMeetingDirectory | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self.hub = hub if hub is not None else ConnectionHub()
        self.registry = registry or SessionRegistry(
            default_max_participants=settings.default_max_participants, clock=clock
        )
        self.moderation = moderation or ModerationStore(clock)
        self.meetings = meetings or InMemoryMeetingDirectory(clock=clock)
        self.broadcaster = EventBroadcaster(self.hub, restricted=self._restricted)
        self.relay = SignalingRelay(self.registry, self.broadcaster)
        self._connection_rooms: Dict[str, str] = {}
        self._grace_timers: Dict[tuple[str, str], asyncio.TimerHandle] = {}
        self._poll_timers: Dict[str, tuple[str, asyncio.TimerHandle]] = {}
        self._background: Set[asyncio.Task[None]] = set()
        self.meetings.subscribe(self._on_meeting_status)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def _restricted(self, participant_id: str) -> bool:
        return self.moderation.is_suspended(participant_id)

    def room_for_connection(self, connection_id: str) -> Room | None:
        room_id = self._connection_rooms.get(connection_id)
        return self.registry.get_room(room_id) if room_id is not None else None

    def _locate(self, connection_id: str) -> tuple[Room, Participant] | None:
        room = self.room_for_connection(connection_id)
        if room is None:
            self._connection_rooms.pop(connection_id, None)
            return None
        participant = room.by_connection(connection_id)
        if participant is None:
            self._connection_rooms.pop(connection_id, None)
            return None
        return room, participant

    def _sender(self, connection_id: str) -> tuple[Room, Participant]:
        located = self._locate(connection_id)
        if located is None:
            raise NotFoundError("Join a room first")
        return located

    def _public(self, room: Room, participant: Participant) -> dict[str, Any]:
        return participant.to_public(
            room.effective_permissions(participant, restricted=self._restricted(participant.id))
        )

    def _require(self, room: Room, actor: Participant, capability: Capability) -> None:
        room.require_permission(actor.id, capability, restricted=self._restricted(actor.id))

    def _require_host(self, room: Room, actor: Participant, action: str) -> None:
        if actor.id != room.host_id or self._restricted(actor.id):
            raise AuthorizationError(f"Only the host can {action}")

    def _require_staff(self, room: Room, actor: Participant) -> None:
        if not actor.role.is_staff or self._restricted(actor.id):
            raise AuthorizationError("Insufficient permissions")

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def connection_opened(self, connection_id: str) -> None:
        self.broadcaster.send_to(
            connection_id,
            "connection-confirmed",
            {"connectionId": connection_id, "timestamp": self._clock().isoformat()},
        )

    def ping(self, connection_id: str) -> None:
        self.broadcaster.send_to(connection_id, "pong", {"timestamp": self._clock().isoformat()})

    def disconnect(self, connection_id: str) -> None:
        located = self._locate(connection_id)
        self._connection_rooms.pop(connection_id, None)
        if located is None:
            return
        room, participant = located
        grace = self._settings.reconnect_grace_seconds
        if grace <= 0:
            self._remove(room, participant.id, reason="disconnected")
            return
        room.unbind(participant.id)
        key = (room.id, participant.id)
        self._grace_timers[key] = self._schedule(
            grace, self._expire_grace, room.id, room, participant.id
        )
        logger.info(
            "Participant awaiting reconnection",
            extra={"room": room.id, "participant": participant.id, "grace": grace},
        )
        self.broadcaster.participants(room)

    def _expire_grace(self, room_id: str, room: Room, participant_id: str) -> None:
        self._grace_timers.pop((room_id, participant_id), None)
        if self.registry.get_room(room_id) is not room:
            return
        participant = room.get(participant_id)
        if participant is None or participant.connection_id is not None:
            return
        self._remove(room, participant_id, reason="disconnected")

    def _cancel_grace(self, room_id: str, participant_id: str) -> None:
        handle = self._grace_timers.pop((room_id, participant_id), None)
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Join / leave
    # ------------------------------------------------------------------
    def join_room(
        self,
        connection_id: str,
        room_id: str,
        participant_id: str,
        user_name: str,
        *,
        password: str | None = None,
        room_type: str | None = None,
        room_name: str | None = None,
        profile: Mapping[str, Any] | None = None,
    ) -> Participant:
        try:
            return self._join(
                connection_id,
                room_id,
                participant_id,
                user_name,
                password=password,
                room_type=room_type,
                room_name=room_name,
                profile=profile,
            )
        except SessionError as exc:
            session_join_rejections_total.labels(exc.reason).inc()
            logger.info(
                "Join rejected",
                extra={"room": room_id, "participant": participant_id, "reason": exc.reason},
            )
            raise

    def _join(
        self,
        connection_id: str,
        room_id: str,
        participant_id: str,
        user_name: str,
        *,
        password: str | None,
        room_type: str | None,
        room_name: str | None,
        profile: Mapping[str, Any] | None,
    ) -> Participant:
        now = self._clock()
        self.moderation.check(participant_id, now)

        current = self._locate(connection_id)
        if current is not None:
            current_room, current_participant = current
            if current_room.id == room_id and current_participant.id == participant_id:
                self._send_joined(current_room, current_participant, connection_id, reconnected=True)
                return current_participant
            self.leave(connection_id)

        room = self.registry.get_room(room_id)
        if room is not None and participant_id in room:
            return self._rebind(room, participant_id, connection_id)

        created = False
        meeting: MeetingSnapshot | None = None
        if room is None:
            meeting = self.meetings.find_by_room(room_id)
            if meeting is not None and meeting.status in CLOSED_MEETING_STATUSES:
                raise NotFoundError("This meeting has already ended", reason="meeting-ended")
            hint = RoomHint(name=room_name, kind=RoomKind.parse(room_type), meeting=meeting)
            room, created = self.registry.get_or_create_room(room_id, hint)

        stand_in = room.host()
        try:
            participant = room.add_participant(
                participant_id,
                user_name=user_name,
                connection_id=connection_id,
                password=password,
                profile=dict(profile or {}),
                now=now,
            )
        except SessionError:
            if created:
                self.registry.discard_if_empty(room)
            raise

        self._connection_rooms[connection_id] = room.id
        if created and meeting is not None and meeting.status is MeetingStatus.SCHEDULED:
            self.meetings.mark_started(meeting.id)
        self._refresh_gauges()
        logger.info(
            "Participant joined",
            extra={"room": room.id, "participant": participant_id, "role": participant.role.value},
        )

        self._send_joined(room, participant, connection_id)
        self.broadcaster.emit(
            room,
            "user-joined",
            {
                "roomId": room.id,
                "userId": participant.id,
                "userName": participant.user_name,
                "participant": self._public(room, participant),
            },
            exclude=(participant.id,),
        )
        if stand_in is not None and room.host_id == participant.id:
            self.broadcaster.emit(
                room,
                "host-changed",
                {
                    "roomId": room.id,
                    "hostId": participant.id,
                    "hostName": participant.user_name,
                    "previousHostId": stand_in.id,
                },
            )
        self.broadcaster.participants(room)
        return participant

    def _rebind(self, room: Room, participant_id: str, connection_id: str) -> Participant:
        previous = room.bind(participant_id, connection_id)
        if previous is not None:
            self._connection_rooms.pop(previous, None)
        self._cancel_grace(room.id, participant_id)
        self._connection_rooms[connection_id] = room.id
        participant = room.require(participant_id)
        logger.info(
            "Participant reconnected",
            extra={"room": room.id, "participant": participant_id, "previous": previous},
        )
        self._send_joined(room, participant, connection_id, reconnected=True)
        self.broadcaster.participants(room)
        return participant

    def _send_joined(
        self, room: Room, participant: Participant, connection_id: str, *, reconnected: bool = False
    ) -> None:
        payload = room.state(self._restricted)
        payload.update(
            {
                "participant": self._public(room, participant),
                "userRole": participant.role.value,
                "roomSettings": payload.pop("settings"),
                "reconnected": reconnected,
            }
        )
        self.broadcaster.send_to(connection_id, "joined-room", payload)

    def leave(self, connection_id: str) -> bool:
        located = self._locate(connection_id)
        if located is None:
            return False
        room, participant = located
        self._remove(room, participant.id, reason="left")
        return True

    def _remove(self, room: Room, participant_id: str, *, reason: str) -> Participant | None:
        participant = room.get(participant_id)
        if participant is None:
            return None
        if participant.connection_id is not None:
            self._connection_rooms.pop(participant.connection_id, None)
        self._cancel_grace(room.id, participant_id)
        departed, new_host = room.remove_participant(participant_id)

        if room.is_empty:
            self._destroy(room)
        else:
            self.broadcaster.emit(
                room,
                "user-left",
                {
                    "roomId": room.id,
                    "userId": participant_id,
                    "userName": participant.user_name,
                    "reason": reason,
                },
            )
            if new_host is not None:
                self.broadcaster.emit(
                    room,
                    "host-changed",
                    {
                        "roomId": room.id,
                        "hostId": new_host.id,
                        "hostName": new_host.user_name,
                        "previousHostId": participant_id,
                    },
                )
            self.broadcaster.participants(room)
        self._refresh_gauges()
        logger.info(
            "Participant left",
            extra={"room": room.id, "participant": participant_id, "reason": reason},
        )
        return departed

    def _destroy(self, room: Room) -> None:
        for participant in room.participants.values():
            if participant.connection_id is not None:
                self._connection_rooms.pop(participant.connection_id, None)
        for key in [key for key in self._grace_timers if key[0] == room.id]:
            self._grace_timers.pop(key).cancel()
        for poll_id in [poll_id for poll_id, (room_id, _) in self._poll_timers.items() if room_id == room.id]:
            self._poll_timers.pop(poll_id)[1].cancel()
        if self.registry.get_room(room.id) is room:
            self.registry.delete_room(room.id)
        self._refresh_gauges()

    # ------------------------------------------------------------------
    # Ending rooms and meetings
    # ------------------------------------------------------------------
    def _end_room(self, room: Room, event: str, payload: dict[str, Any]) -> None:
        self.broadcaster.emit(room, event, payload)
        self._destroy(room)
        logger.info("Room ended", extra={"room": room.id, "event": event})

    def end_room(self, connection_id: str) -> None:
        room, actor = self._sender(connection_id)
        self._require_host(room, actor, "end the room")
        self._end_room(
            room,
            "room-ended",
            {"roomId": room.id, "endedBy": actor.id, "timestamp": self._clock().isoformat()},
        )
        if room.meeting_id is not None:
            self.meetings.mark_ended(room.meeting_id)

    def force_end_room(self, room_id: str) -> dict[str, Any]:
        room = self.registry.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        summary = room.summary()
        self._end_room(
            room,
            "room-ended",
            {"roomId": room.id, "endedBy": None, "timestamp": self._clock().isoformat()},
        )
        if room.meeting_id is not None:
            self.meetings.mark_ended(room.meeting_id)
        return summary

    def _on_meeting_status(self, snapshot: MeetingSnapshot) -> None:
        if snapshot.status in CLOSED_MEETING_STATUSES:
            room = self.registry.get_room(snapshot.room_id)
            if room is not None:
                self._end_room(
                    room,
                    "meeting-ended",
                    {
                        "roomId": room.id,
                        "meetingId": snapshot.id,
                        "message": (
                            "The meeting has been cancelled"
                            if snapshot.status is MeetingStatus.CANCELLED
                            else "The meeting has been ended by the host"
                        ),
                        "meeting": snapshot.to_public(),
                    },
                )
        url = self._settings.meeting_status_webhook_url
        if url is not None:
            self._spawn(
                self._post(str(url), {"meeting": snapshot.to_public()}, "meeting status webhook")
            )

    # ------------------------------------------------------------------
    # Chat, reactions and hands
    # ------------------------------------------------------------------
    def send_message(self, connection_id: str, message: str) -> None:
        room, sender = self._sender(connection_id)
        text = message.strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        if len(text) > self._settings.chat_message_max_length:
            raise ValidationError("Message is too long")
        entry = room.append_chat(sender.id, text, now=self._clock())
        self.broadcaster.emit(room, "new-message", entry.to_public())

    def send_reaction(self, connection_id: str, emoji: str) -> None:
        room, sender = self._sender(connection_id)
        value = emoji.strip()
        if not value or len(value) > self._settings.reaction_max_length:
            raise ValidationError("Reaction must be a short emoji")
        entry = room.append_reaction(sender.id, value, now=self._clock())
        self.broadcaster.emit(room, "new-reaction", entry.to_public())

    def raise_hand(self, connection_id: str) -> None:
        room, sender = self._sender(connection_id)
        entry, changed = room.raise_hand(sender.id, now=self._clock())
        if changed:
            self.broadcaster.emit(
                room,
                "hand-raised",
                {"userId": sender.id, "userName": sender.user_name, "raisedAt": entry.raised_at.isoformat()},
            )

    def lower_hand(self, connection_id: str) -> None:
        room, sender = self._sender(connection_id)
        if room.lower_hand(sender.id):
            self.broadcaster.emit(
                room, "hand-lowered", {"userId": sender.id, "userName": sender.user_name}
            )

    def acknowledge_hand(self, connection_id: str, target_id: str) -> None:
        room, actor = self._sender(connection_id)
        self._require_staff(room, actor)
        room.acknowledge_hand(target_id)
        self.broadcaster.emit(
            room, "hand-acknowledged", {"userId": target_id, "acknowledgedBy": actor.id}
        )

    # ------------------------------------------------------------------
    # Signaling and media state
    # ------------------------------------------------------------------
    def relay_signal(self, connection_id: str, kind: str, target_id: str, payload: Any) -> bool:
        return self.relay.relay(
            kind, self._connection_rooms.get(connection_id), connection_id, target_id, payload
        )

    def toggle_audio(self, connection_id: str, muted: bool | None = None) -> None:
        room, sender = self._sender(connection_id)
        value = (not sender.audio_muted) if muted is None else muted
        if room.set_audio_muted(sender.id, value):
            self.broadcaster.emit(
                room,
                "participant-audio-toggle",
                {"userId": sender.id, "isAudioMuted": value},
                exclude=(sender.id,),
            )

    def toggle_video(self, connection_id: str, muted: bool | None = None) -> None:
        room, sender = self._sender(connection_id)
        value = (not sender.video_muted) if muted is None else muted
        if room.set_video_muted(sender.id, value):
            self.broadcaster.emit(
                room,
                "participant-video-toggle",
                {"userId": sender.id, "isVideoMuted": value},
                exclude=(sender.id,),
            )

    def start_screen_share(self, connection_id: str) -> None:
        room, sender = self._sender(connection_id)
        self._require(room, sender, Capability.SHARE_SCREEN)
        if room.set_screen_sharing(sender.id, True):
            self.broadcaster.participants(room)

    def stop_screen_share(self, connection_id: str) -> None:
        room, sender = self._sender(connection_id)
        if room.set_screen_sharing(sender.id, False):
            self.broadcaster.participants(room)

    # ------------------------------------------------------------------
    # Moderation inside a room
    # ------------------------------------------------------------------
    def _moderated_target(
        self, room: Room, actor: Participant, target_id: str, capability: Capability
    ) -> Participant:
        self._require(room, actor, capability)
        if target_id == actor.id:
            raise ValidationError("You cannot target yourself")
        target = room.require(target_id)
        if target.role is Role.HOST:
            raise AuthorizationError("The host cannot be moderated")
        return target

    def mute_participant(self, connection_id: str, target_id: str) -> None:
        room, actor = self._sender(connection_id)
        target = self._moderated_target(room, actor, target_id, Capability.MUTE_OTHERS)
        room.set_audio_muted(target.id, True)
        self.broadcaster.send_to_participant(
            room, target.id, "force-mute", {"byUserId": actor.id, "byUserName": actor.user_name}
        )
        self.broadcaster.emit(
            room,
            "participant-audio-toggle",
            {"userId": target.id, "isAudioMuted": True},
            exclude=(target.id,),
        )

    def unmute_participant(self, connection_id: str, target_id: str) -> None:
        room, actor = self._sender(connection_id)
        target = self._moderated_target(room, actor, target_id, Capability.UNMUTE_OTHERS)
        room.set_audio_muted(target.id, False)
        self.broadcaster.send_to_participant(
            room, target.id, "force-unmute", {"byUserId": actor.id, "byUserName": actor.user_name}
        )
        self.broadcaster.emit(
            room,
            "participant-audio-toggle",
            {"userId": target.id, "isAudioMuted": False},
            exclude=(target.id,),
        )

    def remove_participant(
        self, connection_id: str, target_id: str, reason: str | None = None
    ) -> None:
        room, actor = self._sender(connection_id)
        target = self._moderated_target(room, actor, target_id, Capability.REMOVE_PARTICIPANT)
        self.broadcaster.send_to_participant(
            room,
            target.id,
            "removed-from-room",
            {"roomId": room.id, "reason": reason, "byUserId": actor.id},
        )
        self._remove(room, target.id, reason="removed")

    def change_role(self, connection_id: str, target_id: str, role: str) -> None:
        room, actor = self._sender(connection_id)
        self._require_host(room, actor, "change roles")
        try:
            new_role = Role(role)
        except ValueError as exc:
            raise ValidationError(f"Unknown role '{role}'") from exc
        changed = room.set_role(target_id, new_role)
        if not changed:
            return
        if new_role is Role.HOST:
            new_host = room.require(target_id)
            self.broadcaster.emit(
                room,
                "host-changed",
                {
                    "roomId": room.id,
                    "hostId": new_host.id,
                    "hostName": new_host.user_name,
                    "previousHostId": actor.id,
                },
            )
        self.broadcaster.participants(room)

    def block_participant(
        self, connection_id: str, target_id: str, reason: str | None = None
    ) -> Block:
        room, actor = self._sender(connection_id)
        self._moderated_target(room, actor, target_id, Capability.REMOVE_PARTICIPANT)
        return self.block(target_id, reason=reason, by=actor.id)

    def suspend_participant(
        self, connection_id: str, target_id: str, minutes: float, reason: str | None = None
    ) -> Suspension:
        room, actor = self._sender(connection_id)
        self._moderated_target(room, actor, target_id, Capability.REMOVE_PARTICIPANT)
        return self.suspend(target_id, minutes, reason=reason, by=actor.id)

    # ------------------------------------------------------------------
    # Global moderation (shared with the REST boundary)
    # ------------------------------------------------------------------
    def block(self, participant_id: str, *, reason: str | None = None, by: str | None = None) -> Block:
        entry = self.moderation.block(participant_id, reason)
        for room in self.registry.rooms_for(participant_id):
            self.broadcaster.send_to_participant(
                room,
                participant_id,
                "moderation-notice",
                {"action": "blocked", "roomId": room.id, "reason": reason, "byUserId": by},
            )
            self._remove(room, participant_id, reason="blocked")
        return entry

    def unblock(self, participant_id: str) -> bool:
        return self.moderation.unblock(participant_id)

    def suspend(
        self,
        participant_id: str,
        minutes: float,
        *,
        reason: str | None = None,
        by: str | None = None,
    ) -> Suspension:
        entry = self.moderation.suspend(participant_id, minutes, reason)
        for room in self.registry.rooms_for(participant_id):
            room.set_screen_sharing(participant_id, False)
            self.broadcaster.send_to_participant(
                room,
                participant_id,
                "moderation-notice",
                {
                    "action": "suspended",
                    "roomId": room.id,
                    "reason": reason,
                    "byUserId": by,
                    "expiresAt": entry.expires_at.isoformat(),
                },
            )
            self.broadcaster.participants(room)
        return entry

    def lift_suspension(self, participant_id: str) -> bool:
        if not self.moderation.lift_suspension(participant_id):
            return False
        for room in self.registry.rooms_for(participant_id):
            self.broadcaster.send_to_participant(
                room, participant_id, "moderation-notice", {"action": "suspension-lifted", "roomId": room.id}
            )
            self.broadcaster.participants(room)
        return True

    # ------------------------------------------------------------------
    # Polls
    # ------------------------------------------------------------------
    def create_poll(
        self,
        connection_id: str,
        question: str,
        options: Sequence[str],
        duration_seconds: float | None = None,
    ) -> None:
        room, actor = self._sender(connection_id)
        self._require(room, actor, Capability.MANAGE_POLLS)
        text = question.strip()
        if not text:
            raise ValidationError("Poll question cannot be empty")
        choices = [option.strip() for option in options if option.strip()]
        duration = None
        if duration_seconds:
            duration = min(float(duration_seconds), float(self._settings.poll_max_duration_seconds))
        poll = room.open_poll(
            actor.id, text, choices, duration_seconds=duration, now=self._clock()
        )
        self.broadcaster.emit(room, "poll-created", {"roomId": room.id, "poll": poll.to_public()})
        if duration:
            self._poll_timers[poll.id] = (
                room.id,
                self._schedule(duration, self._auto_close_poll, room.id, room, poll.id),
            )

    def vote_poll(self, connection_id: str, poll_id: str, option_index: int) -> None:
        room, voter = self._sender(connection_id)
        poll = room.vote(voter.id, poll_id, option_index)
        self.broadcaster.emit(room, "poll-updated", {"roomId": room.id, "poll": poll.to_public()})

    def close_poll(self, connection_id: str, poll_id: str) -> None:
        room, actor = self._sender(connection_id)
        self._require(room, actor, Capability.MANAGE_POLLS)
        poll = room.close_poll(poll_id)
        if poll is None:
            raise NotFoundError("Poll is not active")
        timer = self._poll_timers.pop(poll_id, None)
        if timer is not None:
            timer[1].cancel()
        self.broadcaster.emit(
            room, "poll-closed", {"roomId": room.id, "poll": poll.to_public(), "reason": "closed"}
        )

    def _auto_close_poll(self, room_id: str, room: Room, poll_id: str) -> None:
        self._poll_timers.pop(poll_id, None)
        if self.registry.get_room(room_id) is not room:
            return
        poll = room.close_poll(poll_id)
        if poll is None:
            return
        self.broadcaster.emit(
            room, "poll-closed", {"roomId": room.id, "poll": poll.to_public(), "reason": "timeout"}
        )

    # ------------------------------------------------------------------
    # Recording and settings
    # ------------------------------------------------------------------
    def set_recording(self, connection_id: str, action: str) -> RecordingStatus:
        room, actor = self._sender(connection_id)
        self._require(room, actor, Capability.RECORD)
        status = room.set_recording(action)
        payload = {
            "roomId": room.id,
            "status": status.value,
            "action": action,
            "byUserId": actor.id,
            "timestamp": self._clock().isoformat(),
        }
        self.broadcaster.emit(room, "recording-status", payload)
        url = self._settings.recording_service_url
        if url is not None:
            self._spawn(self._post(str(url), payload, "recording service"))
        return status

    def update_settings(self, connection_id: str, changes: Mapping[str, bool]) -> dict[str, bool]:
        room, actor = self._sender(connection_id)
        self._require_host(room, actor, "change room settings")
        applied = room.update_settings(**changes)
        if not applied:
            return applied
        self.broadcaster.emit(
            room,
            "room-settings",
            {"roomId": room.id, "settings": room.settings.to_public(), "changed": sorted(applied)},
        )
        if "allow_screen_share" in applied:
            self.broadcaster.participants(room)
        return applied

    # ------------------------------------------------------------------
    # Read models for the REST boundary
    # ------------------------------------------------------------------
    def active_rooms(self) -> list[dict[str, Any]]:
        return [room.summary() for room in self.registry.rooms()]

    def room_summary(self, room_id: str) -> dict[str, Any]:
        room = self.registry.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room.summary()

    # ------------------------------------------------------------------
    # Scheduling helpers
    # ------------------------------------------------------------------
    def _schedule(self, delay: float, callback: Callable[..., None], *args: Any) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._run_timer, callback, args)

    def _run_timer(self, callback: Callable[..., None], args: tuple[Any, ...]) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Session timer failed", extra={"callback": callback.__name__})

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _post(self, url: str, payload: dict[str, Any], target: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Failed to notify %s", target, extra={"url": url})

    def _refresh_gauges(self) -> None:
        sessions_active_rooms.set(len(self.registry))
        sessions_active_participants.set(self.registry.participant_count())

    async def shutdown(self) -> None:
        for handle in self._grace_timers.values():
            handle.cancel()
        self._grace_timers.clear()
        for _, handle in self._poll_timers.values():
            handle.cancel()
        self._poll_timers.clear()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if isinstance(self.hub, ConnectionHub):
            await self.hub.shutdown()


__all__ = ["CLOSED_MEETING_STATUSES", "SessionCoordinator"]
