"""Metric definitions for live sessions and the realtime transport."""

from __future__ import annotations

from .registry import registry


sessions_active_rooms = registry.gauge(
    "sessions_active_rooms",
    "Number of live rooms held by the session registry.",
)

sessions_active_participants = registry.gauge(
    "sessions_active_participants",
    "Number of participants seated across all live rooms.",
)

realtime_connections = registry.gauge(
    "realtime_connections",
    "Number of open websocket connections handled locally.",
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime events processed, by event name and direction.",
    label_names=("event", "direction"),
)

session_join_rejections_total = registry.counter(
    "session_join_rejections_total",
    "Number of rejected room joins, by reason.",
    label_names=("reason",),
)

signaling_relay_total = registry.counter(
    "signaling_relay_total",
    "WebRTC negotiation messages handled by the relay, by kind and outcome.",
    label_names=("kind", "outcome"),
)


__all__ = [
    "sessions_active_rooms",
    "sessions_active_participants",
    "realtime_connections",
    "realtime_events_total",
    "session_join_rejections_total",
    "signaling_relay_total",
]
