"""Configuration endpoints for exposing runtime options to the frontend."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from app.config import get_settings

router = APIRouter(prefix="/config", tags=["config"])


@router.get("/webrtc")
def read_webrtc_config() -> dict[str, object]:
    """Expose WebRTC ICE configuration and room defaults."""

    settings = get_settings()
    return {
        "iceServers": settings.webrtc_ice_servers_payload,
        "stun": list(settings.webrtc_stun_servers),
        "turn": {
            "urls": list(settings.webrtc_turn_servers),
            "username": settings.webrtc_turn_username,
        },
        "rooms": {
            "defaultMaxParticipants": settings.default_max_participants,
            "chatMessageMaxLength": settings.chat_message_max_length,
            "reconnectGraceSeconds": settings.reconnect_grace_seconds,
        },
        "recording": {"serviceConfigured": settings.recording_service_url is not None},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
