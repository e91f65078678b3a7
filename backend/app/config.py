from functools import lru_cache
import json
from pathlib import Path
from typing import Annotated, Any, Iterable, List

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class IceServer(BaseModel):
    """Representation of a WebRTC ICE server configuration."""

    urls: list[str] = Field(default_factory=list, description="ICE server URLs")
    username: str | None = Field(default=None, description="Optional TURN username")
    credential: str | None = Field(default=None, description="Optional TURN credential")

    @field_validator("urls", mode="before")
    @classmethod
    def ensure_list(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple, set)):
            return [str(item) for item in value]
        return [] if value is None else [str(value)]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Convene", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        description="List of allowed CORS origins",
    )
    cors_allow_origin_regex: str | None = Field(
        default=r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$",
        description="Optional regular expression that matches allowed CORS origins",
    )

    websocket_keepalive_timeout_seconds: float = Field(
        default=30,
        description="Idle receive timeout after which the server considers sending a ping.",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=25,
        description="Minimum spacing between keepalive pings on an idle connection.",
    )

    default_max_participants: int = Field(
        default=10000,
        ge=1,
        description="Capacity of rooms created without a linked meeting.",
    )
    chat_message_max_length: int = Field(default=2000, ge=1)
    reaction_max_length: int = Field(default=32, ge=1)
    poll_max_duration_seconds: int = Field(
        default=3600,
        ge=1,
        description="Upper bound for poll auto-close timers.",
    )
    reconnect_grace_seconds: float = Field(
        default=0,
        ge=0,
        description="How long a disconnected participant keeps its seat; 0 removes immediately.",
    )

    recording_service_url: AnyHttpUrl | None = Field(
        default=None,
        description="Optional endpoint notified about recording state transitions.",
    )
    meeting_status_webhook_url: AnyHttpUrl | None = Field(
        default=None,
        description="Optional endpoint notified when a linked meeting changes status.",
    )

    webrtc_ice_servers: Annotated[list[IceServer | str], NoDecode] = Field(
        default_factory=list,
        description="List of ICE (STUN/TURN) servers available to WebRTC peers.",
    )
    webrtc_stun_servers: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Additional STUN endpoints exposed to clients.",
    )
    webrtc_turn_servers: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="TURN endpoints exposed to clients.",
    )
    webrtc_turn_username: str | None = Field(default=None, description="Optional TURN username")
    webrtc_turn_credential: str | None = Field(default=None, description="Optional TURN credential")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        if isinstance(value, (tuple, set)):
            return list(value)
        return value

    @field_validator(
        "webrtc_ice_servers",
        "webrtc_stun_servers",
        "webrtc_turn_servers",
        mode="before",
    )
    @classmethod
    def parse_iterable_field(cls, value: Any) -> list[Any] | Any:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return [item.strip() for item in value.split(",") if item.strip()]
            if isinstance(parsed, list):
                return parsed
            return [parsed]
        if isinstance(value, (list, tuple, set)):
            return list(value)
        return [value]

    def _aggregate_ice_servers(self) -> list[IceServer]:
        def coerce_server(entry: Any) -> IceServer | None:
            if isinstance(entry, IceServer):
                return entry
            if isinstance(entry, dict):
                return IceServer.model_validate(entry)
            if isinstance(entry, str):
                return IceServer(urls=[entry])
            if isinstance(entry, Iterable):
                return IceServer(urls=[str(item) for item in entry])
            return None

        servers: list[IceServer] = []
        for item in self.webrtc_ice_servers:
            server = coerce_server(item)
            if server is not None:
                servers.append(server)

        if self.webrtc_stun_servers:
            servers.append(IceServer(urls=list(self.webrtc_stun_servers)))

        if self.webrtc_turn_servers:
            servers.append(
                IceServer(
                    urls=list(self.webrtc_turn_servers),
                    username=self.webrtc_turn_username,
                    credential=self.webrtc_turn_credential,
                )
            )

        if not servers:
            servers.append(IceServer(urls=["stun:stun.l.google.com:19302"]))

        return servers

    @property
    def webrtc_ice_servers_payload(self) -> list[dict[str, Any]]:
        return [
            server.model_dump(mode="json", exclude_none=True)
            for server in self._aggregate_ice_servers()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
