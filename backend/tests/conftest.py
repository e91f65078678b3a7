"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from convene.realtime.managers import SessionCoordinator


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


class RecordingSender:
    """Outbound sender that keeps every frame per connection."""

    def __init__(self) -> None:
        self.frames: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.closed: set[str] = set()

    def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        if connection_id in self.closed:
            return False
        self.frames[connection_id].append(payload)
        return True

    def events(self, connection_id: str) -> list[str]:
        return [frame["type"] for frame in self.frames.get(connection_id, [])]

    def of_type(self, connection_id: str, event: str) -> list[dict[str, Any]]:
        return [frame for frame in self.frames.get(connection_id, []) if frame["type"] == event]

    def last(self, connection_id: str, event: str) -> dict[str, Any]:
        matches = self.of_type(connection_id, event)
        assert matches, f"{connection_id} never received {event}: {self.events(connection_id)}"
        return matches[-1]

    def clear(self) -> None:
        self.frames.clear()


def make_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def coordinator(settings, sender, clock) -> SessionCoordinator:
    """Coordinator wired to an in-memory sender and a fake clock."""

    return SessionCoordinator(settings, hub=sender, clock=clock)


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """Yield a TestClient for an application with its own coordinator."""

    application = create_app(
        make_settings(
            websocket_keepalive_timeout_seconds=0,
            websocket_keepalive_ping_interval_seconds=0,
        )
    )
    with TestClient(application) as test_client:
        yield test_client
