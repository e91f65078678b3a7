"""Read and force-end live rooms."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from app.api.deps import Coordinator, http_error
from convene.sessions.errors import SessionError

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("/active")
async def list_active_rooms(coordinator: Coordinator) -> dict[str, Any]:
    rooms = coordinator.active_rooms()
    return {"rooms": rooms, "count": len(rooms)}


@router.get("/{room_id}")
async def read_room(room_id: str, coordinator: Coordinator) -> dict[str, Any]:
    try:
        return coordinator.room_summary(room_id)
    except SessionError as exc:
        raise http_error(exc) from exc


@router.post("/{room_id}/end")
async def end_room(room_id: str, coordinator: Coordinator) -> dict[str, Any]:
    """Force-end a live room; every participant receives ``room-ended``."""

    try:
        summary = coordinator.force_end_room(room_id)
    except SessionError as exc:
        raise http_error(exc) from exc
    return {"success": True, "room": summary}
