"""Meeting bridge: link scheduled meetings to rooms and drive their status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from app.api.deps import Coordinator, http_error
from app.schemas.meetings import MeetingCreate
from convene.sessions.errors import NotFoundError, SessionError

router = APIRouter(prefix="/meetings", tags=["meetings"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_meeting(payload: MeetingCreate, coordinator: Coordinator) -> dict[str, Any]:
    snapshot = coordinator.meetings.register(payload.to_snapshot())
    return snapshot.to_public()


@router.get("/room/{room_id}")
async def read_meeting_for_room(room_id: str, coordinator: Coordinator) -> dict[str, Any]:
    snapshot = coordinator.meetings.find_by_room(room_id)
    if snapshot is None:
        raise http_error(NotFoundError("No meeting is linked to this room"))
    return snapshot.to_public()


@router.get("/{meeting_id}")
async def read_meeting(meeting_id: str, coordinator: Coordinator) -> dict[str, Any]:
    try:
        return coordinator.meetings.get(meeting_id).to_public()
    except SessionError as exc:
        raise http_error(exc) from exc


@router.post("/{meeting_id}/start")
async def start_meeting(meeting_id: str, coordinator: Coordinator) -> dict[str, Any]:
    """Mark a meeting active; its room materialises on the first join."""

    try:
        snapshot = coordinator.meetings.mark_started(meeting_id)
    except SessionError as exc:
        raise http_error(exc) from exc
    return {"success": True, "meeting": snapshot.to_public()}


@router.post("/{meeting_id}/end")
async def end_meeting(meeting_id: str, coordinator: Coordinator) -> dict[str, Any]:
    """Mark a meeting ended and tear down its live room, if any."""

    try:
        snapshot = coordinator.meetings.mark_ended(meeting_id)
    except SessionError as exc:
        raise http_error(exc) from exc
    return {"success": True, "meeting": snapshot.to_public()}


@router.delete("/{meeting_id}")
async def cancel_meeting(meeting_id: str, coordinator: Coordinator) -> dict[str, Any]:
    """Cancel a meeting; a live room is closed and later joins are refused."""

    try:
        snapshot = coordinator.meetings.mark_cancelled(meeting_id)
    except SessionError as exc:
        raise http_error(exc) from exc
    return {"success": True, "meeting": snapshot.to_public()}
