"""Global block and suspension management."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from app.api.deps import Coordinator, http_error
from app.schemas.moderation import BlockCreate, SuspensionCreate
from convene.sessions.errors import NotFoundError, SessionError

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.get("/{user_id}")
async def read_moderation_status(user_id: str, coordinator: Coordinator) -> dict[str, Any]:
    return coordinator.moderation.status(user_id)


@router.post("/blocks", status_code=status.HTTP_201_CREATED)
async def create_block(payload: BlockCreate, coordinator: Coordinator) -> dict[str, Any]:
    """Block an identity and remove it from every room it is seated in."""

    coordinator.block(payload.user_id, reason=payload.reason)
    return coordinator.moderation.status(payload.user_id)


@router.delete("/blocks/{user_id}")
async def delete_block(user_id: str, coordinator: Coordinator) -> dict[str, Any]:
    if not coordinator.unblock(user_id):
        raise http_error(NotFoundError("User is not blocked"))
    return coordinator.moderation.status(user_id)


@router.post("/suspensions", status_code=status.HTTP_201_CREATED)
async def create_suspension(payload: SuspensionCreate, coordinator: Coordinator) -> dict[str, Any]:
    try:
        coordinator.suspend(payload.user_id, payload.minutes, reason=payload.reason)
    except SessionError as exc:
        raise http_error(exc) from exc
    return coordinator.moderation.status(payload.user_id)


@router.delete("/suspensions/{user_id}")
async def delete_suspension(user_id: str, coordinator: Coordinator) -> dict[str, Any]:
    if not coordinator.lift_suspension(user_id):
        raise http_error(NotFoundError("User is not suspended"))
    return coordinator.moderation.status(user_id)
