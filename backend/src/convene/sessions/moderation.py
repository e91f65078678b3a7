"""Global block and suspension lists."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict

from .errors import ModerationError, ValidationError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Block:
    participant_id: str
    reason: str | None
    created_at: datetime

    def to_public(self) -> dict[str, str | None]:
        return {
            "reason": self.reason,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Suspension:
    participant_id: str
    reason: str | None
    created_at: datetime
    expires_at: datetime

    def active_at(self, now: datetime) -> bool:
        return now < self.expires_at

    def to_public(self) -> dict[str, str | None]:
        return {
            "reason": self.reason,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }


class ModerationStore:
    """Blocks are permanent until lifted; suspensions expire lazily.

    Nothing sweeps expired suspensions. Every predicate compares against the
    clock at call time, and stale entries are dropped when they are read.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._blocks: Dict[str, Block] = {}
        self._suspensions: Dict[str, Suspension] = {}

    def now(self) -> datetime:
        return self._clock()

    # Blocks ----------------------------------------------------------------
    def block(self, participant_id: str, reason: str | None = None) -> Block:
        existing = self._blocks.get(participant_id)
        if existing is not None:
            return existing
        entry = Block(participant_id=participant_id, reason=reason, created_at=self._clock())
        self._blocks[participant_id] = entry
        logger.info("Participant blocked", extra={"participant": participant_id, "reason": reason})
        return entry

    def unblock(self, participant_id: str) -> bool:
        removed = self._blocks.pop(participant_id, None) is not None
        if removed:
            logger.info("Participant unblocked", extra={"participant": participant_id})
        return removed

    def is_blocked(self, participant_id: str) -> bool:
        return participant_id in self._blocks

    # Suspensions -------------------------------------------------------------
    def suspend(self, participant_id: str, minutes: float, reason: str | None = None) -> Suspension:
        if minutes <= 0:
            raise ValidationError("Suspension length must be positive")
        now = self._clock()
        entry = Suspension(
            participant_id=participant_id,
            reason=reason,
            created_at=now,
            expires_at=now + timedelta(minutes=minutes),
        )
        self._suspensions[participant_id] = entry
        logger.info(
            "Participant suspended",
            extra={"participant": participant_id, "expires_at": entry.expires_at.isoformat()},
        )
        return entry

    def lift_suspension(self, participant_id: str) -> bool:
        return self._suspensions.pop(participant_id, None) is not None

    def suspension(self, participant_id: str, now: datetime | None = None) -> Suspension | None:
        entry = self._suspensions.get(participant_id)
        if entry is None:
            return None
        if entry.active_at(now or self._clock()):
            return entry
        self._suspensions.pop(participant_id, None)
        return None

    def is_suspended(self, participant_id: str, now: datetime | None = None) -> bool:
        return self.suspension(participant_id, now) is not None

    # Enforcement ----------------------------------------------------------
    def check(self, participant_id: str, now: datetime | None = None) -> None:
        """Raise :class:`ModerationError` when the identity may not join."""

        if self.is_blocked(participant_id):
            raise ModerationError(
                "You have been blocked from joining meetings", reason="blocked"
            )
        entry = self.suspension(participant_id, now)
        if entry is not None:
            raise ModerationError(
                f"Your account is suspended until {entry.expires_at.isoformat()}",
                reason="suspended",
            )

    def status(self, participant_id: str) -> dict[str, object]:
        block = self._blocks.get(participant_id)
        suspension = self.suspension(participant_id)
        return {
            "userId": participant_id,
            "blocked": block is not None,
            "block": block.to_public() if block else None,
            "suspended": suspension is not None,
            "suspension": suspension.to_public() if suspension else None,
        }


__all__ = ["Block", "Suspension", "ModerationStore", "Clock", "utcnow"]
