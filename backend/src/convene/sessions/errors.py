"""Error taxonomy shared by the session core and its boundaries."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for recoverable, per-event failures.

    ``reason`` is the short machine readable code sent back to clients in
    ``join-rejected`` and ``error`` frames.
    """

    reason = "error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class ValidationError(SessionError):
    """Raised when an inbound payload or requested transition is malformed."""

    reason = "validation"


class CapacityError(SessionError):
    """Raised when a room already holds ``max_participants`` members."""

    reason = "capacity"


class AuthorizationError(SessionError):
    """Raised on password mismatch or when the actor lacks a capability."""

    reason = "forbidden"


class ModerationError(SessionError):
    """Raised for blocked or suspended identities."""

    reason = "blocked"


class NotFoundError(SessionError):
    """Raised when a room or participant cannot be resolved."""

    reason = "not-found"


__all__ = [
    "SessionError",
    "ValidationError",
    "CapacityError",
    "AuthorizationError",
    "ModerationError",
    "NotFoundError",
]
