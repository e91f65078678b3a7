"""FastAPI dependencies for the API layer."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from convene.realtime.managers import SessionCoordinator
from convene.sessions.errors import (
    AuthorizationError,
    CapacityError,
    ModerationError,
    NotFoundError,
    SessionError,
)


def get_coordinator(request: Request) -> SessionCoordinator:
    """Return the coordinator owned by the running application."""

    return request.app.state.coordinator


Coordinator = Annotated[SessionCoordinator, Depends(get_coordinator)]


_STATUS_BY_ERROR: tuple[tuple[type[SessionError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ModerationError, status.HTTP_403_FORBIDDEN),
    (CapacityError, status.HTTP_409_CONFLICT),
)


def http_error(exc: SessionError) -> HTTPException:
    """Translate a session error into the matching HTTP error."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
