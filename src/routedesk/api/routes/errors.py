"""Translation of engine errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ...services.routes.errors import (
    NotFoundError,
    PersistenceError,
    RouteEngineError,
    SessionStateError,
    ValidationError,
)


def http_error(exc: RouteEngineError) -> HTTPException:
    match exc:
        case NotFoundError():
            return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        case ValidationError():
            return HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"kind": exc.kind, "message": str(exc)},
            )
        case SessionStateError():
            return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
        case PersistenceError():
            return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
