from __future__ import annotations

from fastapi import HTTPException, status

from storekeeper.app.services.exceptions import (
    ConcurrentUpdateError,
    ConflictError,
    NotFoundError,
    StoreError,
)


def to_http_exception(exc: StoreError) -> HTTPException:
    """Map a domain error onto the HTTP status the API reports for it."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ConflictError, ConcurrentUpdateError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
