"""Translate event failures into HTTP errors."""
from fastapi import HTTPException

from capture.events.errors import (
    EncodingFailed,
    EventError,
    NoLoadedEvent,
    NotFound,
    Unauthenticated,
    Unauthorized,
)

STATUS_CODES = {
    Unauthenticated: 401,
    Unauthorized: 403,
    NotFound: 404,
    EncodingFailed: 400,
    NoLoadedEvent: 409,
}


def http_error(error: EventError) -> HTTPException:
    """HTTPException for ``error``. Storage and transport failures map to 502."""
    status_code = next(
        (code for kind, code in STATUS_CODES.items() if isinstance(error, kind)), 502
    )
    return HTTPException(status_code=status_code, detail=error.message)
