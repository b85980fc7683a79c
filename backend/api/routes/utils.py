# backend/api/routes/utils.py

from __future__ import annotations

from fastapi import HTTPException

from core.exceptions import (
    CardsFrozen,
    InvalidInput,
    PlayerNotFound,
    PokerException,
    RoomAlreadyExists,
    RoomNotFound,
    StoreWriteFailure,
    Unauthorized,
)

STATUS_CODES = {
    InvalidInput: 400,
    Unauthorized: 403,
    RoomNotFound: 404,
    PlayerNotFound: 404,
    RoomAlreadyExists: 409,
    CardsFrozen: 409,
    StoreWriteFailure: 502,
}


def to_http_exception(exc: PokerException) -> HTTPException:
    """
    Translate a domain error into the HTTP error the routes return.

    Unknown PokerException subclasses fall back to 400.
    """
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def error_message(exc: PokerException) -> dict:
    """Websocket counterpart of ``to_http_exception``."""
    return {"type": "error", "code": exc.code, "message": str(exc)}
