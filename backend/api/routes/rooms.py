# backend/api/routes/rooms.py

import uuid
from typing import List

from fastapi import APIRouter, HTTPException, Query

from models.models import CreateRoomRequest, Room
from core import state
from core.config import settings
from core.exceptions import InvalidInput, PokerException
from services.card_deck import generate
from services.identity_binder import make_key, split_key
from api.routes.utils import to_http_exception

router = APIRouter()

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.post("/rooms", status_code=201)
async def create_room(request: CreateRoomRequest):
    """
    Create a planning poker room.

    The owner is given either as a raw id (``"ownerA"``), which is bound to
    the new room as ``ownerA_<room_id>``, or as a participant key already
    bound to this room. Only that key can later reveal or reset the room.

    Args:
        request: CreateRoomRequest with name, owner_id and an optional id

    Returns:
        dict: room_id, the owner's participant key and the stored room document

    Raises:
        HTTPException: 400 if name or owner is blank or the owner key belongs
            to another room, 409 if the id is taken
    """
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Room name required")
    if not request.owner_id.strip():
        raise HTTPException(status_code=400, detail="Room owner required")

    room_id = request.id or uuid.uuid4().hex

    try:
        owner_key = _owner_key(request.owner_id.strip(), room_id)
        room = Room(name=request.name.strip(), owner_id=owner_key)
        await state.room_store.create(room_id, room)
    except PokerException as e:
        raise to_http_exception(e)

    return {"room_id": room_id, "owner_key": owner_key, "room": room.to_document()}


def _owner_key(owner_id: str, room_id: str) -> str:
    raw_id, key_room_id = split_key(owner_id)
    if key_room_id and key_room_id != room_id:
        raise InvalidInput(f"Owner key is bound to another room than {room_id}")
    return make_key(raw_id, room_id)


@router.get("/rooms/{room_id}")
async def get_room(room_id: str):
    """
    Get the current document of a room.

    Raises:
        HTTPException: 404 if room not found
    """
    try:
        room = await state.sync_channel.get(room_id)
    except PokerException as e:
        raise to_http_exception(e)

    return room.to_document()


@router.delete("/rooms/{room_id}")
async def delete_room(room_id: str):
    """
    Delete a room.

    Every open subscription on the room receives a not-found signal and
    closes.
    """
    deleted = await state.room_store.delete(room_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Room not found")

    return {"status": "deleted", "room_id": room_id}


@router.get("/cards", response_model=List[float])
async def list_cards(
    start: float = Query(default=settings.CARD_START, gt=0, le=1000),
    limit: float = Query(default=settings.CARD_LIMIT, gt=0, le=1000),
):
    return list(generate(start, limit))
