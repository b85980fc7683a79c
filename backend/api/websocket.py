# backend/api/websocket.py

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from core import state
from core.config import settings
from core.exceptions import InvalidInput, PokerException
from services.card_deck import generate
from services.identity_binder import IdentityBinder, InMemoryKeyValueStore
from services.room_session import RoomSession
from api.routes.utils import error_message

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws/rooms/{room_id}")
async def room_websocket(websocket: WebSocket, room_id: str, user_key: Optional[str] = None):
    """
    Real-time room endpoint: one RoomSession per connection.

    Protocol:
    =========

    Client -> Server Actions:
    -------------------------
    Join:
        {"action": "join", "name": "Alice", "user_id": "<optional signed-in id>"}
        Response: {"type": "identity", "user_key": "<raw>_<room_id>"}

    Pick a card:
        {"action": "select_card", "value": 5}

    Show / hide the result (owner only):
        {"action": "reveal", "show": true}
        {"action": "toggle_reveal"}

    Clear all cards and hide the result (owner only):
        {"action": "reset"}

    Server -> Client Messages:
    --------------------------
    Snapshot, after every change of the room:
        {"type": "snapshot", "room": {...RoomView...}}

    Room missing or deleted:
        {"type": "not_found"}

    Error:
        {"type": "error", "code": "...", "message": "..."}

    Lifecycle:
    ==========
    1. Client connects, passing the participant key it stored earlier
       as ``user_key``; a key bound to another room is ignored
    2. Client receives the current room, then one snapshot per change
    3. Actions are validated against the last snapshot, then published
    4. On disconnect the room subscription is cancelled

    Hidden cards are masked per viewer before they leave the server.
    """
    await websocket.accept()

    initial = {settings.IDENTITY_SLOT: user_key} if user_key else {}
    binder = IdentityBinder(InMemoryKeyValueStore(initial), slot=settings.IDENTITY_SLOT)

    async def push(session: RoomSession) -> None:
        if session.not_found:
            await websocket.send_json({"type": "not_found", "room_id": room_id})
            return

        view = session.view()
        if view is not None:
            await websocket.send_json({"type": "snapshot", "room": view.model_dump(mode="json")})

    session = RoomSession(
        room_id,
        state.sync_channel,
        binder,
        deck=generate(settings.CARD_START, settings.CARD_LIMIT),
        on_change=push,
    )
    state.open_sessions += 1

    try:
        async with session:
            while True:
                data = await websocket.receive_text()

                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({"type": "error", "code": "invalid_json", "message": "Invalid JSON"})
                    continue

                action = message.get("action") if isinstance(message, dict) else None
                logger.info(f"Websocket input: room={room_id}, action={action}")

                try:
                    await _dispatch(websocket, session, action, message, push)
                except PokerException as e:
                    logger.info(f"Rejected {action} on room {room_id}: {e}")
                    await websocket.send_json(error_message(e))

    except WebSocketDisconnect:
        logger.info("✗ Client left room %s", room_id)
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        state.open_sessions -= 1


async def _dispatch(websocket: WebSocket, session: RoomSession, action, message: dict, push) -> None:
    if action == "join":
        key = await session.join(message.get("name") or "", message.get("user_id"))
        await websocket.send_json({"type": "identity", "user_key": key})
        await push(session)

    elif action == "select_card":
        value = message.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInput("Card value must be a number")
        await session.pick_card(value)

    elif action == "reveal":
        show = message.get("show")
        if not isinstance(show, bool):
            raise InvalidInput("show must be true or false")
        await session.reveal(show)

    elif action == "toggle_reveal":
        await session.toggle_reveal()

    elif action == "reset":
        await session.reset()

    else:
        await websocket.send_json(
            {
                "type": "error",
                "code": "unknown_action",
                "message": f"Unknown action: {action}",
            }
        )
