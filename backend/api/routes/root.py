# backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "message": "Planning Poker - Session Sync",
        "version": "1.0",
        "features": ["rooms", "secret_cards", "owner_reveal", "seat_resume"],
        "endpoints": {
            "websocket": "/ws/rooms/{room_id}",
            "rooms": "/rooms",
            "cards": "/cards",
            "health": "/health",
        },
    }
