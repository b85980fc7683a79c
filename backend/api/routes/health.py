# backend/api/routes/health.py

from datetime import datetime, timezone

from fastapi import APIRouter

from core import state
from core.config import settings

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current status, the store in use, open websocket sessions and
    the number of updates published since startup.
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()

    return {
        "status": "healthy",
        "room_store": settings.ROOM_STORE,
        "open_sessions": state.open_sessions,
        "updates_published": state.sync_channel.published,
        "uptime_hours": round(uptime_seconds / 3600, 2),
    }
