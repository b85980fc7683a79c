# backend/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from core.config import settings
from services.room_store import InMemoryRoomStore, RoomStore
from services.sync_channel import SyncChannel


def build_store() -> RoomStore:
    if settings.ROOM_STORE == "redis":
        from services.redis_room_store import RedisRoomStore
        return RedisRoomStore(url=settings.redis_url)
    return InMemoryRoomStore()


# Global singletons for app state
room_store: RoomStore = build_store()
sync_channel = SyncChannel(room_store)

# Open websocket sessions, for /health
open_sessions: int = 0
app_start_time: datetime = datetime.now(timezone.utc)
