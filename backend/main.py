# backend/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import state
from core.config import settings
from core.logging import setup_logging, get_logger
from services.redis_room_store import RedisRoomStore
from api.routes import root, health, rooms
from api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Planning Poker - Session Sync")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(rooms.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Application starting - room store: {settings.ROOM_STORE}")

    if isinstance(state.room_store, RedisRoomStore):
        await state.room_store.connect()


@app.on_event("shutdown")
async def on_shutdown():
    await state.room_store.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
