# backend/services/redis_room_store.py
import json
import logging
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from core.config import settings
from core.exceptions import RoomAlreadyExists, RoomNotFound, StoreWriteFailure
from core.room_state import apply_update
from models.models import PartialUpdate, Room
from services.room_store import RoomStore

logger = logging.getLogger(__name__)

MAX_MERGE_ATTEMPTS = 10


def document_key(room_id: str) -> str:
    return f"room:{room_id}"


def events_channel(room_id: str) -> str:
    return f"room:{room_id}:events"


def _encode_snapshot(room: Optional[Room]) -> str:
    return json.dumps({"room": room.to_document() if room else None})


def _decode_snapshot(raw: str) -> Optional[Room]:
    data = json.loads(raw)
    document = data.get("room")
    return Room.model_validate(document) if document else None


class RedisRoomStore(RoomStore):
    """
    Room documents kept in Redis.

    Layout:
        room:{id}          JSON room document
        room:{id}:events   pub/sub channel, one full snapshot per write

    Merges run as WATCH/MULTI transactions so two writers touching
    different fields never lose each other's change; writers touching the
    same field follow Redis' own ordering (last write wins).
    """

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.url = url or settings.redis_url
        self.client = client

    async def connect(self):
        """Establish async connection to Redis."""
        if self.client is None:
            self.client = redis.from_url(self.url, decode_responses=True)
        await self.client.ping()
        logger.info("✓ Connected to Redis room store")

    async def get(self, room_id: str) -> Optional[Room]:
        raw = await self.client.get(document_key(room_id))
        return Room.model_validate_json(raw) if raw else None

    async def create(self, room_id: str, room: Room) -> Room:
        payload = json.dumps(room.to_document())
        created = await self.client.set(document_key(room_id), payload, nx=True)
        if not created:
            raise RoomAlreadyExists(room_id)

        await self.client.publish(events_channel(room_id), _encode_snapshot(room))
        logger.info(f"✓ Created room {room_id}: {room.name}")
        return room

    async def merge(self, room_id: str, update: PartialUpdate) -> Room:
        key = document_key(room_id)

        for _ in range(MAX_MERGE_ATTEMPTS):
            async with self.client.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if raw is None:
                        raise RoomNotFound(room_id)

                    merged = apply_update(Room.model_validate_json(raw), update)

                    pipe.multi()
                    pipe.set(key, json.dumps(merged.to_document()))
                    pipe.publish(events_channel(room_id), _encode_snapshot(merged))
                    await pipe.execute()
                    logger.info(f"📤 Merged {len(update.writes)} field(s) into room {room_id}")
                    return merged
                except WatchError:
                    logger.info(f"Concurrent write on room {room_id}, retrying merge")
                    continue

        raise StoreWriteFailure(f"Could not merge into room {room_id}: too much contention")

    async def delete(self, room_id: str) -> bool:
        deleted = await self.client.delete(document_key(room_id))
        if not deleted:
            return False

        await self.client.publish(events_channel(room_id), _encode_snapshot(None))
        logger.info(f"✓ Deleted room {room_id}")
        return True

    async def listen(self, room_id: str) -> AsyncIterator[Optional[Room]]:
        """
        Subscribe to the room's channel, then read the current document.

        Subscribing first means no write can slip between the initial read
        and the start of the feed.
        """
        pubsub = self.client.pubsub()
        await pubsub.subscribe(events_channel(room_id))
        logger.info(f"✓ Subscribed to Redis channel '{events_channel(room_id)}'")

        try:
            yield await self.get(room_id)

            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    snapshot = _decode_snapshot(message["data"])
                except ValueError as e:
                    logger.error(f"Error decoding snapshot for room {room_id}: {e}")
                    continue
                yield snapshot
        finally:
            await pubsub.unsubscribe()
            await pubsub.aclose()

    async def close(self):
        """Close connections."""
        if self.client:
            await self.client.aclose()
        logger.info("Redis connection closed")
