# backend/services/room_store.py

from __future__ import annotations

import abc
import asyncio
import logging
from typing import AsyncIterator, Dict, Optional, Set

from core.exceptions import RoomAlreadyExists, RoomNotFound
from core.room_state import apply_update
from models.models import PartialUpdate, Room

logger = logging.getLogger(__name__)


# ============================================================================
# SHARED STORE CONTRACT
# ============================================================================

class RoomStore(abc.ABC):
    """
    The authoritative copy of every room.

    Writes are field-level merges, never whole-document replacements, and
    every change is pushed to listeners as a full snapshot.
    """

    @abc.abstractmethod
    async def get(self, room_id: str) -> Optional[Room]:
        """Return the current room, or None if it does not exist."""

    @abc.abstractmethod
    async def create(self, room_id: str, room: Room) -> Room:
        """Store a new room. Raises RoomAlreadyExists."""

    @abc.abstractmethod
    async def merge(self, room_id: str, update: PartialUpdate) -> Room:
        """Apply a partial update and return the merged room. Raises RoomNotFound."""

    @abc.abstractmethod
    async def delete(self, room_id: str) -> bool:
        """Delete a room. Returns False if it did not exist."""

    @abc.abstractmethod
    def listen(self, room_id: str) -> AsyncIterator[Optional[Room]]:
        """
        Yield the current room, then the full room after every change.

        None is yielded while the room is missing or once it is deleted.
        """

    async def close(self) -> None:
        return None


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class InMemoryRoomStore(RoomStore):
    """
    Single-process store used for development and tests.

    Data Structures:
        rooms: Maps room_id -> Room
        listeners: Maps room_id -> Set of queues, one per active listen()
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Room] = {}
        self.listeners: Dict[str, Set[asyncio.Queue]] = {}

    async def get(self, room_id: str) -> Optional[Room]:
        room = self.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def create(self, room_id: str, room: Room) -> Room:
        if room_id in self.rooms:
            raise RoomAlreadyExists(room_id)

        self.rooms[room_id] = room.model_copy(deep=True)
        logger.info(f"✓ Created room {room_id}: {room.name}")
        self._notify(room_id)
        return room

    async def merge(self, room_id: str, update: PartialUpdate) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)

        merged = apply_update(room, update)
        self.rooms[room_id] = merged
        self._notify(room_id)
        return merged.model_copy(deep=True)

    async def delete(self, room_id: str) -> bool:
        if room_id not in self.rooms:
            return False

        del self.rooms[room_id]
        logger.info(f"✓ Deleted room {room_id}")
        self._notify(room_id)
        return True

    async def listen(self, room_id: str) -> AsyncIterator[Optional[Room]]:
        queue: asyncio.Queue = asyncio.Queue()
        self.listeners.setdefault(room_id, set()).add(queue)

        try:
            yield await self.get(room_id)
            while True:
                yield await queue.get()
        finally:
            queues = self.listeners.get(room_id)
            if queues is not None:
                queues.discard(queue)
                if not queues:
                    del self.listeners[room_id]

    def _notify(self, room_id: str) -> None:
        queues = self.listeners.get(room_id)
        if not queues:
            return

        room = self.rooms.get(room_id)
        for queue in queues:
            queue.put_nowait(room.model_copy(deep=True) if room else None)
