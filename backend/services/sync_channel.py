# backend/services/sync_channel.py

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from core.exceptions import PokerException, RoomNotFound, StoreWriteFailure
from models.models import PartialUpdate, Room
from services.room_store import RoomStore

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Room], Union[None, Awaitable[None]]]
MissingCallback = Callable[[], Union[None, Awaitable[None]]]


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


# ============================================================================
# SUBSCRIPTION
# ============================================================================

class Subscription:
    """
    One live feed from the store to one consumer.

    A single task drains the store's change feed and invokes the callbacks
    in order, so two snapshots for the same subscription are never handled
    at the same time. Use as an async context manager, or call ``cancel``
    when the consumer stops observing the room.
    """

    def __init__(
        self,
        store: RoomStore,
        room_id: str,
        on_snapshot: SnapshotCallback,
        on_missing: MissingCallback,
    ) -> None:
        self.store = store
        self.room_id = room_id
        self.on_snapshot = on_snapshot
        self.on_missing = on_missing
        self.delivered = 0
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "Subscription":
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"subscription:{self.room_id}")
        return self

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        feed = self.store.listen(self.room_id)
        try:
            async for snapshot in feed:
                if snapshot is None:
                    logger.info("Room %s not found - closing subscription", self.room_id)
                    try:
                        await _call(self.on_missing)
                    except Exception:
                        logger.exception("Missing-room handler failed for room %s", self.room_id)
                    return

                self.delivered += 1
                try:
                    await _call(self.on_snapshot, snapshot)
                except Exception:
                    # keep the feed alive for later snapshots
                    logger.exception("Snapshot handler failed for room %s", self.room_id)
        finally:
            await feed.aclose()

    async def cancel(self) -> None:
        if self._task is None or self._task.done():
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.info("✗ Subscription to room %s cancelled", self.room_id)

    async def wait_closed(self) -> None:
        """Wait until the feed ends on its own (room missing or deleted)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def __aenter__(self) -> "Subscription":
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()


# ============================================================================
# SYNC CHANNEL
# ============================================================================

class SyncChannel:
    """
    Bridge between local room state and the shared store.

    Flow:
        1. subscribe(room_id, ...) opens a Subscription; the first delivery
           is the current room, then one full snapshot per change
        2. publish(room_id, update) sends a field-level merge to the store
        3. The caller sees its own write in the next snapshot; nothing is
           applied locally in advance
    """

    def __init__(self, store: RoomStore) -> None:
        self.store = store
        self.published = 0

    def subscribe(
        self,
        room_id: str,
        on_snapshot: SnapshotCallback,
        on_missing: MissingCallback,
    ) -> Subscription:
        """
        Start observing a room.

        Must be called from a running event loop. The returned
        Subscription is already running; ``async with`` on it only adds
        guaranteed cancellation.
        """
        logger.info("→ Subscribing to room %s", room_id)
        return Subscription(self.store, room_id, on_snapshot, on_missing).start()

    async def publish(self, room_id: str, update: PartialUpdate) -> Room:
        """
        Merge a partial update into the shared room.

        Returns:
            The merged room as acknowledged by the store

        Raises:
            RoomNotFound: the room does not exist
            StoreWriteFailure: the store rejected or failed the write
        """
        try:
            merged = await self.store.merge(room_id, update)
        except (RoomNotFound, StoreWriteFailure):
            raise
        except PokerException as e:
            raise StoreWriteFailure(str(e)) from e
        except Exception as e:
            logger.error("Publish to room %s failed: %s", room_id, e)
            raise StoreWriteFailure(f"Could not update room {room_id}") from e

        self.published += 1
        logger.info("📨 Published %d field(s) to room %s", len(update.writes), room_id)
        return merged

    async def get(self, room_id: str) -> Room:
        room = await self.store.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room
