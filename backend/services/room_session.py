# backend/services/room_session.py

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional, Sequence

from core import room_state
from core.exceptions import PlayerNotFound, RoomNotFound
from models.models import Room, RoomView
from services import average_calculator
from services.card_deck import generate
from services.identity_binder import IdentityBinder, make_key, new_raw_id
from services.sync_channel import Subscription, SyncChannel

logger = logging.getLogger(__name__)


class RoomSession:
    """
    One client's view of one room.

    Lifecycle:
        1. open(): resolve the stored participant key, subscribe to the room
        2. every snapshot replaces ``room``; a revealed snapshot recomputes
           ``average``
        3. join / pick_card / reveal / reset validate against the last
           observed room and publish the resulting update
        4. close(): cancel the subscription

    Nothing is applied locally before the store confirms it: the view only
    changes when the next snapshot arrives.
    """

    def __init__(
        self,
        room_id: str,
        channel: SyncChannel,
        binder: IdentityBinder,
        deck: Optional[Sequence[float]] = None,
        on_change: Optional[Callable[["RoomSession"], Any]] = None,
    ) -> None:
        self.room_id = room_id
        self.channel = channel
        self.binder = binder
        self.deck = tuple(deck) if deck is not None else generate()
        self.on_change = on_change

        self.room: Optional[Room] = None
        self.user_key: Optional[str] = None
        self.average: Optional[float] = None
        self.loading = True
        self.not_found = False
        self.snapshots = 0
        self.subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> "RoomSession":
        self.user_key = self.binder.resolve(self.room_id)
        if self.subscription is None:
            self.subscription = self.channel.subscribe(
                self.room_id, self._on_snapshot, self._on_missing
            )
        return self

    async def close(self) -> None:
        if self.subscription is not None:
            await self.subscription.cancel()
            self.subscription = None

    async def __aenter__(self) -> "RoomSession":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # reconciliation
    # ------------------------------------------------------------------

    async def _on_snapshot(self, room: Room) -> None:
        self.room = room
        self.snapshots += 1
        self.loading = False

        if room_state.average_eligible(room):
            self.average = average_calculator.compute(room)

        await self._changed()

    async def _on_missing(self) -> None:
        self.not_found = True
        self.loading = False
        await self._changed()

    async def _changed(self) -> None:
        if self.on_change is None:
            return
        result = self.on_change(self)
        if inspect.isawaitable(result):
            await result

    def view(self) -> Optional[RoomView]:
        if self.room is None:
            return None
        return room_state.room_view(self.room, self.user_key)

    @property
    def joined(self) -> bool:
        return (
            self.room is not None
            and self.user_key is not None
            and self.user_key in self.room.players
        )

    @property
    def is_owner(self) -> bool:
        return self.room is not None and self.user_key == self.room.owner_id

    def _observed(self) -> Room:
        if self.room is None:
            raise RoomNotFound(self.room_id)
        return self.room

    # ------------------------------------------------------------------
    # actions
    # ------------------------------------------------------------------

    async def join(self, name: str, authenticated_id: Optional[str] = None) -> str:
        """
        Take a seat and remember it.

        The key is persisted only once the store accepted the join, so a
        failed write leaves the client unbound.

        Returns:
            The new participant key
        """
        room = self._observed()
        raw_id = new_raw_id(authenticated_id)
        key = make_key(raw_id, self.room_id)

        update = room_state.join(room, name, key)
        await self.channel.publish(self.room_id, update)

        self.user_key = self.binder.bind(raw_id, self.room_id)
        logger.info("→ Joined room %s", self.room_id)
        return self.user_key

    async def pick_card(self, value: float) -> None:
        room = self._observed()
        if self.user_key is None:
            raise PlayerNotFound(None)

        update = room_state.select_card(room, self.user_key, value, self.deck)
        await self.channel.publish(self.room_id, update)

    async def reveal(self, show: bool) -> None:
        update = room_state.reveal(self._observed(), self.user_key, show)
        await self.channel.publish(self.room_id, update)

    async def toggle_reveal(self) -> None:
        room = self._observed()
        await self.reveal(not room.revealed)

    async def reset(self) -> None:
        update = room_state.reset(self._observed(), self.user_key)
        await self.channel.publish(self.room_id, update)
