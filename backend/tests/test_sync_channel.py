import asyncio

import pytest

from core import room_state
from core.exceptions import InvalidInput, RoomAlreadyExists, RoomNotFound, StoreWriteFailure
from models.models import PartialUpdate, Room
from services.room_store import InMemoryRoomStore
from services.sync_channel import SyncChannel


def run(coro):
    return asyncio.run(coro)


def test_first_snapshot_is_current_room(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        snapshots = []

        async with channel.subscribe("r1", snapshots.append, lambda: None):
            await wait_for(lambda: len(snapshots) == 1)

        assert snapshots[0] == room

    run(scenario())


def test_snapshots_follow_every_write(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        snapshots = []

        async with channel.subscribe("r1", snapshots.append, lambda: None):
            await wait_for(lambda: len(snapshots) == 1)

            await channel.publish("r1", room_state.join(room, "Alice", "p1"))
            await wait_for(lambda: len(snapshots) == 2)
            await channel.publish("r1", room_state.reveal(room, "ownerA", True))
            await wait_for(lambda: len(snapshots) == 3)

        assert list(snapshots[1].players) == ["p1"]
        assert snapshots[1].revealed is False
        assert snapshots[2].revealed is True
        assert list(snapshots[2].players) == ["p1"]

    run(scenario())


def test_every_subscriber_sees_other_clients_writes(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        alice, bob = [], []

        async with channel.subscribe("r1", alice.append, lambda: None), \
                channel.subscribe("r1", bob.append, lambda: None):
            await wait_for(lambda: len(alice) == 1 and len(bob) == 1)
            await channel.publish("r1", room_state.join(room, "Bob", "p2"))
            await wait_for(lambda: len(alice) == 2 and len(bob) == 2)

        assert alice[-1] == bob[-1]
        assert alice[-1].players["p2"].name == "Bob"

    run(scenario())


def test_missing_room_is_terminal(channel, wait_for):
    async def scenario():
        snapshots, missing = [], []

        subscription = channel.subscribe("nowhere", snapshots.append, lambda: missing.append(True))
        await asyncio.wait_for(subscription.wait_closed(), 2)

        assert missing == [True]
        assert snapshots == []
        assert not subscription.active

    run(scenario())


def test_deleted_room_reports_missing(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        snapshots, missing = [], []

        async def on_missing():
            missing.append(True)

        subscription = channel.subscribe("r1", snapshots.append, on_missing)
        await wait_for(lambda: len(snapshots) == 1)

        await store.delete("r1")
        await asyncio.wait_for(subscription.wait_closed(), 2)

        assert missing == [True]
        assert store.listeners == {}

    run(scenario())


def test_missing_handler_error_is_contained(channel):
    async def scenario():
        def on_missing():
            raise RuntimeError("render failed")

        subscription = channel.subscribe("nowhere", lambda snapshot: None, on_missing)
        await asyncio.wait_for(subscription.wait_closed(), 2)

        assert not subscription.active
        assert subscription._task.exception() is None

    run(scenario())


def test_cancel_releases_listener(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        snapshots = []

        subscription = channel.subscribe("r1", snapshots.append, lambda: None)
        await wait_for(lambda: len(snapshots) == 1)
        assert subscription.active
        assert len(store.listeners["r1"]) == 1

        await subscription.cancel()
        await subscription.cancel()

        assert not subscription.active
        assert store.listeners == {}

        await channel.publish("r1", room_state.join(room, "Alice", "p1"))
        await asyncio.sleep(0.05)
        assert len(snapshots) == 1

    run(scenario())


def test_handler_error_does_not_stop_feed(store, channel, room, wait_for):
    async def scenario():
        await store.create("r1", room)
        seen = []

        def on_snapshot(snapshot):
            seen.append(snapshot)
            if len(seen) == 1:
                raise RuntimeError("render failed")

        async with channel.subscribe("r1", on_snapshot, lambda: None):
            await wait_for(lambda: len(seen) == 1)
            await channel.publish("r1", room_state.join(room, "Alice", "p1"))
            await wait_for(lambda: len(seen) == 2)

    run(scenario())


def test_concurrent_card_writes_do_not_clobber(store, channel, wait_for):
    async def scenario():
        room = Room(name="r", owner_id="ownerA")
        await store.create("r1", room)
        await channel.publish("r1", room_state.join(room, "Alice", "p1"))
        await channel.publish("r1", room_state.join(room, "Bob", "p2"))
        seated = await channel.get("r1")

        # both updates are computed from the same stale snapshot
        await asyncio.gather(
            channel.publish("r1", room_state.select_card(seated, "p1", 3)),
            channel.publish("r1", room_state.select_card(seated, "p2", 8)),
        )

        final = await channel.get("r1")
        assert final.players["p1"].card == 3
        assert final.players["p2"].card == 8

    run(scenario())


def test_publish_to_missing_room(channel):
    with pytest.raises(RoomNotFound):
        run(channel.publish("nowhere", PartialUpdate().set("revealed", value=True)))


def test_publish_wraps_store_errors(room):
    class BrokenStore(InMemoryRoomStore):
        async def merge(self, room_id, update):
            raise ConnectionError("store unreachable")

    channel = SyncChannel(BrokenStore())
    with pytest.raises(StoreWriteFailure):
        run(channel.publish("r1", PartialUpdate().set("revealed", value=True)))
    assert channel.published == 0


def test_publish_wraps_rejected_updates(store, channel, room):
    async def scenario():
        await store.create("r1", room)
        with pytest.raises(StoreWriteFailure) as excinfo:
            await channel.publish("r1", PartialUpdate(writes=[{"path": (), "value": 1}]))
        assert isinstance(excinfo.value.__cause__, InvalidInput)

    run(scenario())


def test_get_missing_room(channel):
    with pytest.raises(RoomNotFound):
        run(channel.get("nowhere"))


def test_create_twice(store, room):
    async def scenario():
        await store.create("r1", room)
        with pytest.raises(RoomAlreadyExists):
            await store.create("r1", room)

    run(scenario())


def test_store_returns_copies(store, room):
    async def scenario():
        await store.create("r1", room)
        copy = await store.get("r1")
        copy.revealed = True
        assert (await store.get("r1")).revealed is False

    run(scenario())
