import asyncio

import pytest
from fastapi.testclient import TestClient

from core import state
from models.models import Player, Room
from services.room_store import InMemoryRoomStore
from services.sync_channel import SyncChannel

OWNER_KEY = "ownerA"


@pytest.fixture()
def room():
    return Room(name="Sprint 42", owner_id=OWNER_KEY)


@pytest.fixture()
def seated_room():
    return Room(
        name="Sprint 42",
        owner_id=OWNER_KEY,
        players={
            "p1": Player(name="Alice", card=3),
            "p2": Player(name="Bob", card=5),
            "p3": Player(name="Cara", card=8),
            "p4": Player(name="Dan", card=0),
        },
    )


@pytest.fixture()
def store():
    return InMemoryRoomStore()


@pytest.fixture()
def channel(store):
    return SyncChannel(store)


@pytest.fixture()
def wait_for():
    """Poll until ``predicate()`` is true, failing after ``timeout`` seconds."""

    async def _wait_for(predicate, timeout=2.0):
        async def _poll():
            while not predicate():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)

    return _wait_for


@pytest.fixture()
def app_store(monkeypatch):
    app_store = InMemoryRoomStore()
    monkeypatch.setattr(state, "room_store", app_store)
    monkeypatch.setattr(state, "sync_channel", SyncChannel(app_store))
    return app_store


@pytest.fixture()
def client(app_store):
    from main import app

    # One portal for every request so the in-memory store lives on one loop
    with TestClient(app) as test_client:
        yield test_client
