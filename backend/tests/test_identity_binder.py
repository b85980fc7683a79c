import pytest

from core.exceptions import InvalidInput
from services.identity_binder import (
    IdentityBinder,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    new_raw_id,
    split_key,
)


def test_resolve_without_binding():
    binder = IdentityBinder(InMemoryKeyValueStore())
    assert binder.resolve("roomA") is None


def test_resolve_matching_room():
    binder = IdentityBinder(InMemoryKeyValueStore({"user_id": "42_roomA"}))
    assert binder.resolve("roomA") == "42_roomA"


def test_resolve_other_room_is_absent():
    binder = IdentityBinder(InMemoryKeyValueStore({"user_id": "42_roomA"}))
    assert binder.resolve("roomB") is None


def test_resolve_rejects_malformed_keys():
    assert IdentityBinder(InMemoryKeyValueStore({"user_id": "roomA"})).resolve("roomA") is None
    assert IdentityBinder(InMemoryKeyValueStore({"user_id": "_roomA"})).resolve("roomA") is None


def test_room_ids_may_contain_separator():
    binder = IdentityBinder(InMemoryKeyValueStore())
    key = binder.bind("42", "team_red")
    assert key == "42_team_red"
    assert binder.resolve("team_red") == key
    assert binder.resolve("red") is None


def test_bind_overwrites_previous_room():
    store = InMemoryKeyValueStore()
    binder = IdentityBinder(store)

    binder.bind("42", "roomA")
    assert binder.bind("7", "roomB") == "7_roomB"

    assert store.get("user_id") == "7_roomB"
    assert binder.resolve("roomA") is None
    assert binder.resolve("roomB") == "7_roomB"


def test_separate_slots_track_separate_rooms():
    store = InMemoryKeyValueStore()
    first = IdentityBinder(store, slot="tab-1")
    second = IdentityBinder(store, slot="tab-2")

    first.bind("1", "roomA")
    second.bind("2", "roomB")

    assert first.resolve("roomA") == "1_roomA"
    assert second.resolve("roomB") == "2_roomB"


@pytest.mark.parametrize("raw_id, room_id", [("", "roomA"), ("42", ""), ("4_2", "roomA")])
def test_bind_rejects_bad_ids(raw_id, room_id):
    binder = IdentityBinder(InMemoryKeyValueStore())
    with pytest.raises(InvalidInput):
        binder.bind(raw_id, room_id)


def test_binding_survives_restart(tmp_path):
    path = str(tmp_path / "identity.json")
    IdentityBinder(JsonFileKeyValueStore(path)).bind("42", "roomA")

    reloaded = IdentityBinder(JsonFileKeyValueStore(path))
    assert reloaded.resolve("roomA") == "42_roomA"


def test_unreadable_identity_file_starts_empty(tmp_path):
    path = tmp_path / "identity.json"
    path.write_text("{not json")

    assert JsonFileKeyValueStore(str(path)).get("user_id") is None


@pytest.mark.parametrize("content", ['["42_roomA"]', '"42_roomA"', "7"])
def test_identity_file_without_object_starts_empty(tmp_path, content):
    path = tmp_path / "identity.json"
    path.write_text(content)

    store = JsonFileKeyValueStore(str(path))
    assert store.get("user_id") is None

    IdentityBinder(store).bind("42", "roomA")
    assert store.values == {"user_id": "42_roomA"}


def test_new_raw_id():
    assert new_raw_id("firebase-uid") == "firebase-uid"

    generated = new_raw_id()
    assert generated.isdigit()
    assert "_" not in generated
    assert generated != new_raw_id()


def test_split_key():
    assert split_key("42_roomA") == ("42", "roomA")
    assert split_key("42") == ("42", "")
