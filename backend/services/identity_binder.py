# backend/services/identity_binder.py

from __future__ import annotations

import json
import logging
import os
import secrets
from typing import Dict, Optional, Protocol, Tuple

from core.exceptions import InvalidInput

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "_"


class KeyValueStore(Protocol):
    """Client-local storage holding the participant key between visits."""

    def get(self, slot: str) -> Optional[str]: ...

    def set(self, slot: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, slot: str) -> Optional[str]:
        return self.values.get(slot)

    def set(self, slot: str, value: str) -> None:
        self.values[slot] = value


class JsonFileKeyValueStore:
    """
    Key-value slots persisted to a JSON file.

    The file is read on construction and rewritten on every ``set``, so a
    binding survives process restarts.

    Storage Format:
        {"user_id": "8431_sprint-42"}
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.values: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r") as f:
                self.values = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read identity file {self.path}: {e}")
            self.values = {}
            return

        if not isinstance(self.values, dict):
            logger.error(f"Identity file {self.path} does not hold an object, ignoring it")
            self.values = {}

    def get(self, slot: str) -> Optional[str]:
        return self.values.get(slot)

    def set(self, slot: str, value: str) -> None:
        self.values[slot] = value
        with open(self.path, "w") as f:
            json.dump(self.values, f, indent=2)


def split_key(key: str) -> Tuple[str, str]:
    """Return ``(raw_id, room_id)``; room_id is empty when the key is malformed."""
    raw_id, _, room_id = key.partition(KEY_SEPARATOR)
    return raw_id, room_id


def make_key(raw_id: str, room_id: str) -> str:
    if not raw_id or not room_id:
        raise InvalidInput("Both a participant id and a room id are required")
    if KEY_SEPARATOR in raw_id:
        raise InvalidInput(f"Participant id may not contain '{KEY_SEPARATOR}'")
    return f"{raw_id}{KEY_SEPARATOR}{room_id}"


def new_raw_id(authenticated_id: Optional[str] = None) -> str:
    """Use the signed-in user's id when there is one, else a random digit string."""
    if authenticated_id:
        return authenticated_id
    return str(secrets.randbelow(10 ** 16)).zfill(16)


class IdentityBinder:
    """
    Binds one client to one seat in one room.

    The participant key is ``{raw_id}_{room_id}``. It is an opaque bearer
    string: anyone holding it acts as that participant. Only one key is kept
    per slot, so binding to a new room forgets the previous one.
    """

    def __init__(self, store: KeyValueStore, slot: str = "user_id") -> None:
        self.store = store
        self.slot = slot

    def resolve(self, room_id: str) -> Optional[str]:
        key = self.store.get(self.slot)
        if not key:
            return None

        raw_id, key_room_id = split_key(key)
        if not raw_id or key_room_id != room_id:
            return None

        return key

    def bind(self, raw_id: str, room_id: str) -> str:
        key = make_key(raw_id, room_id)
        self.store.set(self.slot, key)
        logger.info("Bound participant key for room %s", room_id)
        return key
