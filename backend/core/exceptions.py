# backend/core/exceptions.py
"""
Domain exceptions.

Raised by the room transitions, the identity binder and the sync channel;
the API layer turns them into HTTP errors or websocket error messages.
"""


class PokerException(Exception):
    """Base class for every planning poker error."""

    code = "error"


class InvalidInput(PokerException):
    """A required field is empty or a value is outside its domain."""

    code = "invalid_input"


class RoomNotFound(PokerException):
    code = "room_not_found"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class PlayerNotFound(PokerException):
    """The acting participant has no seat in the room."""

    code = "player_not_found"

    def __init__(self, player_key):
        self.player_key = player_key
        super().__init__(f"Player {player_key} has not joined this room")


class Unauthorized(PokerException):
    """Only the room owner may reveal or reset."""

    code = "unauthorized"


class CardsFrozen(PokerException):
    """Cards cannot change while the round is revealed."""

    code = "cards_frozen"


class StoreWriteFailure(PokerException):
    """The shared store rejected or failed a write."""

    code = "store_write_failure"


class RoomAlreadyExists(PokerException):
    code = "room_exists"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} already exists")
