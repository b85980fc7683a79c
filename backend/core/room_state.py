# backend/core/room_state.py
"""
Room transitions.

Every action a participant can take on a room is a pure function here: it
looks at the last observed Room, validates the action and returns the
PartialUpdate to send to the shared store. Nothing in this module performs
I/O; the caller publishes the update and sees the result in the next
snapshot.

Lifecycle of a room:

    EMPTY --join--> COLLECTING --reveal(true)--> REVEALED
                        ^                            |
                        +---reveal(false) / reset----+
"""

from __future__ import annotations

import copy
from typing import Optional, Sequence

from core.exceptions import CardsFrozen, InvalidInput, PlayerNotFound, Unauthorized
from models.models import PartialUpdate, Player, PlayerView, Room, RoomPhase, RoomView
from services.average_calculator import display_average
from services.card_deck import is_valid_card

UNSELECTED = 0


# ============================================================================
# TRANSITIONS
# ============================================================================

def join(room: Room, name: str, proposed_key: str) -> PartialUpdate:
    """
    Seat a participant.

    No capacity limit and no duplicate-name check: two players called
    "Alice" are different players because their keys differ. Joining again
    with an existing key replaces that seat and clears its card.

    A join while the result is shown hides it again: a revealed round only
    ever holds the players seated since the last reset.

    Raises:
        InvalidInput: blank name or key
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Name is required to join")
    if not proposed_key:
        raise InvalidInput("A participant key is required to join")

    player = Player(name=name, card=UNSELECTED)
    update = PartialUpdate().set("players", proposed_key, value=player.model_dump())
    if room.revealed:
        update.set("revealed", value=False)
    return update


def select_card(
    room: Room,
    acting_key: str,
    value: float,
    deck: Optional[Sequence[float]] = None,
) -> PartialUpdate:
    """
    Set the acting player's card.

    Raises:
        PlayerNotFound: the acting key has not joined
        InvalidInput: value is not part of the deck
        CardsFrozen: the room is revealed
    """
    if not acting_key or acting_key not in room.players:
        raise PlayerNotFound(acting_key)
    if isinstance(value, bool) or not is_valid_card(value, deck):
        raise InvalidInput(f"{value!r} is not a card of this deck")
    if room.revealed:
        raise CardsFrozen("Cards are frozen while the result is shown")

    return PartialUpdate().set("players", acting_key, "card", value=value)


def reveal(room: Room, acting_key: str, show: bool) -> PartialUpdate:
    _require_owner(room, acting_key)
    return PartialUpdate().set("revealed", value=bool(show))


def reset(room: Room, acting_key: str) -> PartialUpdate:
    """Hide the result and clear every card in a single update."""
    _require_owner(room, acting_key)

    update = PartialUpdate().set("revealed", value=False)
    for key in room.players:
        update.set("players", key, "card", value=UNSELECTED)
    return update


def average_eligible(room: Room) -> bool:
    return room.revealed is True


def phase(room: Room) -> RoomPhase:
    if room.revealed:
        return RoomPhase.REVEALED
    if not room.players:
        return RoomPhase.EMPTY
    return RoomPhase.COLLECTING


def _require_owner(room: Room, acting_key: str) -> None:
    if not acting_key or acting_key != room.owner_id:
        raise Unauthorized("Only the room owner can reveal or reset")


# ============================================================================
# FIELD-LEVEL MERGE
# ============================================================================

def apply_update(room: Room, update: PartialUpdate) -> Room:
    """
    Merge a PartialUpdate into a room and return the new room.

    Each write replaces the value at its path; intermediate mappings are
    created when missing. Fields not named by a write are left untouched,
    which is what lets two players change their own cards concurrently.
    """
    document = copy.deepcopy(room.to_document())

    for write in update.writes:
        if not write.path:
            raise InvalidInput("Field path may not be empty")

        target = document
        for part in write.path[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[write.path[-1]] = copy.deepcopy(write.value)

    return Room.model_validate(document)


# ============================================================================
# VIEWER PROJECTION
# ============================================================================

def room_view(room: Room, viewer_key: Optional[str] = None) -> RoomView:
    """
    Project the room for one participant.

    Players are listed sorted by key. A card is visible when the room is
    revealed or when it belongs to the viewer; otherwise it is None.
    """
    players = []
    for key in sorted(room.players):
        player = room.players[key]
        is_self = viewer_key is not None and key == viewer_key
        visible = room.revealed or is_self
        players.append(
            PlayerView(
                key=key,
                name=player.name,
                card=player.card if visible else None,
                selected=player.card != UNSELECTED,
                is_self=is_self,
            )
        )

    return RoomView(
        name=room.name,
        revealed=room.revealed,
        phase=phase(room),
        is_owner=viewer_key is not None and viewer_key == room.owner_id,
        user_key=viewer_key,
        average=display_average(room),
        players=players,
    )
