# backend/services/average_calculator.py

from __future__ import annotations

from typing import Optional

from models.models import Room

HIDDEN = "?"


def compute(room: Room) -> Optional[float]:
    """
    Average of every player's card, unselected players counting as 0.

    Callers check ``average_eligible`` first; a hidden room is not rejected
    here. Returns None for a room without players.
    """
    players = list(room.players.values())
    if not players:
        return None

    total = sum(player.card for player in players)
    return total / len(players)


def display_average(room: Room) -> str:
    if not room.revealed:
        return HIDDEN

    average = compute(room)
    if average is None:
        return HIDDEN
    return f"{average:.2f}"
