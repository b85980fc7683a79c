# backend/services/card_deck.py

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Sequence, Tuple

HALF_STEP_BELOW = 5


@lru_cache(maxsize=32)
def generate(start: float = 0.5, limit: float = 26) -> Tuple[float, ...]:
    """
    Build the ordered card deck.

    Values grow by 0.5 while below 5 and by 1 from 5 onward:
        generate(0.5, 8) -> (0.5, 1.0, 1.5, ..., 4.5, 5.0, 6.0, 7.0, 8.0)

    The result is a tuple so the cached value cannot be mutated by callers.
    """
    cards = []
    card = start
    step = 0.5

    while card <= limit:
        if card >= HALF_STEP_BELOW:
            step = 1

        cards.append(card)
        card = card + step

    return tuple(cards)


def is_valid_card(value: float, deck: Optional[Sequence[float]] = None) -> bool:
    if deck is None:
        deck = generate()
    return value in deck
