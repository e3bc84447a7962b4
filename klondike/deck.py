"""Deterministic deck creation for Klondike."""

from __future__ import annotations

import time
from random import Random
from typing import Callable, List, Optional

from .cards import RANKS, SUIT_ORDER, Card


def build_deck() -> List[Card]:
    """Return the ordered 52-card deck, all face-down."""
    return [Card(suit, rank) for suit in SUIT_ORDER for rank in RANKS]


def shuffled_deck(seed: str, *, rng: Optional[Callable[[], float]] = None) -> List[Card]:
    """Return the deck shuffled by a Fisher-Yates pass driven by ``seed``.

    The same seed always produces the same order, which is what makes a dealt
    game replayable and fair between players sharing a seed. ``rng`` overrides
    the seeded generator and must return floats in ``[0, 1)``.
    """
    if rng is None:
        rng = Random(seed).random
    deck = build_deck()
    for i in range(len(deck) - 1, 0, -1):
        j = int(rng() * (i + 1))
        deck[i], deck[j] = deck[j], deck[i]
    return deck


def new_seed() -> str:
    """Generate a fresh seed string for games started without one."""
    now = int(time.time() * 1000)
    return f"{now}-{Random().getrandbits(48):012x}"
