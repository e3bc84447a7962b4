"""Card-related data structures and helpers for Klondike."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping


class Suit(Enum):
    HEARTS = "H"
    DIAMONDS = "D"
    CLUBS = "C"
    SPADES = "S"

    def __str__(self) -> str:
        return self.value


class Color(Enum):
    RED = "red"
    BLACK = "black"


# Deck construction order; the seeded shuffle depends on it.
SUIT_ORDER: tuple[Suit, ...] = (Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES)

ACE = 1
KING = 13
RANKS: tuple[int, ...] = tuple(range(ACE, KING + 1))

RANK_LABELS: dict[int, str] = {1: "A", 11: "J", 12: "Q", 13: "K"}


def suit_color(suit: Suit) -> Color:
    return Color.RED if suit in (Suit.HEARTS, Suit.DIAMONDS) else Color.BLACK


def rank_label(rank: int) -> str:
    return RANK_LABELS.get(rank, str(rank))


def card_id(suit: Suit, rank: int) -> str:
    return f"{rank_label(rank)}{suit.value}"


@dataclass(frozen=True)
class Card:
    """Immutable playing card; revealing a card produces a face-up copy."""

    suit: Suit
    rank: int
    face_up: bool = False

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")

    @property
    def id(self) -> str:
        return card_id(self.suit, self.rank)

    @property
    def color(self) -> Color:
        return suit_color(self.suit)

    def turned(self, face_up: bool) -> "Card":
        if self.face_up is face_up:
            return self
        return replace(self, face_up=face_up)


def is_opposite_color(a: Card, b: Card) -> bool:
    return a.color is not b.color


def serialize_card(card: Card) -> dict[str, object]:
    return {"id": card.id, "suit": card.suit.value, "rank": card.rank, "faceUp": card.face_up}


def deserialize_card(payload: Mapping[str, object]) -> Card:
    suit = Suit(str(payload["suit"]).upper())
    return Card(suit, int(payload["rank"]), bool(payload.get("faceUp", False)))


def card_label(card: Card) -> str:
    if not card.face_up:
        return "##"
    return card.id
