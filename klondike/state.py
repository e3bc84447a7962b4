"""Immutable game snapshots handed out by the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .cards import SUIT_ORDER, Card, Suit
from .piles import PileRef, serialize_ref

FOUNDATION_SIZE = 13


@dataclass(frozen=True)
class ScoreState:
    base_score: int
    time_bonus: int
    efficiency_bonus: int
    total_score: int


@dataclass(frozen=True)
class MoveRecord:
    from_ref: PileRef
    to_ref: PileRef
    moved_card_ids: Tuple[str, ...]
    uncovered_card_id: Optional[str]
    points_delta: int
    created_at_ms: int


@dataclass(frozen=True)
class AutoMove:
    from_ref: PileRef
    to_ref: PileRef


@dataclass(frozen=True)
class GameState:
    """Point-in-time copy of a game; never shares containers with the engine."""

    seed: str
    started_at_ms: int
    finished_at_ms: Optional[int]
    match_duration_seconds: int
    time_elapsed_seconds: int
    time_remaining_seconds: int
    score: ScoreState
    move_count: int
    column_clears: int
    stock: Tuple[Card, ...]
    waste: Tuple[Card, ...]
    foundations: Mapping[Suit, Tuple[Card, ...]]
    tableau: Tuple[Tuple[Card, ...], ...]
    last_move: Optional[MoveRecord]

    @property
    def is_finished(self) -> bool:
        return self.finished_at_ms is not None

    def is_solved(self) -> bool:
        return all(len(self.foundations.get(suit, ())) == FOUNDATION_SIZE for suit in SUIT_ORDER)

    def all_cards(self) -> Tuple[Card, ...]:
        cards = list(self.stock) + list(self.waste)
        for suit in SUIT_ORDER:
            cards.extend(self.foundations.get(suit, ()))
        for column in self.tableau:
            cards.extend(column)
        return tuple(cards)


def serialize_move(record: MoveRecord) -> dict[str, object]:
    return {
        "from": serialize_ref(record.from_ref),
        "to": serialize_ref(record.to_ref),
        "movedCardIds": list(record.moved_card_ids),
        "uncoveredCardId": record.uncovered_card_id,
        "pointsDelta": record.points_delta,
        "createdAtMs": record.created_at_ms,
    }
