"""Klondike game state machine."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Callable, Dict, List, Optional, Tuple

from .cards import ACE, KING, SUIT_ORDER, Card, Suit, is_opposite_color
from .deck import shuffled_deck
from .piles import TABLEAU_COLUMNS, FoundationRef, PileRef, StockRef, TableauRef, WasteRef, STOCK, WASTE
from .state import FOUNDATION_SIZE, AutoMove, GameState, MoveRecord, ScoreState

FOUNDATION_POINTS = 100
UNCOVER_POINTS = 20
COLUMN_CLEAR_POINTS = 50
EFFICIENCY_MOVE_CAP = 200
EFFICIENCY_POINTS_PER_MOVE = 5


class GameError(RuntimeError):
    """Base class for recoverable engine errors."""


class GameSequenceError(GameError):
    """Raised when an operation is attempted before dealing or after finishing."""


class IllegalMove(GameError):
    """Raised when a move violates pile rules."""


class GamePhase(Enum):
    UNSTARTED = auto()
    DEALT = auto()
    FINISHED = auto()


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GameOptions:
    match_duration_seconds: int = 300
    turn_count: int = 3
    redeal_penalty_points: int = 0
    now: Callable[[], int] = field(default=wall_clock_ms, compare=False)

    def __post_init__(self) -> None:
        if self.match_duration_seconds <= 0:
            raise ValueError("match_duration_seconds must be positive.")
        if self.turn_count not in (1, 3):
            raise ValueError("turn_count must be 1 or 3.")


def is_valid_run(cards: List[Card]) -> bool:
    """Return True for a face-up, descending, alternating-colour run."""
    if not cards:
        return False
    for index, card in enumerate(cards):
        if not card.face_up:
            return False
        if index == 0:
            continue
        previous = cards[index - 1]
        if not is_opposite_color(previous, card) or previous.rank != card.rank + 1:
            return False
    return True


class KlondikeGame:
    """Single-seed Klondike engine; the only mutable store of game state."""

    def __init__(self, seed: str, options: Optional[GameOptions] = None) -> None:
        self.seed = seed
        self.options = options or GameOptions()
        self.phase = GamePhase.UNSTARTED

        self._started_at_ms = 0
        self._finished_at_ms: Optional[int] = None
        self._base_score = 0
        self._time_bonus = 0
        self._efficiency_bonus = 0
        self._move_count = 0
        self._column_clears = 0
        self._last_move: Optional[MoveRecord] = None

        self._stock: List[Card] = []
        self._waste: List[Card] = []
        self._foundations: Dict[Suit, List[Card]] = {suit: [] for suit in SUIT_ORDER}
        self._tableau: List[List[Card]] = [[] for _ in range(TABLEAU_COLUMNS)]

    # Lifecycle ---------------------------------------------------------

    def deal(self) -> GameState:
        now = self.options.now
        self._started_at_ms = now()
        self._finished_at_ms = None
        self._base_score = 0
        self._time_bonus = 0
        self._efficiency_bonus = 0
        self._move_count = 0
        self._column_clears = 0
        self._last_move = None

        deck = shuffled_deck(self.seed)
        self._tableau = []
        cursor = 0
        for column in range(TABLEAU_COLUMNS):
            size = column + 1
            pile = [card.turned(offset == size - 1) for offset, card in enumerate(deck[cursor : cursor + size])]
            self._tableau.append(pile)
            cursor += size

        self._stock = [card.turned(False) for card in deck[cursor:]]
        self._waste = []
        self._foundations = {suit: [] for suit in SUIT_ORDER}
        self.phase = GamePhase.DEALT
        return self.get_state()

    def finish(self) -> GameState:
        self._ensure_started()
        if self.phase == GamePhase.DEALT:
            self._finish_game()
        return self.get_state()

    def is_solved(self) -> bool:
        return all(len(self._foundations[suit]) == FOUNDATION_SIZE for suit in SUIT_ORDER)

    def is_time_expired(self) -> bool:
        return self.phase == GamePhase.DEALT and self._time_remaining_seconds() == 0

    # Actions -----------------------------------------------------------

    def draw_from_stock(self) -> GameState:
        self._ensure_active()
        created_at_ms = self.options.now()

        if not self._stock:
            if not self._waste:
                return self.get_state()
            # Recycle: the waste turns over to become the new stock.
            self._stock = [card.turned(False) for card in reversed(self._waste)]
            self._waste = []
            delta = -abs(self.options.redeal_penalty_points)
            self._base_score += delta
            self._record_move(STOCK, STOCK, (), None, delta, created_at_ms)
            return self.get_state()

        moved: List[str] = []
        for _ in range(min(self.options.turn_count, len(self._stock))):
            card = self._stock.pop().turned(True)
            self._waste.append(card)
            moved.append(card.id)

        self._record_move(STOCK, WASTE, tuple(moved), None, 0, created_at_ms)
        return self.get_state()

    def move_card(self, from_ref: PileRef, to_ref: PileRef) -> GameState:
        self._ensure_active()
        moving = self._lift(from_ref)
        self._check_destination(moving, from_ref, to_ref)

        created_at_ms = self.options.now()
        self._detach(from_ref, len(moving))
        self._place(moving, to_ref)

        delta = 0
        uncovered: Optional[str] = None
        if isinstance(to_ref, FoundationRef):
            delta += FOUNDATION_POINTS * len(moving)

        if isinstance(from_ref, TableauRef):
            column = self._tableau[from_ref.index]
            if column and not column[-1].face_up:
                column[-1] = column[-1].turned(True)
                uncovered = column[-1].id
                delta += UNCOVER_POINTS
            if not column:
                delta += COLUMN_CLEAR_POINTS
                self._column_clears += 1

        self._base_score += delta
        self._record_move(from_ref, to_ref, tuple(card.id for card in moving), uncovered, delta, created_at_ms)

        if self.is_solved():
            self._finish_game()
        return self.get_state()

    def can_auto_move_to_foundation(self) -> List[AutoMove]:
        self._ensure_started()
        if self.phase != GamePhase.DEALT:
            return []

        moves: List[AutoMove] = []
        if self._waste:
            card = self._waste[-1]
            if self._fits_foundation(card, card.suit):
                moves.append(AutoMove(WASTE, FoundationRef(card.suit)))

        for index, column in enumerate(self._tableau):
            if not column or not column[-1].face_up:
                continue
            card = column[-1]
            if self._fits_foundation(card, card.suit):
                moves.append(AutoMove(TableauRef(index), FoundationRef(card.suit)))
        return moves

    # Views -------------------------------------------------------------

    def get_state(self) -> GameState:
        self._ensure_started()
        finished = self._finished_at_ms is not None
        time_bonus = self._time_bonus if finished else 0
        efficiency_bonus = self._efficiency_bonus if finished else 0
        return GameState(
            seed=self.seed,
            started_at_ms=self._started_at_ms,
            finished_at_ms=self._finished_at_ms,
            match_duration_seconds=self.options.match_duration_seconds,
            time_elapsed_seconds=self._time_elapsed_seconds(),
            time_remaining_seconds=self._time_remaining_seconds(),
            score=ScoreState(
                base_score=self._base_score,
                time_bonus=time_bonus,
                efficiency_bonus=efficiency_bonus,
                total_score=self._base_score + time_bonus + efficiency_bonus,
            ),
            move_count=self._move_count,
            column_clears=self._column_clears,
            stock=tuple(self._stock),
            waste=tuple(self._waste),
            foundations=MappingProxyType({suit: tuple(pile) for suit, pile in self._foundations.items()}),
            tableau=tuple(tuple(column) for column in self._tableau),
            last_move=self._last_move,
        )

    # Helpers -----------------------------------------------------------

    def _ensure_started(self) -> None:
        if self.phase == GamePhase.UNSTARTED:
            raise GameSequenceError("Game has not been dealt yet. Call deal() first.")

    def _ensure_active(self) -> None:
        self._ensure_started()
        if self.phase != GamePhase.DEALT:
            raise GameSequenceError("Game is finished; no further moves are accepted.")

    def _time_elapsed_seconds(self) -> int:
        end_ms = self._finished_at_ms if self._finished_at_ms is not None else self.options.now()
        return max(0, (end_ms - self._started_at_ms) // 1000)

    def _time_remaining_seconds(self) -> int:
        duration = self.options.match_duration_seconds
        return max(0, min(duration, duration - self._time_elapsed_seconds()))

    def _finish_game(self) -> None:
        self._finished_at_ms = self.options.now()
        remaining = self._time_remaining_seconds()
        self._time_bonus = self._base_score * remaining // self.options.match_duration_seconds
        self._efficiency_bonus = max(0, EFFICIENCY_MOVE_CAP - self._move_count) * EFFICIENCY_POINTS_PER_MOVE
        self.phase = GamePhase.FINISHED

    def _record_move(
        self,
        from_ref: PileRef,
        to_ref: PileRef,
        moved_ids: Tuple[str, ...],
        uncovered: Optional[str],
        delta: int,
        created_at_ms: int,
    ) -> None:
        self._move_count += 1
        self._last_move = MoveRecord(
            from_ref=from_ref,
            to_ref=to_ref,
            moved_card_ids=moved_ids,
            uncovered_card_id=uncovered,
            points_delta=delta,
            created_at_ms=created_at_ms,
        )

    def _column(self, index: int) -> List[Card]:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < TABLEAU_COLUMNS:
            raise IllegalMove(f"Invalid tableau index: {index!r}")
        return self._tableau[index]

    def _lift(self, from_ref: PileRef) -> List[Card]:
        """Return the cards a move from ``from_ref`` would carry, without removing them."""
        if isinstance(from_ref, StockRef):
            raise IllegalMove("Cannot move cards directly from stock. Draw first.")
        if isinstance(from_ref, WasteRef):
            if not self._waste:
                raise IllegalMove("No cards to move.")
            return [self._waste[-1]]
        if isinstance(from_ref, FoundationRef):
            pile = self._foundations[from_ref.suit]
            if not pile:
                raise IllegalMove("No cards to move.")
            return [pile[-1]]
        if isinstance(from_ref, TableauRef):
            column = self._column(from_ref.index)
            if not column:
                raise IllegalMove("No cards to move.")
            position = len(column) - 1 if from_ref.position is None else from_ref.position
            if isinstance(position, bool) or not isinstance(position, int) or not 0 <= position < len(column):
                raise IllegalMove(f"Invalid tableau position: {position!r}")
            run = column[position:]
            if not is_valid_run(run):
                raise IllegalMove("Invalid tableau run (must be face-up, descending, alternating colors).")
            return run
        raise TypeError(f"Unknown pile reference: {from_ref!r}")

    def _check_destination(self, moving: List[Card], from_ref: PileRef, to_ref: PileRef) -> None:
        if to_ref == from_ref or (
            isinstance(to_ref, TableauRef) and isinstance(from_ref, TableauRef) and to_ref.index == from_ref.index
        ):
            raise IllegalMove("Source and destination are the same pile.")
        if isinstance(to_ref, FoundationRef):
            if len(moving) != 1:
                raise IllegalMove("Only single cards can be moved to a foundation.")
            if not self._fits_foundation(moving[0], to_ref.suit):
                raise IllegalMove("Illegal move to foundation.")
            return
        if isinstance(to_ref, TableauRef):
            if not self._fits_tableau(moving[0], self._column(to_ref.index)):
                raise IllegalMove("Illegal move to tableau.")
            return
        if isinstance(to_ref, (StockRef, WasteRef)):
            raise IllegalMove("Destination must be a tableau column or a foundation.")
        raise TypeError(f"Unknown pile reference: {to_ref!r}")

    def _detach(self, from_ref: PileRef, count: int) -> None:
        if isinstance(from_ref, WasteRef):
            del self._waste[-count:]
        elif isinstance(from_ref, FoundationRef):
            del self._foundations[from_ref.suit][-count:]
        elif isinstance(from_ref, TableauRef):
            del self._tableau[from_ref.index][-count:]
        else:
            raise TypeError(f"Cannot detach from {from_ref!r}")

    def _place(self, cards: List[Card], to_ref: PileRef) -> None:
        if isinstance(to_ref, FoundationRef):
            self._foundations[to_ref.suit].extend(card.turned(True) for card in cards)
        elif isinstance(to_ref, TableauRef):
            self._tableau[to_ref.index].extend(card.turned(True) for card in cards)
        else:
            raise TypeError(f"Cannot place onto {to_ref!r}")

    def _fits_foundation(self, card: Card, suit: Suit) -> bool:
        if card.suit is not suit:
            return False
        pile = self._foundations[suit]
        if not pile:
            return card.rank == ACE
        return card.rank == pile[-1].rank + 1

    @staticmethod
    def _fits_tableau(card: Card, column: List[Card]) -> bool:
        if not column:
            return card.rank == KING
        top = column[-1]
        if not top.face_up:
            return False
        return is_opposite_color(card, top) and card.rank == top.rank - 1
