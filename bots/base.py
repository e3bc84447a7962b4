"""Common bot strategy interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from klondike.cards import KING, Card, is_opposite_color
from klondike.piles import WASTE, PileRef, TableauRef
from klondike.service import GameService
from klondike.state import GameState


@dataclass(frozen=True)
class Action:
    """Either a stock draw (no refs) or a move between two piles."""

    kind: str
    from_ref: Optional[PileRef] = None
    to_ref: Optional[PileRef] = None

    @classmethod
    def draw(cls) -> "Action":
        return cls("draw")

    @classmethod
    def move(cls, from_ref: PileRef, to_ref: PileRef) -> "Action":
        return cls("move", from_ref, to_ref)


def fits_on_column(card: Card, column: tuple[Card, ...]) -> bool:
    if not column:
        return card.rank == KING
    top = column[-1]
    return top.face_up and is_opposite_color(card, top) and card.rank == top.rank - 1


def first_face_up(column: tuple[Card, ...]) -> Optional[int]:
    for index, card in enumerate(column):
        if card.face_up:
            return index
    return None


def tableau_moves(state: GameState) -> List[Action]:
    """Whole face-up runs that can move onto another column."""
    moves: List[Action] = []
    for src, column in enumerate(state.tableau):
        start = first_face_up(column)
        if start is None:
            continue
        for dst, target in enumerate(state.tableau):
            if dst != src and fits_on_column(column[start], target):
                moves.append(Action.move(TableauRef(src, start), TableauRef(dst)))
    return moves


def waste_moves(state: GameState) -> List[Action]:
    if not state.waste:
        return []
    card = state.waste[-1]
    return [
        Action.move(WASTE, TableauRef(dst))
        for dst, target in enumerate(state.tableau)
        if fits_on_column(card, target)
    ]


class SolitaireBot:
    """Base class for bot policies."""

    name: str = "BaseBot"

    def on_game_start(self, service: GameService) -> None:
        """Optional hook invoked after the deal."""
        return None

    def choose_action(self, service: GameService) -> Optional[Action]:
        """Return the next action, or None to stop and finish the game."""
        moves = service.game.can_auto_move_to_foundation() if service.game else []
        if moves:
            return Action.move(moves[0].from_ref, moves[0].to_ref)
        return None
