"""Convenience service layer for UI hosts and bots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .cards import SUIT_ORDER, card_label, serialize_card
from .deck import new_seed
from .game import GameOptions, GamePhase, GameSequenceError, KlondikeGame
from .piles import PileRef, serialize_ref
from .state import AutoMove, GameState, serialize_move

LOGGER = logging.getLogger("klondike_service")


@dataclass
class GameView:
    phase: str
    seed: str
    score: dict
    move_count: int
    column_clears: int
    time_elapsed_seconds: int
    time_remaining_seconds: int
    stock_count: int
    waste: list[dict]
    waste_labels: list[str]
    foundations: dict
    tableau: list[list[dict]]
    tableau_labels: list[list[str]]
    auto_moves: list[dict]
    last_move: Optional[dict]
    hint_count: int
    solved: bool


@dataclass(frozen=True)
class ScoreSubmission:
    """Final score fields a tournament host ranks on."""

    seed: str
    base_score: int
    time_bonus: int
    total_score: int
    move_count: int
    finished_at_ms: int


class GameService:
    """Facade around KlondikeGame for host loops.

    Illegal attempts raise the engine's errors unchanged; hosts treat them as
    denied actions and keep polling.
    """

    def __init__(self, options: Optional[GameOptions] = None) -> None:
        self.options = options or GameOptions()
        self.game: Optional[KlondikeGame] = None
        self.hint_count = 0

    # Session lifecycle -------------------------------------------------

    def start(self, seed: Optional[str] = None) -> GameView:
        seed = seed or new_seed()
        self.game = KlondikeGame(seed, self.options)
        self.game.deal()
        self.hint_count = 0
        LOGGER.info("Dealt game seed=%s turn_count=%d", seed, self.options.turn_count)
        return self.view()

    def has_active_game(self) -> bool:
        return self.game is not None and self.game.phase == GamePhase.DEALT

    # Actions -----------------------------------------------------------

    def draw(self) -> GameView:
        self._require_game().draw_from_stock()
        return self.view()

    def move(self, from_ref: PileRef, to_ref: PileRef) -> GameView:
        game = self._require_game()
        game.move_card(from_ref, to_ref)
        if game.phase == GamePhase.FINISHED:
            LOGGER.info("Game %s solved after %d moves", game.seed, game.get_state().move_count)
        return self.view()

    def auto_move(self) -> Optional[AutoMove]:
        """Apply the first available foundation move, if any, and return it."""
        game = self._require_game()
        moves = game.can_auto_move_to_foundation()
        if not moves:
            return None
        move = moves[0]
        game.move_card(move.from_ref, move.to_ref)
        return move

    def hint(self) -> Optional[AutoMove]:
        game = self._require_game()
        if game.phase != GamePhase.DEALT:
            raise GameSequenceError("Hints are only available while the game is running.")
        moves = game.can_auto_move_to_foundation()
        self.hint_count += 1
        return moves[0] if moves else None

    def finish(self) -> GameView:
        game = self._require_game()
        state = game.finish()
        LOGGER.info(
            "Game %s finished total=%d base=%d moves=%d",
            state.seed,
            state.score.total_score,
            state.score.base_score,
            state.move_count,
        )
        return self.view()

    def poll_timer(self) -> bool:
        """Finish the game if its timer ran out; return True when that happened."""
        game = self._require_game()
        if game.is_time_expired():
            LOGGER.info("Game %s timed out", game.seed)
            game.finish()
            return True
        return False

    # Views -------------------------------------------------------------

    def state(self) -> GameState:
        return self._require_game().get_state()

    def score_submission(self) -> ScoreSubmission:
        state = self.state()
        if state.finished_at_ms is None:
            raise RuntimeError("Scores are only submitted for finished games.")
        return ScoreSubmission(
            seed=state.seed,
            base_score=state.score.base_score,
            time_bonus=state.score.time_bonus,
            total_score=state.score.total_score,
            move_count=state.move_count,
            finished_at_ms=state.finished_at_ms,
        )

    def view(self) -> GameView:
        game = self._require_game()
        state = game.get_state()
        return GameView(
            phase=game.phase.name.lower(),
            seed=state.seed,
            score={
                "baseScore": state.score.base_score,
                "timeBonus": state.score.time_bonus,
                "efficiencyBonus": state.score.efficiency_bonus,
                "totalScore": state.score.total_score,
            },
            move_count=state.move_count,
            column_clears=state.column_clears,
            time_elapsed_seconds=state.time_elapsed_seconds,
            time_remaining_seconds=state.time_remaining_seconds,
            stock_count=len(state.stock),
            waste=[serialize_card(card) for card in state.waste],
            waste_labels=[card_label(card) for card in state.waste],
            foundations={
                suit.value: [serialize_card(card) for card in state.foundations[suit]] for suit in SUIT_ORDER
            },
            tableau=[[serialize_card(card) for card in column] for column in state.tableau],
            tableau_labels=[[card_label(card) for card in column] for column in state.tableau],
            auto_moves=[
                {"from": serialize_ref(move.from_ref), "to": serialize_ref(move.to_ref)}
                for move in game.can_auto_move_to_foundation()
            ],
            last_move=serialize_move(state.last_move) if state.last_move else None,
            hint_count=self.hint_count,
            solved=state.is_solved(),
        )

    # Helpers -----------------------------------------------------------

    def _require_game(self) -> KlondikeGame:
        if self.game is None:
            raise RuntimeError("No active game.")
        return self.game
