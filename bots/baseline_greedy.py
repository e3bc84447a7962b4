"""Baseline greedy bot."""

from __future__ import annotations

import math
from typing import Optional

from klondike.service import GameService

from .base import Action, SolitaireBot, tableau_moves, waste_moves


class GreedyBot(SolitaireBot):
    """Foundation moves first, then moves that reveal cards, then the waste, then draw.

    Gives up once a full pass through the stock produced no other move.
    """

    name = "Greedy"

    def __init__(self) -> None:
        self._idle_draws = 0

    def on_game_start(self, service: GameService) -> None:
        self._idle_draws = 0

    def choose_action(self, service: GameService) -> Optional[Action]:
        state = service.state()
        action = super().choose_action(service)
        if action is None:
            action = self._best_tableau_move(state)
        if action is None:
            moves = waste_moves(state)
            action = moves[0] if moves else None
        if action is not None:
            self._idle_draws = 0
            return action

        pending = len(state.stock) + len(state.waste)
        if pending == 0:
            return None
        pass_length = math.ceil(pending / service.options.turn_count) + 1
        if self._idle_draws > pass_length:
            return None
        self._idle_draws += 1
        return Action.draw()

    @staticmethod
    def _best_tableau_move(state) -> Optional[Action]:
        for action in tableau_moves(state):
            # A king already at the bottom of a column has nowhere better to go.
            if action.from_ref.position > 0 or state.tableau[action.to_ref.index]:
                return action
        return None
