"""Random legal-action bot, useful for stress-testing the engine."""

from __future__ import annotations

import random
from typing import Optional

from klondike.service import GameService

from .base import Action, SolitaireBot, tableau_moves, waste_moves


class RandomBot(SolitaireBot):
    name = "Random"

    def __init__(self, seed: Optional[int] = None, max_actions: int = 300) -> None:
        self.rng = random.Random(seed)
        self.max_actions = max_actions
        self._taken = 0

    def on_game_start(self, service: GameService) -> None:
        self._taken = 0

    def choose_action(self, service: GameService) -> Optional[Action]:
        if self._taken >= self.max_actions:
            return None
        state = service.state()
        candidates = [Action.move(move.from_ref, move.to_ref) for move in service.game.can_auto_move_to_foundation()]
        candidates.extend(tableau_moves(state))
        candidates.extend(waste_moves(state))
        if state.stock or state.waste:
            candidates.append(Action.draw())
        if not candidates:
            return None
        self._taken += 1
        return self.rng.choice(candidates)
