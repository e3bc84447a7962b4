"""Wager lifecycle: select -> play -> resolve -> update wallet and progression."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from klondike.deck import new_seed
from klondike.state import GameState

from .contracts import Contract
from .economy import PlayerWallet, apply_wager_payout, deduct_stake
from .progression import PlayerProgression, TrialRun, add_xp, get_streak_bonus, record_run_for_trial
from .resolver import HINT_PENALTY_PI, RunSummary, WagerResult, resolve_wager


@dataclass(frozen=True)
class WagerSelection:
    contract: Contract
    stake: int


@dataclass(frozen=True)
class PIBreakdown:
    base_score: int
    time_bonus: int
    efficiency_bonus: int
    hint_penalty: int
    adjusted_pi: int


@dataclass(frozen=True)
class WagerSessionResult:
    wager_result: WagerResult
    streak_bonus_coins: int
    total_payout: int
    updated_wallet: PlayerWallet
    updated_progression: PlayerProgression
    run_summary: RunSummary
    pi_breakdown: PIBreakdown


@dataclass(frozen=True)
class GameSessionConfig:
    seed: str
    mode_id: str = "classic"


def create_game_session(seed: Optional[str] = None, mode_id: str = "classic") -> GameSessionConfig:
    return GameSessionConfig(seed=seed or new_seed(), mode_id=mode_id)


def begin_wager(wallet: PlayerWallet, stake: int) -> PlayerWallet:
    """Take the stake out of the wallet before the game starts."""
    return deduct_stake(wallet, stake)


def build_run_summary(final_state: GameState, hint_count: int = 0) -> RunSummary:
    return RunSummary(
        completed=final_state.is_solved(),
        pi=final_state.score.total_score,
        time_ms=final_state.time_elapsed_seconds * 1000,
        hint_count=hint_count,
    )


def complete_wager(
    selection: WagerSelection,
    final_state: GameState,
    wallet: PlayerWallet,
    progression: PlayerProgression,
    hint_count: int = 0,
) -> WagerSessionResult:
    """Resolve a finished game's wager and fold it into wallet and progression.

    The streak bonus uses the streak held before this run and only applies to
    profitable runs.
    """
    run_summary = build_run_summary(final_state, hint_count)
    wager_result = resolve_wager(selection.contract, selection.stake, run_summary)

    streak_bonus_coins = 0
    if wager_result.net_coins > 0:
        streak_bonus_coins = math.floor(wager_result.payout_coins * get_streak_bonus(progression.win_streak))
    total_payout = wager_result.payout_coins + streak_bonus_coins

    updated_wallet = apply_wager_payout(wallet, total_payout)

    updated_progression = add_xp(progression, wager_result.xp)
    updated_progression = record_run_for_trial(
        updated_progression,
        TrialRun(
            mode=selection.contract.mode,
            completed=run_summary.completed,
            time_seconds=final_state.time_elapsed_seconds,
            pi=run_summary.pi,
            profitable=wager_result.net_coins > 0,
        ),
    )

    hint_penalty = hint_count * HINT_PENALTY_PI
    return WagerSessionResult(
        wager_result=wager_result,
        streak_bonus_coins=streak_bonus_coins,
        total_payout=total_payout,
        updated_wallet=updated_wallet,
        updated_progression=updated_progression,
        run_summary=run_summary,
        pi_breakdown=PIBreakdown(
            base_score=final_state.score.base_score,
            time_bonus=final_state.score.time_bonus,
            efficiency_bonus=final_state.score.efficiency_bonus,
            hint_penalty=hint_penalty,
            adjusted_pi=run_summary.pi - hint_penalty,
        ),
    )
