"""Pure wager resolution: contract + stake + run summary -> outcome and payout."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .contracts import OUTCOME_ORDER, Contract, ContractConfigError, Outcome, StakeThresholds, WagerMode

HINT_PENALTY_PI = 400

XP_BY_OUTCOME: dict[Outcome, int] = {
    Outcome.FAIL: 5,
    Outcome.PARTIAL: 15,
    Outcome.PASS: 30,
    Outcome.GREAT: 50,
    Outcome.EXCEPTIONAL: 100,
}


@dataclass(frozen=True)
class RunSummary:
    completed: bool
    pi: int
    time_ms: int
    hint_count: int = 0


@dataclass(frozen=True)
class WagerResult:
    outcome: Outcome
    payout_coins: int
    net_coins: int
    xp: int


def adjusted_pi(run: RunSummary) -> int:
    return run.pi - run.hint_count * HINT_PENALTY_PI


def determine_outcome(pi: int, thresholds: StakeThresholds) -> Outcome:
    """Return the highest outcome whose threshold ``pi`` meets."""
    for outcome in reversed(OUTCOME_ORDER[1:]):
        if pi >= thresholds.for_outcome(outcome):
            return outcome
    return Outcome.FAIL


def resolve_wager(contract: Contract, stake: int, run: RunSummary) -> WagerResult:
    """Resolve a wager deterministically.

    Hints cost ``HINT_PENALTY_PI`` each. In classicClear mode an incomplete run
    can reach ``partial`` at best; scoreTarget mode never requires completion.
    Payouts are floored to whole coins.
    """
    if stake <= 0:
        return WagerResult(outcome=Outcome.FAIL, payout_coins=0, net_coins=0, xp=XP_BY_OUTCOME[Outcome.FAIL])

    thresholds = contract.thresholds_for(stake)
    if thresholds is None:
        raise ContractConfigError(f"No thresholds defined for stake {stake} in contract {contract.id}")

    outcome = determine_outcome(adjusted_pi(run), thresholds)
    if contract.mode is WagerMode.CLASSIC_CLEAR and not run.completed and outcome is not Outcome.FAIL:
        outcome = Outcome.PARTIAL

    payout = math.floor(stake * contract.payouts.multiplier(outcome))
    return WagerResult(
        outcome=outcome,
        payout_coins=payout,
        net_coins=payout - stake,
        xp=XP_BY_OUTCOME[outcome],
    )
