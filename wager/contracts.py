"""Wager contracts: mode rules, stake tiers, PI thresholds and payouts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from .contract_schema import ContractConfig


class ContractConfigError(RuntimeError):
    """Raised when a contract is malformed; treated as fatal."""


class WagerMode(str, Enum):
    CLASSIC_CLEAR = "classicClear"
    SCORE_TARGET = "scoreTarget"


class Outcome(str, Enum):
    FAIL = "fail"
    PARTIAL = "partial"
    PASS = "pass"
    GREAT = "great"
    EXCEPTIONAL = "exceptional"


OUTCOME_ORDER: Tuple[Outcome, ...] = (
    Outcome.FAIL,
    Outcome.PARTIAL,
    Outcome.PASS,
    Outcome.GREAT,
    Outcome.EXCEPTIONAL,
)


@dataclass(frozen=True)
class ContractRules:
    undo_allowed: bool = False
    hint_allowed: bool = True
    draw_mode: int = 3


@dataclass(frozen=True)
class StakeThresholds:
    partial: int
    pass_: int
    great: int
    exceptional: int

    def for_outcome(self, outcome: Outcome) -> int:
        if outcome is Outcome.FAIL:
            raise ValueError("The fail outcome has no threshold.")
        return getattr(self, "pass_" if outcome is Outcome.PASS else outcome.value)


@dataclass(frozen=True)
class PayoutTable:
    fail: float
    partial: float
    pass_: float
    great: float
    exceptional: float

    def multiplier(self, outcome: Outcome) -> float:
        return getattr(self, "pass_" if outcome is Outcome.PASS else outcome.value)


@dataclass(frozen=True)
class Contract:
    id: str
    mode: WagerMode
    timer_seconds: int
    rules: ContractRules
    stake_tiers: Tuple[int, ...]
    thresholds: Mapping[int, StakeThresholds]
    payouts: PayoutTable

    def thresholds_for(self, stake: int) -> Optional[StakeThresholds]:
        return self.thresholds.get(stake)


@dataclass(frozen=True)
class ContractValidationError:
    field: str
    message: str


def _thresholds(table: Mapping[int, Tuple[int, int, int, int]]) -> Mapping[int, StakeThresholds]:
    return MappingProxyType({stake: StakeThresholds(*values) for stake, values in table.items()})


DEFAULT_CONTRACT_RULES = ContractRules(undo_allowed=False, hint_allowed=True, draw_mode=3)
DEFAULT_TIMER_SECONDS = 300
DEFAULT_STAKE_TIERS: Tuple[int, ...] = (10, 25, 50, 100, 250, 500, 1000)

CLASSIC_CLEAR_5MIN = Contract(
    id="classic-clear-5",
    mode=WagerMode.CLASSIC_CLEAR,
    timer_seconds=DEFAULT_TIMER_SECONDS,
    rules=DEFAULT_CONTRACT_RULES,
    stake_tiers=DEFAULT_STAKE_TIERS,
    thresholds=_thresholds(
        {
            10: (3000, 6000, 8000, 10000),
            25: (3500, 6500, 8500, 10500),
            50: (4000, 7000, 9000, 11000),
            100: (4500, 7500, 9500, 11500),
            250: (5000, 8000, 10000, 12000),
            500: (5500, 8500, 10500, 12500),
            1000: (6000, 9000, 11000, 13000),
        }
    ),
    payouts=PayoutTable(fail=0.0, partial=0.3, pass_=1.4, great=2.0, exceptional=2.8),
)

SCORE_TARGET_5MIN = Contract(
    id="score-target-5",
    mode=WagerMode.SCORE_TARGET,
    timer_seconds=DEFAULT_TIMER_SECONDS,
    rules=DEFAULT_CONTRACT_RULES,
    stake_tiers=DEFAULT_STAKE_TIERS,
    thresholds=_thresholds(
        {
            10: (3000, 5500, 7500, 9500),
            25: (3500, 6000, 8000, 10000),
            50: (4000, 6500, 8500, 10500),
            100: (4500, 7000, 9000, 11000),
            250: (5000, 7500, 9500, 11500),
            500: (5500, 8000, 10000, 12000),
            1000: (6000, 8500, 10500, 12500),
        }
    ),
    payouts=PayoutTable(fail=0.0, partial=0.5, pass_=1.3, great=1.8, exceptional=2.4),
)

ALL_CONTRACTS: Tuple[Contract, ...] = (CLASSIC_CLEAR_5MIN, SCORE_TARGET_5MIN)


def get_contract(contract_id: str) -> Optional[Contract]:
    for contract in ALL_CONTRACTS:
        if contract.id == contract_id:
            return contract
    return None


# Validation ------------------------------------------------------------


def contract_payload(contract: Contract) -> dict[str, Any]:
    """Return the plain mapping form of a contract, as stored in config files."""
    return {
        "id": contract.id,
        "mode": contract.mode.value,
        "timer_seconds": contract.timer_seconds,
        "rules": {
            "undo_allowed": contract.rules.undo_allowed,
            "hint_allowed": contract.rules.hint_allowed,
            "draw_mode": contract.rules.draw_mode,
        },
        "stake_tiers": list(contract.stake_tiers),
        "thresholds": {
            stake: {"partial": th.partial, "pass": th.pass_, "great": th.great, "exceptional": th.exceptional}
            for stake, th in contract.thresholds.items()
        },
        "payouts": {
            "fail": contract.payouts.fail,
            "partial": contract.payouts.partial,
            "pass": contract.payouts.pass_,
            "great": contract.payouts.great,
            "exceptional": contract.payouts.exceptional,
        },
    }


def _errors_from(exc: ValidationError) -> List[ContractValidationError]:
    errors = []
    for err in exc.errors():
        loc = err.get("loc") or ("contract",)
        errors.append(ContractValidationError(field=str(loc[0]), message=err["msg"]))
    return errors


def validate_contract(contract: Contract) -> List[ContractValidationError]:
    """Check a contract and return every problem found; never raises."""
    try:
        ContractConfig.model_validate(contract_payload(contract))
    except ValidationError as exc:
        return _errors_from(exc)
    return []


def validate_all_contracts(
    contracts: Tuple[Contract, ...] = ALL_CONTRACTS,
) -> dict[str, List[ContractValidationError]]:
    """Batch-check contracts; returns only the ids that have problems."""
    report = {}
    for contract in contracts:
        errors = validate_contract(contract)
        if errors:
            report[contract.id] = errors
    return report


def load_contract(payload: Mapping[str, Any]) -> Contract:
    """Build a contract from a config mapping, raising on any problem."""
    try:
        config = ContractConfig.model_validate(payload)
    except ValidationError as exc:
        details = "; ".join(f"{err.field}: {err.message}" for err in _errors_from(exc))
        raise ContractConfigError(f"Invalid contract {payload.get('id')!r}: {details}") from exc

    return Contract(
        id=config.id,
        mode=WagerMode(config.mode),
        timer_seconds=config.timer_seconds,
        rules=ContractRules(
            undo_allowed=config.rules.undo_allowed,
            hint_allowed=config.rules.hint_allowed,
            draw_mode=config.rules.draw_mode,
        ),
        stake_tiers=tuple(config.stake_tiers),
        thresholds=MappingProxyType(
            {
                stake: StakeThresholds(th.partial, th.pass_, th.great, th.exceptional)
                for stake, th in config.thresholds.items()
            }
        ),
        payouts=PayoutTable(
            fail=config.payouts.fail,
            partial=config.payouts.partial,
            pass_=config.payouts.pass_,
            great=config.payouts.great,
            exceptional=config.payouts.exceptional,
        ),
    )
