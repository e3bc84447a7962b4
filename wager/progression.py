"""Ranks, XP, rank trials and stake-tier unlocking."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from .contracts import WagerMode


class RankId(str, Enum):
    MOUSE = "mouse"
    FOX = "fox"
    WOLF = "wolf"
    DRAGON = "dragon"


class TrialCondition(str, Enum):
    COMPLETE_UNDER = "completeUnder"
    HIT_PI = "hitPI"
    CONSECUTIVE_WINS = "consecutiveWins"


@dataclass(frozen=True)
class RankDef:
    id: RankId
    label: str
    unlocked_stake_tiers: Tuple[int, ...]
    xp_required: int


@dataclass(frozen=True)
class TrialRequirement:
    mode: WagerMode
    condition: TrialCondition
    # Seconds for completeUnder, PI for hitPI, streak length for consecutiveWins.
    value: int
    count: int


@dataclass(frozen=True)
class RankTrial:
    target_rank: RankId
    requirements: Tuple[TrialRequirement, ...]


@dataclass(frozen=True, order=True)
class TrialKey:
    target_rank: RankId
    requirement_index: int


RANKS: Tuple[RankDef, ...] = (
    RankDef(RankId.MOUSE, "Mouse Table", (10, 25, 50), 0),
    RankDef(RankId.FOX, "Fox Table", (100,), 500),
    RankDef(RankId.WOLF, "Wolf Table", (250, 500), 2000),
    RankDef(RankId.DRAGON, "Dragon Table", (1000,), 5000),
)

RANK_TRIALS: Tuple[RankTrial, ...] = (
    RankTrial(
        RankId.FOX,
        (TrialRequirement(WagerMode.CLASSIC_CLEAR, TrialCondition.COMPLETE_UNDER, 240, 2),),
    ),
    RankTrial(
        RankId.WOLF,
        (TrialRequirement(WagerMode.CLASSIC_CLEAR, TrialCondition.HIT_PI, 8000, 3),),
    ),
    RankTrial(
        RankId.DRAGON,
        (
            TrialRequirement(WagerMode.CLASSIC_CLEAR, TrialCondition.HIT_PI, 10000, 3),
            TrialRequirement(WagerMode.CLASSIC_CLEAR, TrialCondition.CONSECUTIVE_WINS, 3, 1),
        ),
    ),
)

STREAK_BONUS_THRESHOLD = 3
STREAK_BONUS_RATE = 0.1


@dataclass(frozen=True)
class PlayerProgression:
    xp: int = 0
    rank: RankId = RankId.MOUSE
    trial_progress: Mapping[TrialKey, int] = field(default_factory=lambda: MappingProxyType({}))
    win_streak: int = 0


@dataclass(frozen=True)
class TrialRun:
    """What the trial tracker needs to know about a finished wager."""

    mode: WagerMode
    completed: bool
    time_seconds: int
    pi: int
    profitable: bool


def create_progression() -> PlayerProgression:
    return PlayerProgression()


# Queries ---------------------------------------------------------------


def get_rank_index(rank_id: RankId) -> int:
    for index, rank in enumerate(RANKS):
        if rank.id == rank_id:
            return index
    raise ValueError(f"Unknown rank: {rank_id}")


def get_rank_def(rank_id: RankId) -> RankDef:
    return RANKS[get_rank_index(rank_id)]


def get_next_rank(rank_id: RankId) -> Optional[RankDef]:
    index = get_rank_index(rank_id)
    return RANKS[index + 1] if index < len(RANKS) - 1 else None


def get_unlocked_stake_tiers(rank_id: RankId) -> List[int]:
    """Stake tiers available at ``rank_id``; unlocks accumulate up the ladder."""
    tiers: List[int] = []
    for rank in RANKS[: get_rank_index(rank_id) + 1]:
        tiers.extend(rank.unlocked_stake_tiers)
    return sorted(tiers)


def is_stake_unlocked(rank_id: RankId, stake: int) -> bool:
    return stake in get_unlocked_stake_tiers(rank_id)


def get_trial_for_next_rank(rank_id: RankId) -> Optional[RankTrial]:
    next_rank = get_next_rank(rank_id)
    if next_rank is None:
        return None
    for trial in RANK_TRIALS:
        if trial.target_rank == next_rank.id:
            return trial
    return None


def trial_progress_for(prog: PlayerProgression) -> List[Tuple[TrialRequirement, int]]:
    """Pair each requirement of the active trial with its current count."""
    trial = get_trial_for_next_rank(prog.rank)
    if trial is None:
        return []
    return [
        (req, prog.trial_progress.get(TrialKey(trial.target_rank, index), 0))
        for index, req in enumerate(trial.requirements)
    ]


def is_trial_complete(prog: PlayerProgression, trial: RankTrial) -> bool:
    return all(
        prog.trial_progress.get(TrialKey(trial.target_rank, index), 0) >= req.count
        for index, req in enumerate(trial.requirements)
    )


def get_streak_bonus(win_streak: int) -> float:
    return STREAK_BONUS_RATE if win_streak >= STREAK_BONUS_THRESHOLD else 0.0


# Mutations -------------------------------------------------------------


def add_xp(prog: PlayerProgression, xp: int) -> PlayerProgression:
    return replace(prog, xp=prog.xp + xp)


def _requirement_met(req: TrialRequirement, run: TrialRun, win_streak: int) -> bool:
    if req.condition is TrialCondition.COMPLETE_UNDER:
        return run.completed and run.time_seconds < req.value
    if req.condition is TrialCondition.HIT_PI:
        return run.pi >= req.value
    if req.condition is TrialCondition.CONSECUTIVE_WINS:
        return win_streak >= req.value
    raise ValueError(f"Unknown trial condition: {req.condition}")


def record_run_for_trial(prog: PlayerProgression, run: TrialRun) -> PlayerProgression:
    """Fold a finished run into the streak and the active rank trial.

    Only the trial for the next rank is tracked; a completed trial promotes the
    player and later runs count toward the following rank.
    """
    win_streak = prog.win_streak + 1 if run.profitable else 0
    trial = get_trial_for_next_rank(prog.rank)
    if trial is None:
        return replace(prog, win_streak=win_streak)

    progress = dict(prog.trial_progress)
    for index, req in enumerate(trial.requirements):
        if req.mode != run.mode:
            continue
        key = TrialKey(trial.target_rank, index)
        current = progress.get(key, 0)
        if current < req.count and _requirement_met(req, run, win_streak):
            progress[key] = current + 1

    updated = replace(prog, win_streak=win_streak, trial_progress=MappingProxyType(progress))
    if is_trial_complete(updated, trial):
        updated = replace(updated, rank=trial.target_rank)
    return updated
