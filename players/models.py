"""Persisted player records and their conversion to domain values."""

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Literal, Optional

from pydantic import BaseModel, Field

from wager.economy import STARTING_COINS, PlayerWallet
from wager.progression import PlayerProgression, RankId, TrialKey

MAX_STORED_RESULTS = 200


class PlayerProfile(BaseModel):
    id: str
    name: str
    created_at_ms: int
    last_active_at_ms: int


class GameResult(BaseModel):
    id: str
    player_id: str
    mode: Literal["practice", "wager"]
    seed: str
    started_at_ms: int
    finished_at_ms: int
    duration_seconds: int = Field(ge=0)
    won: bool
    score: int
    move_count: Optional[int] = None
    contract_id: Optional[str] = None
    stake: Optional[int] = None
    payout_coins: Optional[int] = None


class PlayerStats(BaseModel):
    player_id: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    best_score: Optional[int] = None
    worst_score: Optional[int] = None
    fastest_win_seconds: Optional[int] = None


class WalletRecord(BaseModel):
    coins: int = STARTING_COINS
    last_daily_grant_date: Optional[date] = None
    last_bankruptcy_date: Optional[date] = None

    @classmethod
    def from_wallet(cls, wallet: PlayerWallet) -> "WalletRecord":
        return cls(
            coins=wallet.coins,
            last_daily_grant_date=wallet.last_daily_grant_date,
            last_bankruptcy_date=wallet.last_bankruptcy_date,
        )

    def to_wallet(self) -> PlayerWallet:
        return PlayerWallet(
            coins=self.coins,
            last_daily_grant_date=self.last_daily_grant_date,
            last_bankruptcy_date=self.last_bankruptcy_date,
        )


class TrialProgressEntry(BaseModel):
    target_rank: RankId
    requirement_index: int = Field(ge=0)
    count: int = Field(ge=0)


class ProgressionRecord(BaseModel):
    xp: int = Field(0, ge=0)
    rank: RankId = RankId.MOUSE
    trial_progress: list[TrialProgressEntry] = Field(default_factory=list)
    win_streak: int = Field(0, ge=0)

    @classmethod
    def from_progression(cls, prog: PlayerProgression) -> "ProgressionRecord":
        return cls(
            xp=prog.xp,
            rank=prog.rank,
            trial_progress=[
                TrialProgressEntry(target_rank=key.target_rank, requirement_index=key.requirement_index, count=count)
                for key, count in sorted(prog.trial_progress.items())
            ],
            win_streak=prog.win_streak,
        )

    def to_progression(self) -> PlayerProgression:
        return PlayerProgression(
            xp=self.xp,
            rank=self.rank,
            trial_progress=MappingProxyType(
                {TrialKey(entry.target_rank, entry.requirement_index): entry.count for entry in self.trial_progress}
            ),
            win_streak=self.win_streak,
        )
