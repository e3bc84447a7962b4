"""Player wallet: stakes, payouts, daily grants and bankruptcy protection.

Every mutation returns a new wallet; callers persist the result.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Tuple

STARTING_COINS = 1000
DAILY_GRANT_COINS = 200
BANKRUPTCY_THRESHOLD = 10
BANKRUPTCY_GRANT = 200
PRACTICE_WIN_COINS = 10


class InsufficientFunds(ValueError):
    """Raised when a stake cannot be covered by the wallet."""


@dataclass(frozen=True)
class PlayerWallet:
    coins: int = STARTING_COINS
    last_daily_grant_date: Optional[date] = None
    last_bankruptcy_date: Optional[date] = None


def create_wallet() -> PlayerWallet:
    return PlayerWallet(coins=STARTING_COINS)


def can_afford_stake(wallet: PlayerWallet, stake: int) -> bool:
    return stake > 0 and wallet.coins >= stake


def is_bankrupt(wallet: PlayerWallet) -> bool:
    return wallet.coins < BANKRUPTCY_THRESHOLD


def deduct_stake(wallet: PlayerWallet, stake: int) -> PlayerWallet:
    if not can_afford_stake(wallet, stake):
        raise InsufficientFunds(f"Cannot afford stake {stake} with {wallet.coins} coins")
    return replace(wallet, coins=wallet.coins - stake)


def add_coins(wallet: PlayerWallet, amount: int) -> PlayerWallet:
    return replace(wallet, coins=wallet.coins + amount)


def apply_wager_payout(wallet: PlayerWallet, payout_coins: int) -> PlayerWallet:
    # The stake left the wallet when the wager began; only the gross payout comes back.
    return add_coins(wallet, payout_coins)


def grant_daily_coins(wallet: PlayerWallet, today: date) -> Tuple[PlayerWallet, bool]:
    """Credit the daily grant once per calendar date."""
    if wallet.last_daily_grant_date == today:
        return wallet, False
    return replace(wallet, coins=wallet.coins + DAILY_GRANT_COINS, last_daily_grant_date=today), True


def check_bankruptcy(wallet: PlayerWallet, today: date) -> Tuple[PlayerWallet, bool]:
    """Reset a bankrupt wallet to the bailout amount, at most once per date."""
    if not is_bankrupt(wallet):
        return wallet, False
    if wallet.last_bankruptcy_date == today:
        return wallet, False
    return replace(wallet, coins=BANKRUPTCY_GRANT, last_bankruptcy_date=today), True
