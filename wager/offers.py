"""Preset wager offers shown on the home screen."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .contracts import CLASSIC_CLEAR_5MIN, SCORE_TARGET_5MIN, get_contract


@dataclass(frozen=True)
class HomeOffer:
    id: str
    title: str
    contract_id: str
    stake: int


HOME_OFFERS: Tuple[HomeOffer, ...] = (
    HomeOffer("classic-low", "Classic Quick-start (Low Stake)", CLASSIC_CLEAR_5MIN.id, 10),
    HomeOffer("classic-med", "Classic Pro (Med Stake)", CLASSIC_CLEAR_5MIN.id, 100),
    HomeOffer("classic-high", "Classic Whale (High Stake)", CLASSIC_CLEAR_5MIN.id, 500),
    HomeOffer("score-low", "Score Run (Low Stake)", SCORE_TARGET_5MIN.id, 25),
    HomeOffer("score-med", "Score Master (Med Stake)", SCORE_TARGET_5MIN.id, 250),
    HomeOffer("score-high", "Score Elite (High Stake)", SCORE_TARGET_5MIN.id, 1000),
)


def get_offer(offer_id: str) -> Optional[HomeOffer]:
    return next((offer for offer in HOME_OFFERS if offer.id == offer_id), None)


def get_offer_max_win(stake: int, contract_id: str) -> int:
    contract = get_contract(contract_id)
    if contract is None:
        return 0
    return math.floor(stake * contract.payouts.exceptional)
