"""Bot arena: play seeded games and settle wagers on the results."""

from __future__ import annotations

import argparse
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from klondike.game import GameOptions, GamePhase, IllegalMove
from klondike.service import GameService
from wager.contracts import ALL_CONTRACTS, Contract, get_contract
from wager.economy import InsufficientFunds, PlayerWallet, create_wallet
from wager.progression import PlayerProgression, create_progression
from wager.session import WagerSelection, begin_wager, complete_wager

from .base import SolitaireBot
from .baseline_greedy import GreedyBot
from .random_bot import RandomBot

LOGGER = logging.getLogger("bot_arena")

BOT_REGISTRY: Dict[str, type[SolitaireBot]] = {
    "greedy": GreedyBot,
    "random": RandomBot,
}


class StepClock:
    """Deterministic clock advanced by the arena, one tick per action."""

    def __init__(self, start_ms: int = 1_000, step_ms: int = 1_000) -> None:
        self.now_ms = start_ms
        self.step_ms = step_ms

    def __call__(self) -> int:
        return self.now_ms

    def tick(self) -> None:
        self.now_ms += self.step_ms


def play_game(
    bot: SolitaireBot,
    seed: str,
    *,
    turn_count: int = 3,
    match_duration_seconds: int = 300,
    step_ms: int = 1_000,
    max_actions: int = 2_000,
) -> GameService:
    """Play one seed to the end and return the finished service."""
    clock = StepClock(step_ms=step_ms)
    service = GameService(
        GameOptions(match_duration_seconds=match_duration_seconds, turn_count=turn_count, now=clock)
    )
    service.start(seed)
    bot.on_game_start(service)

    for _ in range(max_actions):
        if service.game.phase != GamePhase.DEALT or service.poll_timer():
            break
        action = bot.choose_action(service)
        if action is None:
            break
        try:
            if action.kind == "draw":
                service.draw()
            else:
                service.move(action.from_ref, action.to_ref)
        except IllegalMove as exc:
            LOGGER.debug("Bot %s attempted an illegal move: %s", bot.name, exc)
            break
        clock.tick()

    if service.game.phase == GamePhase.DEALT:
        service.finish()
    return service


def run_wagers(
    bot: SolitaireBot,
    seeds: Sequence[str],
    *,
    contract: Contract,
    stake: int,
    wallet: Optional[PlayerWallet] = None,
    progression: Optional[PlayerProgression] = None,
    step_ms: int = 1_000,
) -> dict:
    """Play each seed as a wagered run and fold the results together."""
    wallet = wallet or create_wallet()
    progression = progression or create_progression()
    selection = WagerSelection(contract=contract, stake=stake)
    history: List[dict] = []

    for seed in seeds:
        try:
            wallet = begin_wager(wallet, stake)
        except InsufficientFunds:
            LOGGER.info("Wallet exhausted at %d coins; stopping", wallet.coins)
            break
        service = play_game(
            bot,
            seed,
            turn_count=contract.rules.draw_mode,
            match_duration_seconds=contract.timer_seconds,
            step_ms=step_ms,
        )
        result = complete_wager(selection, service.state(), wallet, progression, service.hint_count)
        wallet = result.updated_wallet
        progression = result.updated_progression
        history.append(
            {
                "seed": seed,
                "outcome": result.wager_result.outcome.value,
                "pi": result.run_summary.pi,
                "completed": result.run_summary.completed,
                "payout": result.total_payout,
                "net": result.wager_result.net_coins,
            }
        )
        LOGGER.info(
            "seed=%s outcome=%s pi=%d payout=%d coins=%d",
            seed,
            result.wager_result.outcome.value,
            result.run_summary.pi,
            result.total_payout,
            wallet.coins,
        )

    return {"wallet": wallet, "progression": progression, "history": history}


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run a bot through a series of wagered games.")
    parser.add_argument("--bot", default="greedy", choices=BOT_REGISTRY.keys())
    parser.add_argument("--contract", default=ALL_CONTRACTS[0].id, choices=[c.id for c in ALL_CONTRACTS])
    parser.add_argument("--stake", type=int, default=10)
    parser.add_argument("--n", type=int, default=10, help="Number of games to play.")
    parser.add_argument("--seed-prefix", default="arena")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(message)s")

    contract = get_contract(args.contract)
    assert contract is not None
    seeds = [f"{args.seed_prefix}-{idx}" for idx in range(args.n)]
    results = run_wagers(BOT_REGISTRY[args.bot](), seeds, contract=contract, stake=args.stake)

    wins = sum(1 for entry in results["history"] if entry["net"] > 0)
    print(f"Games played: {len(results['history'])}")
    print(f"Profitable runs: {wins}/{len(results['history'])}")
    print(f"Final coins: {results['wallet'].coins}")
    print(f"Rank: {results['progression'].rank.value} (xp {results['progression'].xp})")


if __name__ == "__main__":
    main()
