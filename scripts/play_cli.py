#!/usr/bin/env python3
"""Interactive CLI to play a timed Klondike game in the terminal."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from klondike.game import GameError, GameOptions
from klondike.piles import FoundationRef, PileRef, TableauRef, parse_ref_token, pile_name
from klondike.service import GameService, GameView

HELP = """Commands:
  d                 draw from stock (recycles the waste when stock is empty)
  m <from> <to>     move cards, e.g. "m w t3", "m t2:4 t6", "m t1 fH"
  a                 apply one automatic foundation move
  h                 show a hint
  f                 finish the game
  q                 quit"""


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play timed Klondike in the terminal.")
    parser.add_argument("--seed", type=str, default=None, help="Deal seed; random when omitted.")
    parser.add_argument("--turn-count", type=int, choices=(1, 3), default=3, help="Cards per draw.")
    parser.add_argument("--duration", type=int, default=300, help="Match length in seconds.")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def describe_board(view: GameView) -> List[str]:
    lines = [
        f"Seed {view.seed} | score {view.score['baseScore']} | moves {view.move_count} "
        f"| {view.time_remaining_seconds}s left",
        f"Stock: {view.stock_count:2d}   Waste: {' '.join(view.waste_labels[-3:]) or '--'}",
        "Foundations: "
        + "  ".join(f"{suit}:{len(cards):2d}" for suit, cards in view.foundations.items()),
    ]
    depth = max((len(column) for column in view.tableau_labels), default=0)
    lines.append("    " + " ".join(f"t{idx:<3d}" for idx in range(len(view.tableau_labels))))
    for row in range(depth):
        cells = [column[row] if row < len(column) else "" for column in view.tableau_labels]
        lines.append(f"{row:2d}  " + " ".join(f"{cell:<4s}" for cell in cells))
    return lines


def describe_ref(ref: PileRef) -> str:
    if isinstance(ref, TableauRef):
        return f"t{ref.index}"
    if isinstance(ref, FoundationRef):
        return f"f{ref.suit.value}"
    return pile_name(ref)


def describe_final(view: GameView) -> str:
    score = view.score
    return (
        f"Final: base {score['baseScore']} + time {score['timeBonus']} "
        f"+ efficiency {score['efficiencyBonus']} = {score['totalScore']}"
        f"{' (solved!)' if view.solved else ''}"
    )


def play(service: GameService) -> None:
    print(HELP)
    while True:
        if service.poll_timer():
            print("Time is up.")
        view = service.view()
        if view.phase == "finished":
            print(describe_final(view))
            return
        print()
        print("\n".join(describe_board(view)))
        try:
            raw = input("> ").strip()
        except EOFError:
            raw = "q"
        if not raw:
            continue
        parts = raw.split()
        command = parts[0].lower()
        try:
            if command == "q":
                service.finish()
                print(describe_final(service.view()))
                return
            if command == "d":
                service.draw()
            elif command == "m":
                if len(parts) != 3:
                    print('Usage: m <from> <to>')
                    continue
                service.move(parse_ref_token(parts[1]), parse_ref_token(parts[2]))
            elif command == "a":
                applied = service.auto_move()
                if applied is None:
                    print("No foundation move available.")
            elif command == "h":
                suggestion = service.hint()
                if suggestion is None:
                    print("No foundation move available; try drawing.")
                else:
                    print(f"Hint: {describe_ref(suggestion.from_ref)} -> {describe_ref(suggestion.to_ref)}")
            elif command == "f":
                service.finish()
            else:
                print(HELP)
        except GameError as exc:
            print(f"Not allowed: {exc}")
        except ValueError as exc:
            print(f"Could not parse pile: {exc}")


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")
    service = GameService(GameOptions(match_duration_seconds=args.duration, turn_count=args.turn_count))
    service.start(args.seed)
    play(service)


if __name__ == "__main__":
    main()
