#!/usr/bin/env python3
"""Play Reversi games with random moves on both sides and report the results."""
import argparse
import logging
import random
from collections import Counter

from reversi.board import DEFAULT_SIZE, Outcome
from reversi.bots import play_out, random_bot
from reversi.errors import InvalidConfigurationError
from reversi.game import Game

MESSAGES = {
    Outcome.WHITE: "White wins",
    Outcome.BLACK: "Black wins",
    Outcome.TIE: "Tie",
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Play random Reversi games")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Board side length")
    parser.add_argument("--games", type=int, default=1, help="Number of games to play")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--verbose", action="store_true", help="Log every placement and forfeit"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        game = Game(args.size)
    except InvalidConfigurationError as exc:
        parser.error(str(exc))
    rng = random.Random(args.seed)
    results: Counter = Counter()
    for _ in range(args.games):
        outcome = play_out(game, random_bot, rng)
        black, white = game.score()
        print(f"{MESSAGES[outcome]} ({black}-{white} after {game.turns} turns)")
        results[outcome] += 1
        game.reset()

    if args.games > 1:
        print(
            f"White {results[Outcome.WHITE]}, Black {results[Outcome.BLACK]}, "
            f"Tie {results[Outcome.TIE]}"
        )


if __name__ == "__main__":
    main()
