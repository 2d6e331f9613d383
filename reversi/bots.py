"""Automated players for Reversi.

Bots only pick among the legal moves reported by the engine; they never
evaluate positions.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, Optional

from .board import Coord, Outcome
from .game import Game

logger = logging.getLogger(__name__)

BotStrategy = Callable[[Game, Optional[random.Random]], Optional[Coord]]


def random_bot(game: Game, rng: Optional[random.Random] = None) -> Optional[Coord]:
    """Pick a uniformly random legal move, or ``None`` when there is none."""
    moves = game.legal_moves()
    if not moves:
        return None
    return (rng or random).choice(moves)


def first_bot(game: Game, rng: Optional[random.Random] = None) -> Optional[Coord]:
    """Pick the first legal move in board order."""
    moves = game.legal_moves()
    return moves[0] if moves else None


BOTS: dict[str, BotStrategy] = {
    "Random": random_bot,
    "First": first_bot,
}


def play_out(
    game: Game,
    strategy: BotStrategy = random_bot,
    rng: Optional[random.Random] = None,
) -> Outcome:
    """Let ``strategy`` play both sides until the game ends."""
    outcome = game.outcome()
    while outcome is None:
        move = strategy(game, rng)
        if move is None:
            # Forfeits are resolved by the game, so a live game always has a move.
            raise RuntimeError("strategy returned no move for a game in progress")
        game.place(*move)
        outcome = game.outcome()
    logger.debug("play-out finished after %d turns: %s", game.turns, outcome.value)
    return outcome
