"""Reversi game state and turn sequencing."""
from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from . import rules
from .board import DEFAULT_SIZE, Board, Coord, Outcome, Piece
from .errors import GameOverError, IllegalMoveError, InvalidConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToMove:
    player: Piece


@dataclass(frozen=True)
class Terminal:
    outcome: Outcome


TurnState = Union[ToMove, Terminal]


class Game:
    """A single Reversi game on an ``size`` x ``size`` board.

    White moves first. Turns are skipped automatically when the player to move
    has no legal placement, and the game ends once the board is full or
    neither side can move.
    """

    def __init__(self, size: int = DEFAULT_SIZE) -> None:
        self.board = Board(size)
        self.state: TurnState = ToMove(Piece.WHITE)
        # Coordinates of the most recent placement, ``None`` before the first.
        self.last_move: Optional[Coord] = None
        # Player whose turn was most recently skipped.
        self.last_forfeit: Optional[Piece] = None
        self.turns = 0
        self._settle()

    @property
    def size(self) -> int:
        return self.board.size

    def reset(self) -> None:
        """Return to the seeded position with White to move."""
        self.board.reset()
        self.state = ToMove(Piece.WHITE)
        self.last_move = None
        self.last_forfeit = None
        self.turns = 0
        self._settle()

    def copy(self) -> "Game":
        """Return an independent copy of this game."""
        new_game = Game.__new__(Game)
        new_game.board = self.board.copy()
        new_game.state = self.state
        new_game.last_move = self.last_move
        new_game.last_forfeit = self.last_forfeit
        new_game.turns = self.turns
        return new_game

    # Queries -----------------------------------------------------------

    def current_turn(self) -> Optional[Piece]:
        """The player to move, or ``None`` once the game is over."""
        if isinstance(self.state, ToMove):
            return self.state.player
        return None

    def outcome(self) -> Optional[Outcome]:
        if isinstance(self.state, Terminal):
            return self.state.outcome
        return None

    def is_over(self) -> bool:
        return isinstance(self.state, Terminal)

    def is_legal(self, x: int, y: int) -> bool:
        self.board.check(x, y)
        player = self.current_turn()
        if player is None:
            return False
        return rules.is_legal(self.board, player, x, y)

    def captures(self, x: int, y: int) -> Set[int]:
        self.board.check(x, y)
        player = self.current_turn()
        if player is None:
            return set()
        return rules.captures(self.board, player, x, y)

    def has_any_move(self, player: Piece) -> bool:
        return rules.has_any_move(self.board, player)

    def legal_moves(self, executor: Optional[Executor] = None) -> List[Coord]:
        player = self.current_turn()
        if player is None:
            return []
        return rules.legal_moves(self.board, player, executor)

    def capture_counts(self, executor: Optional[Executor] = None) -> Dict[Coord, int]:
        player = self.current_turn()
        if player is None:
            return {}
        return rules.capture_counts(self.board, player, executor)

    def score(self) -> Tuple[int, int]:
        return rules.score(self.board)

    # Mutation ----------------------------------------------------------

    def place(self, x: int, y: int) -> Set[int]:
        """Place a piece for the player to move and return the flipped indices.

        Raises :class:`OutOfBoundsError`, :class:`GameOverError` or
        :class:`IllegalMoveError` without touching the board.
        """
        self.board.check(x, y)
        player = self.current_turn()
        if player is None:
            raise GameOverError("game is over; reset to play again")
        if self.board.get(x, y) is not None:
            raise IllegalMoveError(x, y, "cell is occupied")
        if not rules.is_legal(self.board, player, x, y):
            raise IllegalMoveError(x, y, "no pieces would be captured")
        flipped = rules.captures(self.board, player, x, y)
        self.board.set(x, y, player)
        for index in flipped:
            self.board.cells[index] = player
        self.last_move = (x, y)
        self.turns += 1
        logger.debug("%s placed at (%d, %d), flipping %d", player.value, x, y, len(flipped))
        self.state = ToMove(player.opponent)
        self._settle()
        return flipped

    def _settle(self) -> None:
        """Apply forfeits and detect the end of the game.

        Called whenever a player is about to move. At most one forfeit happens
        per call; if the other player cannot move either the game ends.
        """
        if not isinstance(self.state, ToMove):
            return
        if self.board.is_full():
            self._finish()
            return
        player = self.state.player
        if rules.has_any_move(self.board, player):
            return
        logger.info("%s has no legal move and forfeits the turn", player.value)
        self.last_forfeit = player
        self.state = ToMove(player.opponent)
        if not rules.has_any_move(self.board, player.opponent):
            self._finish()

    def _finish(self) -> None:
        outcome = rules.evaluate(self.board)
        black, white = self.score()
        logger.info("game over: %s (black %d, white %d)", outcome.value, black, white)
        self.state = Terminal(outcome)

    # Serialization -----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly snapshot for presentation layers."""
        current = self.current_turn()
        outcome = self.outcome()
        black, white = self.score()
        return {
            "size": self.size,
            "board": self.board.rows(),
            "current": current.value if current else None,
            "outcome": outcome.value if outcome else None,
            "last": list(self.last_move) if self.last_move else None,
            "forfeit": self.last_forfeit.value if self.last_forfeit else None,
            "turns": self.turns,
            "score": {"black": black, "white": white},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Game":
        """Rebuild a game from :meth:`to_dict` output.

        Only ``board`` is required. ``current`` defaults to white. The forfeit
        and end-of-game rules are applied to the loaded position.
        """
        if not isinstance(data, dict):
            raise InvalidConfigurationError("saved state must be an object")
        rows = data.get("board")
        if not isinstance(rows, list) or not all(isinstance(r, str) for r in rows):
            raise InvalidConfigurationError("board must be a list of strings")
        current = data.get("current") or Piece.WHITE.value
        try:
            player = Piece(current)
        except (TypeError, ValueError):
            raise InvalidConfigurationError(f"unknown player {current!r}") from None
        board = Board.from_rows(rows)
        last = data.get("last")
        if last is not None:
            if (
                not isinstance(last, (list, tuple))
                or len(last) != 2
                or not all(isinstance(v, int) and not isinstance(v, bool) for v in last)
                or not board.inside(last[0], last[1])
            ):
                raise InvalidConfigurationError(f"last move {last!r} is not a cell on the board")
            last = (last[0], last[1])
        turns = data.get("turns", 0)
        if not isinstance(turns, int) or isinstance(turns, bool) or turns < 0:
            raise InvalidConfigurationError(f"turns must be a non-negative integer, got {turns!r}")
        game = cls.__new__(cls)
        game.board = board
        game.state = ToMove(player)
        game.last_move = last
        game.last_forfeit = None
        game.turns = turns
        game._settle()
        return game
