"""Exceptions raised by the Reversi engine."""
from __future__ import annotations


class ReversiError(Exception):
    """Base class for all engine errors."""


class OutOfBoundsError(ReversiError, ValueError):
    """A coordinate lies outside the board."""

    def __init__(self, x: int, y: int, size: int) -> None:
        super().__init__(f"({x}, {y}) is outside a {size}x{size} board")
        self.x = x
        self.y = y
        self.size = size


class IllegalMoveError(ReversiError, ValueError):
    """The cell is occupied or the placement captures nothing."""

    def __init__(self, x: int, y: int, reason: str = "illegal move") -> None:
        super().__init__(f"({x}, {y}): {reason}")
        self.x = x
        self.y = y


class GameOverError(ReversiError):
    """The game has finished; ``reset()`` is required before playing again."""


class InvalidConfigurationError(ReversiError, ValueError):
    """The board size or a serialized game state cannot be used."""
