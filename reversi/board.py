"""Board representation for Reversi.

Cells are kept in a flat list addressed by ``y * size + x``. A cell holds
``None`` when empty or a :class:`Piece`.
"""
from __future__ import annotations

import enum
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import InvalidConfigurationError, OutOfBoundsError

DEFAULT_SIZE = 8

Coord = Tuple[int, int]


class Piece(enum.Enum):
    BLACK = "black"
    WHITE = "white"

    @property
    def opponent(self) -> "Piece":
        return Piece.WHITE if self is Piece.BLACK else Piece.BLACK

    @property
    def symbol(self) -> str:
        return "B" if self is Piece.BLACK else "W"


class Outcome(enum.Enum):
    BLACK = "black"
    WHITE = "white"
    TIE = "tie"


_SYMBOLS = {"B": Piece.BLACK, "W": Piece.WHITE, ".": None}


def check_size(size: int) -> None:
    """Raise :class:`InvalidConfigurationError` unless ``size`` can be seeded."""
    if not isinstance(size, int) or isinstance(size, bool):
        raise InvalidConfigurationError(f"board size must be an integer, got {size!r}")
    if size < 2:
        raise InvalidConfigurationError(f"board size must be at least 2, got {size}")
    if size % 2 != 0:
        raise InvalidConfigurationError(f"board size must be even, got {size}")


class Board:
    """Square grid of cells with the four centre pieces seeded."""

    def __init__(self, size: int = DEFAULT_SIZE) -> None:
        check_size(size)
        self.size = size
        self.cells: List[Optional[Piece]] = []
        self.reset()

    def reset(self) -> None:
        """Clear every cell and place the starting pieces."""
        self.cells = [None] * (self.size * self.size)
        mid = self.size // 2
        self.set(mid - 1, mid - 1, Piece.WHITE)
        self.set(mid, mid - 1, Piece.BLACK)
        self.set(mid - 1, mid, Piece.BLACK)
        self.set(mid, mid, Piece.WHITE)

    @classmethod
    def from_rows(cls, rows: Iterable[str]) -> "Board":
        """Build a board from text rows of ``B``, ``W`` and ``.`` (top row first).

        Whitespace inside a row is ignored so boards can be written with
        spaced columns.
        """
        cleaned = ["".join(row.split()) for row in rows]
        size = len(cleaned)
        check_size(size)
        board = cls.__new__(cls)
        board.size = size
        board.cells = []
        for y, row in enumerate(cleaned):
            if len(row) != size:
                raise InvalidConfigurationError(
                    f"row {y} has {len(row)} cells, expected {size}"
                )
            for ch in row:
                if ch.upper() not in _SYMBOLS:
                    raise InvalidConfigurationError(f"unknown cell symbol {ch!r}")
                board.cells.append(_SYMBOLS[ch.upper()])
        return board

    def rows(self) -> List[str]:
        """Return the board as text rows, the inverse of :meth:`from_rows`."""
        return [
            "".join(cell.symbol if cell else "." for cell in self.cells[y * self.size:(y + 1) * self.size])
            for y in range(self.size)
        ]

    def copy(self) -> "Board":
        new_board = Board.__new__(Board)
        new_board.size = self.size
        new_board.cells = self.cells[:]
        return new_board

    def inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def check(self, x: int, y: int) -> None:
        if not self.inside(x, y):
            raise OutOfBoundsError(x, y, self.size)

    def index(self, x: int, y: int) -> int:
        return y * self.size + x

    def coord(self, index: int) -> Coord:
        return index % self.size, index // self.size

    def get(self, x: int, y: int) -> Optional[Piece]:
        return self.cells[y * self.size + x]

    def set(self, x: int, y: int, piece: Optional[Piece]) -> None:
        self.cells[y * self.size + x] = piece

    def coords(self) -> Iterator[Coord]:
        """Yield every coordinate in index order."""
        for index in range(len(self.cells)):
            yield self.coord(index)

    def count(self, piece: Optional[Piece]) -> int:
        return sum(cell is piece for cell in self.cells)

    def empty_count(self) -> int:
        return self.count(None)

    def occupied_count(self) -> int:
        return len(self.cells) - self.empty_count()

    def is_full(self) -> bool:
        return None not in self.cells

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.size == other.size and self.cells == other.cells

    def __repr__(self) -> str:
        return f"Board({self.rows()!r})"
