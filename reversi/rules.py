"""Placement rules: ray scanning, legality, captures and scoring.

Every function here only reads the board, so scans over many coordinates may
run concurrently as long as nothing mutates the board meanwhile.
"""
from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, Union

from .board import Board, Coord, Outcome, Piece

# Eight compass offsets as (dx, dy); y grows downwards.
DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (0, -1), (-1, 0), (1, 0),
    (1, 1), (1, -1), (-1, 1), (-1, -1),
)


@dataclass(frozen=True)
class Sandwich:
    """A run of opposing pieces closed off by one of the mover's pieces."""

    candidates: Tuple[int, ...]


@dataclass(frozen=True)
class NoCapture:
    """The ray reached an edge or a gap, or met the mover's colour immediately."""


NO_CAPTURE = NoCapture()

ScanResult = Union[Sandwich, NoCapture]


def scan_direction(board: Board, mover: Piece, x: int, y: int, dx: int, dy: int) -> ScanResult:
    """Walk from ``(x, y)`` along ``(dx, dy)``, excluding the origin."""
    candidates: List[int] = []
    cx, cy = x + dx, y + dy
    while board.inside(cx, cy):
        cell = board.get(cx, cy)
        if cell is None:
            return NO_CAPTURE
        if cell is mover:
            return Sandwich(tuple(candidates)) if candidates else NO_CAPTURE
        candidates.append(board.index(cx, cy))
        cx += dx
        cy += dy
    return NO_CAPTURE


def scan_all(board: Board, mover: Piece, x: int, y: int) -> List[ScanResult]:
    return [scan_direction(board, mover, x, y, dx, dy) for dx, dy in DIRECTIONS]


def is_legal(board: Board, mover: Piece, x: int, y: int) -> bool:
    """Return True if ``mover`` may place a piece at ``(x, y)``.

    When exactly one empty cell is left on the board, that cell is legal for
    either player whether or not it captures anything.
    """
    if board.get(x, y) is not None:
        return False
    if board.empty_count() == 1:
        return True
    return any(
        isinstance(scan_direction(board, mover, x, y, dx, dy), Sandwich)
        for dx, dy in DIRECTIONS
    )


def captures(board: Board, mover: Piece, x: int, y: int) -> Set[int]:
    """Return the indices flipped if ``mover`` places at ``(x, y)``.

    Legality is not checked; an occupied cell yields an empty set. Rays never
    overlap, so the union has no duplicates to resolve.
    """
    if board.get(x, y) is not None:
        return set()
    flipped: Set[int] = set()
    for result in scan_all(board, mover, x, y):
        if isinstance(result, Sandwich):
            flipped.update(result.candidates)
    return flipped


def legal_moves(board: Board, mover: Piece, executor: Optional[Executor] = None) -> List[Coord]:
    """All legal coordinates for ``mover`` in index order.

    With an ``executor`` the per-cell checks are mapped through it.
    """
    coords = list(board.coords())
    if executor is None:
        flags = [is_legal(board, mover, x, y) for x, y in coords]
    else:
        flags = list(executor.map(lambda c: is_legal(board, mover, c[0], c[1]), coords))
    return [c for c, ok in zip(coords, flags) if ok]


def has_any_move(board: Board, mover: Piece) -> bool:
    return any(is_legal(board, mover, x, y) for x, y in board.coords())


def capture_counts(
    board: Board, mover: Piece, executor: Optional[Executor] = None
) -> Dict[Coord, int]:
    """Map each legal coordinate to the number of pieces it would flip."""
    moves = legal_moves(board, mover, executor)
    if executor is None:
        counts = [len(captures(board, mover, x, y)) for x, y in moves]
    else:
        counts = list(executor.map(lambda c: len(captures(board, mover, c[0], c[1])), moves))
    return dict(zip(moves, counts))


def score(board: Board) -> Tuple[int, int]:
    """Return ``(black, white)`` piece counts."""
    return board.count(Piece.BLACK), board.count(Piece.WHITE)


def evaluate(board: Board) -> Outcome:
    black, white = score(board)
    if black > white:
        return Outcome.BLACK
    if white > black:
        return Outcome.WHITE
    return Outcome.TIE
