"""Board snapshots fed to the learner.

A snapshot is an 8x8 grid of cells, each either None or a Piece. Row 0 is
rank 1 and column 0 is file a. The learner never mutates a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

import chess

__all__ = [
    "COLORS",
    "PIECE_TYPES",
    "Board",
    "Piece",
    "board_from_cells",
    "board_from_chess",
    "board_from_fen",
    "iter_pieces",
]

COLORS = ("white", "black")
PIECE_TYPES = ("pawn", "knight", "bishop", "rook", "queen", "king")

_CHESS_PIECE_NAMES = {
    chess.PAWN: "pawn", chess.KNIGHT: "knight", chess.BISHOP: "bishop",
    chess.ROOK: "rook", chess.QUEEN: "queen", chess.KING: "king",
}


@dataclass(frozen=True)
class Piece:
    color: str
    piece_type: str

    def __post_init__(self):
        if self.color not in COLORS:
            raise ValueError(f"Unknown color: {self.color!r}")
        if self.piece_type not in PIECE_TYPES:
            raise ValueError(f"Unknown piece type: {self.piece_type!r}")


Board = list[list[Piece | None]]


def iter_pieces(board: Board) -> Iterator[tuple[int, int, Piece]]:
    """Yield (row, col, piece) for every occupied cell."""
    for r, row in enumerate(board):
        for c, piece in enumerate(row):
            if piece is not None:
                yield r, c, piece


def board_from_chess(board: chess.Board) -> Board:
    grid: Board = [[None] * 8 for _ in range(8)]
    for square, piece in board.piece_map().items():
        color = "white" if piece.color == chess.WHITE else "black"
        grid[chess.square_rank(square)][chess.square_file(square)] = Piece(
            color, _CHESS_PIECE_NAMES[piece.piece_type]
        )
    return grid


def board_from_fen(fen: str) -> tuple[Board, str]:
    """Build a snapshot and side to move from a FEN string."""
    try:
        board = chess.Board(fen)
    except ValueError as e:
        raise ValueError(f"Invalid FEN: {fen}") from e
    side = "white" if board.turn == chess.WHITE else "black"
    return board_from_chess(board), side


def _cell_from_value(value: Any) -> Piece | None:
    if value is None:
        return None
    if isinstance(value, Piece):
        return value
    if isinstance(value, dict):
        piece_type = value.get("pieceType", value.get("piece_type"))
        return Piece(value.get("color"), piece_type)
    raise ValueError(f"Invalid board cell: {value!r}")


def board_from_cells(rows: Any) -> Board:
    """Build a snapshot from nested lists of None / {"color", "pieceType"} cells."""
    if not isinstance(rows, (list, tuple)) or len(rows) != 8:
        raise ValueError("Board must have 8 rows")
    grid: Board = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) != 8:
            raise ValueError("Each board row must have 8 cells")
        grid.append([_cell_from_value(cell) for cell in row])
    return grid
