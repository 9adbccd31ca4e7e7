"""Canonical position keys and board summaries.

The key is a short prefix of the base64 encoding of a placement string, so
two different boards can occasionally share a key. The store treats such a
collision as the same position.
"""

from __future__ import annotations

import base64
import re

from learner.board import Board

__all__ = [
    "HASH_LENGTH",
    "board_summary",
    "canonicalize",
    "piece_to_char",
    "placement_string",
]

HASH_LENGTH = 8

_PIECE_CHARS = {
    "pawn": "p", "knight": "n", "bishop": "b",
    "rook": "r", "queen": "q", "king": "k",
}
_UNSAFE_KEY_CHARS = re.compile(r"[+/=]")


def piece_to_char(piece_type: str) -> str:
    return _PIECE_CHARS.get(piece_type, "?")


def _encode_ranks(board: Board, render) -> str:
    ranks = []
    for row in board:
        out = ""
        empty = 0
        for piece in row:
            if piece is None:
                empty += 1
                continue
            if empty:
                out += str(empty)
                empty = 0
            out += render(piece)
        if empty:
            out += str(empty)
        ranks.append(out)
    return "/".join(ranks)


def placement_string(board: Board, side_to_move: str) -> str:
    """Rank-by-rank placement with 2-char pieces, e.g. 'wrwn.../8/...w'."""
    placement = _encode_ranks(
        board, lambda p: ("w" if p.color == "white" else "b") + piece_to_char(p.piece_type)
    )
    return placement + ("w" if side_to_move == "white" else "b")


def canonicalize(board: Board, side_to_move: str, length: int = HASH_LENGTH) -> str:
    """Short printable key for (board, side_to_move)."""
    encoded = base64.b64encode(placement_string(board, side_to_move).encode("ascii"))
    return _UNSAFE_KEY_CHARS.sub("", encoded.decode("ascii")[:length])


def board_summary(board: Board, side_to_move: str) -> str:
    """FEN-like placement summary. Lossy: no castling, en passant or clocks."""

    def render(piece):
        char = piece_to_char(piece.piece_type)
        return char.upper() if piece.color == "white" else char

    suffix = " w" if side_to_move == "white" else " b"
    return _encode_ranks(board, render) + suffix
