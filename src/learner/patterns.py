"""Heuristic pattern tags attached to a position when it is first seen.

Each heuristic is one PatternRule. The tagger evaluates every rule for both
colors and emits "<color>_<suffix>" labels, e.g. "white_bishop_pair".
Swapping a placeholder rule for a real one only means changing the rule list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from learner.board import COLORS, Board, iter_pieces

__all__ = [
    "CENTER_SQUARES",
    "DEFAULT_RULES",
    "OCCUPANCY_RULES",
    "PatternRule",
    "PatternTagger",
    "always_controls_center",
    "has_bishop_pair",
    "has_doubled_pawns",
    "king_present",
    "occupies_center",
    "rules_for",
]

# d4, e4, d5, e5 as (row, col)
CENTER_SQUARES = [(3, 3), (3, 4), (4, 3), (4, 4)]


@dataclass(frozen=True)
class PatternRule:
    suffix: str
    evaluate: Callable[[Board, str], bool]


def king_present(board: Board, color: str) -> bool:
    """Placeholder king safety: a located king counts as safe.

    Attacks on the king square are not evaluated.
    """
    return any(
        p.piece_type == "king" and p.color == color for _, _, p in iter_pieces(board)
    )


def always_controls_center(board: Board, color: str) -> bool:
    """Placeholder center control: no occupancy or attack check."""
    return True


def occupies_center(board: Board, color: str) -> bool:
    """Real center check: the color has a piece on d4, e4, d5 or e5."""
    for r, c in CENTER_SQUARES:
        piece = board[r][c]
        if piece is not None and piece.color == color:
            return True
    return False


def has_bishop_pair(board: Board, color: str) -> bool:
    bishops = sum(
        1 for _, _, p in iter_pieces(board)
        if p.piece_type == "bishop" and p.color == color
    )
    return bishops >= 2


def has_doubled_pawns(board: Board, color: str) -> bool:
    pawn_files = [0] * 8
    for _, c, p in iter_pieces(board):
        if p.piece_type == "pawn" and p.color == color:
            pawn_files[c] += 1
    return any(count > 1 for count in pawn_files)


DEFAULT_RULES: tuple[PatternRule, ...] = (
    PatternRule("king_safe", king_present),
    PatternRule("center", always_controls_center),
    PatternRule("bishop_pair", has_bishop_pair),
    PatternRule("doubled_pawns", has_doubled_pawns),
)

OCCUPANCY_RULES: tuple[PatternRule, ...] = (
    PatternRule("king_safe", king_present),
    PatternRule("center", occupies_center),
    PatternRule("bishop_pair", has_bishop_pair),
    PatternRule("doubled_pawns", has_doubled_pawns),
)

_RULE_SETS = {
    "placeholder": DEFAULT_RULES,
    "occupancy": OCCUPANCY_RULES,
}


def rules_for(center_rule: str) -> tuple[PatternRule, ...]:
    """Look up a rule set by center-rule name, falling back to the placeholders."""
    return _RULE_SETS.get(center_rule, DEFAULT_RULES)


class PatternTagger:
    def __init__(self, rules: tuple[PatternRule, ...] = DEFAULT_RULES):
        self.rules = rules

    def tag(self, board: Board, side_to_move: str) -> list[str]:
        """Labels for every (rule, color) pair that holds. Order: rule, then white/black."""
        labels: list[str] = []
        for rule in self.rules:
            for color in COLORS:
                label = f"{color}_{rule.suffix}"
                if label not in labels and rule.evaluate(board, color):
                    labels.append(label)
        return labels
