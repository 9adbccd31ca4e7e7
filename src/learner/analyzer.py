"""Read-only analysis over the statistics store.

Move suggestions, inconsistent positions, opening lines and pattern
summaries. Scoring and expectation are pluggable so stronger models can
replace the simple defaults without touching the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from learner.store import MoveStats, PositionRecord, StatisticsStore

__all__ = [
    "Analyzer",
    "ExplorationBonus",
    "Inconsistency",
    "MoveSuggestion",
    "OpeningLine",
    "PatternSummary",
    "fifty_fifty",
]

OPENING_SEPARATOR = " → "


@dataclass
class ExplorationBonus:
    """Linear bonus for under-sampled moves, reaching zero at threshold plays."""
    k: float = 0.1
    threshold: int = 20

    def __call__(self, played: int) -> float:
        return self.k * max(0.0, 1 - played / self.threshold)


def fifty_fifty(record: PositionRecord) -> float:
    """Expected white score for any position: a coin flip."""
    return 0.5


@dataclass
class MoveSuggestion:
    move: str
    win_rate: float
    bonus: float
    score: float
    played: int
    stats: MoveStats


@dataclass
class Inconsistency:
    hash: str
    board_summary: str
    expected: float
    actual: float
    games: int
    patterns: list[str]
    deviation: float            # actual - expected


@dataclass
class OpeningLine:
    moves: list[str]
    games: int = 0
    wins: int = 0               # white wins
    losses: int = 0             # black wins
    draws: int = 0

    @property
    def key(self) -> str:
        return OPENING_SEPARATOR.join(self.moves)


@dataclass
class PatternSummary:
    pattern: str
    positions: int = 0
    games: int = 0
    outcomes: dict[str, int] = field(
        default_factory=lambda: {"white": 0, "black": 0, "draw": 0}
    )


class Analyzer:
    def __init__(
        self,
        store: StatisticsStore,
        scoring: Callable[[int], float] | None = None,
        expectation: Callable[[PositionRecord], float] = fifty_fifty,
        min_games: int = 5,
    ):
        self.store = store
        self.scoring = scoring or ExplorationBonus()
        self.expectation = expectation
        self.min_games = min_games

    def suggest_moves(self, key: str, side: str) -> list[MoveSuggestion]:
        """Rank moves played from this position, best first.

        Win rate is from the mover's point of view when side is the mover,
        otherwise the mover's loss rate. Ties keep recording order.
        """
        record = self.store.position(key)
        if record is None or not record.moves:
            return []

        mover = record.side_to_move or side
        suggestions = []
        for move, stats in record.moves.items():
            if stats.played:
                won = stats.wins if side == mover else stats.losses
                win_rate = won / stats.played
            else:
                win_rate = 0.0
            bonus = self.scoring(stats.played)
            suggestions.append(MoveSuggestion(
                move=move,
                win_rate=win_rate,
                bonus=bonus,
                score=win_rate + bonus,
                played=stats.played,
                stats=stats,
            ))
        suggestions.sort(key=lambda s: s.score, reverse=True)
        return suggestions

    def best_move(self, key: str, side: str) -> MoveSuggestion | None:
        suggestions = self.suggest_moves(key, side)
        return suggestions[0] if suggestions else None

    def find_inconsistencies(self, threshold: float = 0.2) -> list[Inconsistency]:
        """Positions whose white score strays more than threshold from expectation."""
        found = []
        for key, record in self.store.positions.items():
            if record.total_games < self.min_games:
                continue
            expected = self.expectation(record)
            actual = record.outcomes.white / record.total_games
            deviation = actual - expected
            if abs(deviation) > threshold:
                found.append(Inconsistency(
                    hash=key,
                    board_summary=record.board_summary,
                    expected=expected,
                    actual=actual,
                    games=record.total_games,
                    patterns=list(record.patterns),
                    deviation=deviation,
                ))
        found.sort(key=lambda i: abs(i.deviation), reverse=True)
        return found

    def opening_tree(self, depth: int = 3, limit: int = 20) -> list[OpeningLine]:
        """Most common first-`depth`-move lines among completed games."""
        if depth < 1:
            raise ValueError(f"Opening depth must be at least 1, got {depth}")
        openings: dict[str, OpeningLine] = {}
        for game in self.store.games:
            if len(game.moves) < depth:
                continue
            prefix = game.moves[:depth]
            line = openings.setdefault(OPENING_SEPARATOR.join(prefix), OpeningLine(moves=prefix))
            line.games += 1
            if game.result == "white":
                line.wins += 1
            elif game.result == "black":
                line.losses += 1
            else:
                line.draws += 1
        return sorted(openings.values(), key=lambda l: l.games, reverse=True)[:limit]

    def pattern_summary(self) -> list[PatternSummary]:
        """Outcome totals per pattern tag, summed over the positions carrying it."""
        summaries: dict[str, PatternSummary] = {}
        for record in self.store.positions.values():
            for pattern in record.patterns:
                summary = summaries.setdefault(pattern, PatternSummary(pattern=pattern))
                summary.positions += 1
                summary.games += record.total_games
                for result, count in record.outcomes.to_dict().items():
                    summary.outcomes[result] += count
        return sorted(summaries.values(), key=lambda s: s.games, reverse=True)
