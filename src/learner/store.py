"""In-memory statistics store keyed by canonical position hash.

The store holds three things: position records, the list of completed
games, and global metadata. It serializes to a single JSON document with
top-level "positions", "games" and "metadata" fields (camelCase keys).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from learner.board import Board
from learner.hashing import board_summary
from learner.patterns import PatternTagger

logger = logging.getLogger(__name__)

__all__ = [
    "RESULTS",
    "SCHEMA_VERSION",
    "GameRecord",
    "Metadata",
    "MoveStats",
    "Outcomes",
    "PositionRecord",
    "PositionVisit",
    "StatisticsStore",
    "now_iso",
]

SCHEMA_VERSION = "1.0"
RESULTS = ("white", "black", "draw")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Validation helpers for documents read from storage or import
# ---------------------------------------------------------------------------

def _field(data: Any, key: str, kind: type | tuple[type, ...], default: Any = ...) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"Expected an object, got {type(data).__name__}")
    if key not in data:
        if default is ...:
            raise ValueError(f"Missing field: {key}")
        return default
    value = data[key]
    # bool is an int subclass; counters must be real ints
    if kind is int and isinstance(value, bool):
        raise ValueError(f"Field {key} must be an integer")
    if value is not None and not isinstance(value, kind):
        raise ValueError(f"Field {key} has wrong type {type(value).__name__}")
    if value is None and default is ...:
        raise ValueError(f"Field {key} must not be null")
    return value


def _count(data: Any, key: str, default: Any = ...) -> int:
    value = _field(data, key, int, default)
    if value is None:
        return default
    if value < 0:
        raise ValueError(f"Field {key} must not be negative")
    return value


def _result_field(data: dict, key: str) -> str | None:
    value = _field(data, key, str, None)
    if value is not None and value not in RESULTS:
        raise ValueError(f"Invalid result: {value!r}")
    return value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class Outcomes:
    white: int = 0
    black: int = 0
    draw: int = 0

    @property
    def total(self) -> int:
        return self.white + self.black + self.draw

    def add(self, result: str) -> None:
        setattr(self, result, getattr(self, result) + 1)

    def to_dict(self) -> dict:
        return {"white": self.white, "black": self.black, "draw": self.draw}

    @classmethod
    def from_dict(cls, data: Any) -> Outcomes:
        return cls(*(_count(data, name) for name in RESULTS))


@dataclass
class MoveStats:
    played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    def to_dict(self) -> dict:
        return {"played": self.played, "wins": self.wins,
                "losses": self.losses, "draws": self.draws}

    @classmethod
    def from_dict(cls, data: Any) -> MoveStats:
        return cls(*(_count(data, name) for name in ("played", "wins", "losses", "draws")))


@dataclass
class PositionRecord:
    hash: str
    board_summary: str
    first_seen: str
    last_seen: str
    side_to_move: str | None = None
    total_games: int = 0
    outcomes: Outcomes = field(default_factory=Outcomes)
    moves: dict[str, MoveStats] = field(default_factory=dict)
    patterns: list[str] = field(default_factory=list)
    popularity: int = 0

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "boardSummary": self.board_summary,
            "sideToMove": self.side_to_move,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "totalGames": self.total_games,
            "outcomes": self.outcomes.to_dict(),
            "moves": {move: stats.to_dict() for move, stats in self.moves.items()},
            "patterns": list(self.patterns),
            "popularity": self.popularity,
        }

    @classmethod
    def from_dict(cls, data: Any, key: str | None = None) -> PositionRecord:
        moves = _field(data, "moves", dict, {}) or {}
        patterns = _field(data, "patterns", list, []) or []
        if not all(isinstance(p, str) for p in patterns):
            raise ValueError("Pattern labels must be strings")
        side = _field(data, "sideToMove", str, None)
        if side is not None and side not in ("white", "black"):
            raise ValueError(f"Invalid side to move: {side!r}")
        record = cls(
            hash=_field(data, "hash", str, key) or key,
            board_summary=_field(data, "boardSummary", str, ""),
            first_seen=_field(data, "firstSeen", str),
            last_seen=_field(data, "lastSeen", str),
            side_to_move=side,
            total_games=_count(data, "totalGames"),
            outcomes=Outcomes.from_dict(_field(data, "outcomes", dict)),
            moves={str(m): MoveStats.from_dict(s) for m, s in moves.items()},
            patterns=list(patterns),
            popularity=_count(data, "popularity"),
        )
        if record.total_games > 0 and record.outcomes.total != record.total_games:
            raise ValueError(
                f"Outcomes of {record.hash} sum to {record.outcomes.total}, "
                f"expected {record.total_games}"
            )
        if record.popularity < record.total_games:
            raise ValueError(f"Popularity of {record.hash} is below its game count")
        return record


@dataclass
class PositionVisit:
    """One ply of a game: the position reached and the move played from it."""
    hash: str
    move: str | None
    player: str
    timestamp: int              # epoch milliseconds

    def to_dict(self) -> dict:
        return {"hash": self.hash, "move": self.move,
                "player": self.player, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Any) -> PositionVisit:
        return cls(
            hash=_field(data, "hash", str),
            move=_field(data, "move", str, None),
            player=_field(data, "player", str),
            timestamp=_field(data, "timestamp", (int, float)),
        )


@dataclass
class GameRecord:
    id: str
    start_time: str
    players: dict[str, str] = field(default_factory=dict)
    end_time: str | None = None
    result: str | None = None   # None while in progress
    positions: list[PositionVisit] = field(default_factory=list)
    moves: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "result": self.result,
            "players": dict(self.players),
            "positions": [p.to_dict() for p in self.positions],
            "moves": list(self.moves),
        }

    @classmethod
    def from_dict(cls, data: Any) -> GameRecord:
        moves = _field(data, "moves", list, []) or []
        if not all(isinstance(m, str) for m in moves):
            raise ValueError("Game moves must be strings")
        return cls(
            id=_field(data, "id", str),
            start_time=_field(data, "startTime", str),
            players=dict(_field(data, "players", dict, {}) or {}),
            end_time=_field(data, "endTime", str, None),
            result=_result_field(data, "result"),
            positions=[PositionVisit.from_dict(p) for p in _field(data, "positions", list, []) or []],
            moves=list(moves),
        )


@dataclass
class Metadata:
    version: str = SCHEMA_VERSION
    last_updated: str = field(default_factory=now_iso)
    total_games: int = 0

    def to_dict(self) -> dict:
        return {"version": self.version, "lastUpdated": self.last_updated,
                "totalGames": self.total_games}

    @classmethod
    def from_dict(cls, data: Any) -> Metadata:
        return cls(
            version=_field(data, "version", str, SCHEMA_VERSION),
            last_updated=_field(data, "lastUpdated", str, now_iso()),
            total_games=_count(data, "totalGames", 0),
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StatisticsStore:
    def __init__(self, tagger: PatternTagger | None = None):
        self.tagger = tagger or PatternTagger()
        self.positions: dict[str, PositionRecord] = {}
        self.games: list[GameRecord] = []
        self.metadata = Metadata()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatisticsStore):
            return NotImplemented
        return (self.positions == other.positions
                and self.games == other.games
                and self.metadata == other.metadata)

    def position(self, key: str) -> PositionRecord | None:
        return self.positions.get(key)

    def get_or_create(self, key: str, board: Board, side_to_move: str) -> PositionRecord:
        """Fetch or create the record for key and count one more visit.

        Summary and patterns are computed only on creation.
        """
        now = now_iso()
        record = self.positions.get(key)
        if record is None:
            record = PositionRecord(
                hash=key,
                board_summary=board_summary(board, side_to_move),
                first_seen=now,
                last_seen=now,
                side_to_move=side_to_move,
                patterns=self.tagger.tag(board, side_to_move),
            )
            self.positions[key] = record
        record.last_seen = now
        record.popularity += 1
        return record

    def fold_game(self, game: GameRecord) -> None:
        """Apply a finished game's result once to each distinct position it reached."""
        result = game.result
        if result not in RESULTS:
            raise ValueError(f"Cannot fold game {game.id} with result {result!r}")
        seen: set[str] = set()
        for visit in game.positions:
            if visit.hash in seen:
                continue
            seen.add(visit.hash)

            record = self.positions.get(visit.hash)
            if record is None:
                logger.warning("Game %s references unknown position %s", game.id, visit.hash)
                continue

            record.outcomes.add(result)
            record.total_games += 1

            if visit.move:
                stats = record.moves.setdefault(visit.move, MoveStats())
                stats.played += 1
                if result == visit.player:
                    stats.wins += 1
                elif result == "draw":
                    stats.draws += 1
                else:
                    stats.losses += 1

    def add_game(self, game: GameRecord) -> None:
        """Take ownership of a completed game and fold it into the statistics."""
        self.fold_game(game)
        self.games.append(game)
        self.metadata.total_games += 1

    def reset(self) -> None:
        self.positions = {}
        self.games = []
        self.metadata = Metadata()

    # --- Serialization ---

    def to_document(self) -> dict:
        return {
            "positions": {key: rec.to_dict() for key, rec in self.positions.items()},
            "games": [g.to_dict() for g in self.games],
            "metadata": self.metadata.to_dict(),
        }

    def serialize(self, indent: int | None = None) -> str:
        return json.dumps(self.to_document(), indent=indent)

    @classmethod
    def from_document(cls, doc: Any, tagger: PatternTagger | None = None) -> StatisticsStore:
        """Build a new store from a parsed document. Raises ValueError if malformed."""
        if not isinstance(doc, dict):
            raise ValueError("Document must be a JSON object")
        positions = _field(doc, "positions", dict, {}) or {}
        games = _field(doc, "games", list, []) or []
        store = cls(tagger=tagger)
        store.positions = {
            str(key): PositionRecord.from_dict(rec, key=str(key))
            for key, rec in positions.items()
        }
        store.games = [GameRecord.from_dict(g) for g in games]
        store.metadata = Metadata.from_dict(_field(doc, "metadata", dict, {}) or {})
        return store

    @classmethod
    def deserialize(cls, text: str, tagger: PatternTagger | None = None) -> StatisticsStore:
        try:
            doc = json.loads(text)
        except (TypeError, RecursionError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid JSON document: {e}") from e
        return cls.from_document(doc, tagger=tagger)
