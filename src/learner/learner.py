"""Learner facade: one store, one game session, one storage backend.

Load, save and import never raise on bad data or a failing backend. They
log and return False, and the in-memory store stays authoritative. An
import that replaced the store still reports success if only its save fails.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

from learner.analyzer import (
    Analyzer,
    ExplorationBonus,
    Inconsistency,
    MoveSuggestion,
    OpeningLine,
    PatternSummary,
)
from learner.board import Board
from learner.config import Settings
from learner.hashing import HASH_LENGTH
from learner.patterns import PatternTagger, rules_for
from learner.persistence import StorageBackend, make_backend
from learner.session import GameSession
from learner.store import GameRecord, PositionRecord, StatisticsStore, now_iso

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "rchess_db"


def export_filename(today: date | None = None) -> str:
    """Download name for an exported document, e.g. rchess_2024-05-01.db.json."""
    today = today or date.today()
    return f"rchess_{today.isoformat()}.db.json"


class Learner:
    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str = DEFAULT_STORAGE_KEY,
        tagger: PatternTagger | None = None,
        analyzer_options: dict | None = None,
        hash_length: int = HASH_LENGTH,
    ):
        self._backend = backend
        self._storage_key = storage_key
        self._tagger = tagger or PatternTagger()
        self._analyzer_options = analyzer_options or {}
        self.store = StatisticsStore(tagger=self._tagger)
        self.session = GameSession(self.store, persist=self.save, hash_length=hash_length)
        self.load()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Learner:
        settings = settings or Settings()
        return cls(
            make_backend(settings),
            storage_key=settings.storage_key,
            tagger=PatternTagger(rules_for(settings.center_rule)),
            analyzer_options={
                "scoring": ExplorationBonus(
                    k=settings.exploration_k, threshold=settings.exploration_threshold,
                ),
                "min_games": settings.min_games,
            },
            hash_length=settings.hash_length,
        )

    @property
    def analyzer(self) -> Analyzer:
        return Analyzer(self.store, **self._analyzer_options)

    def _replace_store(self, store: StatisticsStore) -> None:
        self.store = store
        self.session.store = store

    # --- Persistence ---

    def load(self) -> bool:
        """Load the persisted document. Keeps the current store on failure.

        A missing document is not a failure: the store stays as it is.
        """
        try:
            text = self._backend.get(self._storage_key)
        except (OSError, ValueError, sqlite3.Error) as e:
            logger.warning("Error loading database: %s", e)
            return False
        if text is None:
            return True
        try:
            store = StatisticsStore.deserialize(text, tagger=self._tagger)
        except ValueError as e:
            logger.warning("Error loading database: %s", e)
            return False
        self._replace_store(store)
        return True

    def save(self) -> bool:
        previous = self.store.metadata.last_updated
        self.store.metadata.last_updated = now_iso()
        try:
            self._backend.set(self._storage_key, self.store.serialize())
        except (OSError, sqlite3.Error) as e:
            self.store.metadata.last_updated = previous
            logger.error("Error saving database: %s", e)
            return False
        return True

    def export(self) -> str:
        return self.store.serialize(indent=2)

    def import_document(self, text: str) -> bool:
        """Replace the whole store with a parsed document.

        Malformed input leaves the current store untouched and returns False.
        Once the store is replaced the import counts as done, even if the
        follow-up save fails; that failure is only logged.
        """
        try:
            store = StatisticsStore.deserialize(text, tagger=self._tagger)
        except ValueError as e:
            logger.warning("Error importing database: %s", e)
            return False
        self.session.abandon()
        self._replace_store(store)
        if not self.save():
            logger.warning("Imported database is not persisted yet")
        return True

    def reset(self) -> bool:
        """Clear all positions, games and counters, abandoning any game in progress."""
        self.session.abandon()
        self.store.reset()
        return self.save()

    # --- Game tracking ---

    def start_game(self, players: dict[str, str] | None = None) -> GameRecord:
        return self.session.start(players)

    def record_position(self, board: Board, side_to_move: str, move: str | None = None) -> str:
        return self.session.record_position(board, side_to_move, move)

    def end_game(self, result: str) -> GameRecord | None:
        return self.session.end(result)

    # --- Analysis ---

    def position_stats(self, key: str) -> PositionRecord | None:
        return self.store.position(key)

    def suggest_moves(self, key: str, side: str) -> list[MoveSuggestion]:
        return self.analyzer.suggest_moves(key, side)

    def best_move(self, key: str, side: str) -> MoveSuggestion | None:
        return self.analyzer.best_move(key, side)

    def find_inconsistencies(self, threshold: float = 0.2) -> list[Inconsistency]:
        return self.analyzer.find_inconsistencies(threshold)

    def opening_tree(self, depth: int = 3, limit: int = 20) -> list[OpeningLine]:
        return self.analyzer.opening_tree(depth, limit)

    def pattern_summary(self) -> list[PatternSummary]:
        return self.analyzer.pattern_summary()


def document_summary(learner: Learner) -> dict:
    """Counts shown by the CLI and the status endpoint."""
    meta = learner.store.metadata
    return {
        "positions": len(learner.store.positions),
        "games": len(learner.store.games),
        "total_games": meta.total_games,
        "version": meta.version,
        "last_updated": meta.last_updated,
        "in_progress": learner.session.current_game is not None,
    }
