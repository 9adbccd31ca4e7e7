"""Tracks the one in-progress game and folds it into the store when it ends."""

from __future__ import annotations

import enum
import logging
import time
import uuid
from typing import Callable

from learner.board import Board
from learner.hashing import HASH_LENGTH, canonicalize
from learner.store import RESULTS, GameRecord, PositionVisit, StatisticsStore, now_iso

logger = logging.getLogger(__name__)

DEFAULT_PLAYERS = {"white": "human", "black": "computer"}


class SessionState(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"


def _new_game_id() -> str:
    return f"game_{int(time.time() * 1000)}_{uuid.uuid4().hex[:5]}"


class GameSession:
    """NOT_STARTED -> IN_PROGRESS -> ENDED, with start() allowed again from ENDED.

    persist is called after a game is folded; its boolean result is logged
    but never changes the outcome of end().
    """

    def __init__(
        self,
        store: StatisticsStore,
        persist: Callable[[], bool] | None = None,
        hash_length: int = HASH_LENGTH,
    ):
        self._store = store
        self._persist = persist
        self._hash_length = hash_length
        self._game: GameRecord | None = None
        self.state = SessionState.NOT_STARTED

    @property
    def store(self) -> StatisticsStore:
        return self._store

    @store.setter
    def store(self, store: StatisticsStore) -> None:
        self._store = store

    @property
    def current_game(self) -> GameRecord | None:
        return self._game

    def start(self, players: dict[str, str] | None = None) -> GameRecord:
        """Begin a new game. An unfinished game is discarded without folding."""
        if self._game is not None:
            logger.warning("Discarding unfinished game %s", self._game.id)
        self._game = GameRecord(
            id=_new_game_id(),
            start_time=now_iso(),
            players=dict(players or DEFAULT_PLAYERS),
        )
        self.state = SessionState.IN_PROGRESS
        return self._game

    def record_position(self, board: Board, side_to_move: str, move: str | None = None) -> str:
        """Record one ply and update the position's visit stats. Returns the key."""
        if self._game is None:
            self.start()
        key = canonicalize(board, side_to_move, self._hash_length)
        self._game.positions.append(PositionVisit(
            hash=key,
            move=move,
            player=side_to_move,
            timestamp=int(time.time() * 1000),
        ))
        if move:
            self._game.moves.append(move)
        self._store.get_or_create(key, board, side_to_move)
        return key

    def end(self, result: str) -> GameRecord | None:
        """Finish the game with result 'white', 'black' or 'draw'.

        Returns None when no game is in progress.
        """
        if self._game is None:
            return None
        if result not in RESULTS:
            raise ValueError(f"Invalid result: {result!r}")

        game = self._game
        game.result = result
        game.end_time = now_iso()
        self._store.add_game(game)

        self._game = None
        self.state = SessionState.ENDED

        if self._persist is not None and not self._persist():
            logger.warning("Game %s folded but could not be persisted", game.id)
        return game

    def abandon(self) -> None:
        """Drop the in-progress game without folding it."""
        self._game = None
        self.state = SessionState.NOT_STARTED
