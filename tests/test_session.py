"""Tests for the game session state machine."""

import re

import chess
import pytest

from learner.board import board_from_fen
from learner.session import DEFAULT_PLAYERS, GameSession, SessionState
from learner.store import StatisticsStore

FULL_KEY = 400
START, START_SIDE = board_from_fen(chess.STARTING_FEN)
AFTER_E4, AFTER_E4_SIDE = board_from_fen(
    "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
)


def _session(persist=None):
    store = StatisticsStore()
    return GameSession(store, persist=persist, hash_length=FULL_KEY), store


class TestStart:
    def test_initial_state(self):
        session, _ = _session()
        assert session.state is SessionState.NOT_STARTED
        assert session.current_game is None

    def test_start_allocates_game(self):
        session, _ = _session()
        game = session.start()
        assert session.state is SessionState.IN_PROGRESS
        assert re.fullmatch(r"game_\d+_[0-9a-f]{5}", game.id)
        assert game.result is None
        assert game.end_time is None
        assert game.players == DEFAULT_PLAYERS

    def test_custom_players(self):
        session, _ = _session()
        game = session.start({"white": "computer", "black": "computer"})
        assert game.players == {"white": "computer", "black": "computer"}

    def test_ids_unique(self):
        session, _ = _session()
        assert session.start().id != session.start().id


class TestRecordPosition:
    def test_auto_start(self):
        """Recording without start() begins a game."""
        session, _ = _session()
        session.record_position(START, START_SIDE, "e4")
        assert session.state is SessionState.IN_PROGRESS
        assert session.current_game is not None

    def test_appends_visit_and_move(self):
        session, store = _session()
        key = session.record_position(START, START_SIDE, "e4")
        session.record_position(AFTER_E4, AFTER_E4_SIDE)
        game = session.current_game
        assert [v.hash for v in game.positions][0] == key
        assert game.positions[0].move == "e4"
        assert game.positions[0].player == "white"
        assert game.positions[1].move is None
        assert game.moves == ["e4"]
        assert isinstance(game.positions[0].timestamp, int)

    def test_store_updated_immediately(self):
        session, store = _session()
        key = session.record_position(START, START_SIDE)
        assert store.positions[key].popularity == 1
        assert store.positions[key].total_games == 0


class TestEnd:
    def test_end_without_game(self):
        session, store = _session()
        assert session.end("white") is None
        assert store.metadata.total_games == 0
        assert session.state is SessionState.NOT_STARTED

    def test_end_folds_and_stores(self):
        session, store = _session()
        key = session.record_position(START, START_SIDE, "e4")
        session.record_position(AFTER_E4, AFTER_E4_SIDE, "e5")
        game = session.end("white")
        assert game.result == "white"
        assert game.end_time is not None
        assert store.games == [game]
        assert store.metadata.total_games == 1
        assert store.positions[key].moves["e4"].wins == 1
        assert session.state is SessionState.ENDED
        assert session.current_game is None

    def test_same_position_twice_counts_once(self):
        session, store = _session()
        key = session.record_position(START, START_SIDE, "Nf3")
        session.record_position(START, START_SIDE, "Nf3")
        session.end("white")
        record = store.positions[key]
        assert record.total_games == 1
        assert record.popularity == 2

    def test_persists_on_end(self):
        calls = []
        session, _ = _session(persist=lambda: calls.append(1) or True)
        session.record_position(START, START_SIDE)
        session.end("draw")
        assert calls == [1]

    def test_persist_failure_still_returns_game(self):
        session, store = _session(persist=lambda: False)
        session.record_position(START, START_SIDE)
        assert session.end("black") is not None
        assert store.metadata.total_games == 1

    def test_invalid_result_keeps_game_open(self):
        session, store = _session()
        session.record_position(START, START_SIDE)
        with pytest.raises(ValueError):
            session.end("purple")
        assert session.state is SessionState.IN_PROGRESS
        assert store.games == []

    def test_restart_after_end(self):
        session, _ = _session()
        session.record_position(START, START_SIDE)
        session.end("white")
        session.start()
        assert session.state is SessionState.IN_PROGRESS

    def test_abandon(self):
        session, store = _session()
        session.record_position(START, START_SIDE)
        session.abandon()
        assert session.current_game is None
        assert session.state is SessionState.NOT_STARTED
        assert store.games == []
