"""Tests for centralized configuration."""

import pytest
from pydantic import ValidationError

from learner.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        """Everything has a default; no env vars are required."""
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("HASH_LENGTH", raising=False)
        s = Settings(_env_file=None)
        assert s.storage_backend == "file"
        assert s.storage_key == "rchess_db"
        assert s.hash_length == 8
        assert s.exploration_k == 0.1
        assert s.exploration_threshold == 20
        assert s.min_games == 5
        assert s.inconsistency_threshold == 0.2
        assert s.opening_depth == 3
        assert s.opening_limit == 20
        assert s.center_rule == "placeholder"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("SQLITE_PATH", "/data/learner.db")
        monkeypatch.setenv("HASH_LENGTH", "16")
        monkeypatch.setenv("EXPLORATION_K", "0.25")
        monkeypatch.setenv("CENTER_RULE", "occupancy")
        s = Settings(_env_file=None)
        assert s.storage_backend == "sqlite"
        assert s.sqlite_path == "/data/learner.db"
        assert s.hash_length == 16
        assert s.exploration_k == 0.25
        assert s.center_rule == "occupancy"

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env.learner"
        env.write_text("STORAGE_KEY=custom_db\nMIN_GAMES=3\n")
        s = Settings(_env_file=str(env))
        assert s.storage_key == "custom_db"
        assert s.min_games == 3

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "redis")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
