"""Centralized learner configuration.

All settings are read from environment variables (or a .env.learner file).
Every field has a default, so the learner runs with no configuration at all.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env.learner", env_file_encoding="utf-8",
    )

    # Persistence
    storage_backend: Literal["memory", "file", "sqlite"] = "file"
    storage_key: str = "rchess_db"
    data_dir: str = "data"
    sqlite_path: str = "data/learner.db"

    # Position keys
    hash_length: int = 8

    # Analysis
    exploration_k: float = 0.1
    exploration_threshold: int = 20
    min_games: int = 5
    inconsistency_threshold: float = 0.2
    opening_depth: int = 3
    opening_limit: int = 20

    # Pattern tagging: "placeholder" or "occupancy"
    center_rule: Literal["placeholder", "occupancy"] = "placeholder"

    log_level: str = "INFO"
