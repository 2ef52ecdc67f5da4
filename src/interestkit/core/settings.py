"""Centralized configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the working directory: .env, .env.local, .env.dev/.env.test/.env.prod

Engines take an explicit `Settings` object, so tests and embedders can build
as many independently configured instances as they like; the module-level
`settings` is only the default.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SEVEN_DAYS_MS = 1000 * 60 * 60 * 24 * 7

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "with", "to", "of", "a", "in", "on", "by",
        "or", "at", "is", "it", "how", "make", "your", "you", "from",
    }
)  # fmt: skip

DEFAULT_BUCKET_ROUTES: dict[str, str] = {
    "recipe": "items",
    "category": "items",
    "video": "items",
    "diet": "items",
    "search": "items",
    "section": "items",
    "action": "items",
    "tag": "items",
    "game": "items",
    "trailer": "items",
}


class Settings(BaseSettings):
    """Typed configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `INTERESTKIT_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    storage_key : str
        Key under which the snapshot document is persisted.
    schema_version : int
        Version stamped on freshly created snapshots.
    debounce_ms : int
        Coalescing window for high-frequency input. Informational only: the
        engine never debounces, the caller's input layer does.
    affinity_half_life_ms : int
        Half-life of the affinity decay, in milliseconds.
    token_stop_words : frozenset[str]
        Tokens dropped by free-text tokenization.
    bucket_routes : dict[str, str]
        Entity type label -> bucket name.
    default_bucket : str
        Bucket for entity types missing from `bucket_routes`.
    items_bucket : str
        Canonical bucket ranked by `get_top_items`.
    identity : str
        Fallback identity fingerprint when the host supplies none.
    storage_dir : str
        Base directory for the file-backed storage adapter.
    """

    environment: EnvName = Field(default="dev", alias="INTERESTKIT_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")

    storage_key: str = Field(default="interestkit:data", alias="INTERESTKIT_STORAGE_KEY")
    schema_version: int = Field(default=1, alias="INTERESTKIT_SCHEMA_VERSION")
    debounce_ms: int = Field(default=400, ge=0, alias="INTERESTKIT_DEBOUNCE_MS")
    affinity_half_life_ms: int = Field(
        default=SEVEN_DAYS_MS, gt=0, alias="INTERESTKIT_AFFINITY_HALF_LIFE_MS"
    )
    token_stop_words: frozenset[str] = Field(
        default=DEFAULT_STOP_WORDS, alias="INTERESTKIT_TOKEN_STOP_WORDS"
    )
    bucket_routes: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_BUCKET_ROUTES), alias="INTERESTKIT_BUCKET_ROUTES"
    )
    default_bucket: str = Field(default="actions", alias="INTERESTKIT_DEFAULT_BUCKET")
    items_bucket: str = Field(default="items", alias="INTERESTKIT_ITEMS_BUCKET")
    identity: str = Field(default="Unknown Site", alias="INTERESTKIT_IDENTITY")
    storage_dir: str = Field(default="artifacts/interestkit", alias="INTERESTKIT_STORAGE_DIR")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)

    def bucket_for(self, entity_type: str) -> str:
        """Resolve the bucket for an entity type label (case-insensitive)."""
        return self.bucket_routes.get(entity_type.lower(), self.default_bucket)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    Kept behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("INTERESTKIT_ENV", "dev")
    return Settings()


# Ready-to-use default (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "interestkit") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger


__all__ = [
    "DEFAULT_BUCKET_ROUTES",
    "DEFAULT_STOP_WORDS",
    "Settings",
    "get_logger",
    "load_settings",
    "settings",
]
