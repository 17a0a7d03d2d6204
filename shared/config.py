"""DuelBoard configuration file (TOML) parsing and validation."""
from __future__ import annotations
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from shared.match import DEFAULT_POINTS_TO_WIN, DEFAULT_ROSTER_SIZE, ROSTER_SIZES, MatchDocument, default_document
from shared.match_timer import DEFAULT_DURATION_SECONDS
from shared.protocol import DEFAULT_PORT, SCOREBOARD_KEY

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class StoreConfig:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    key: str = SCOREBOARD_KEY
    sync_interval_ms: int = 5000


@dataclass
class MatchConfig:
    title: str = "NERF WARS: TEAM DUEL"
    default_duration_seconds: int = DEFAULT_DURATION_SECONDS
    points_to_win: int = DEFAULT_POINTS_TO_WIN
    roster_size: int = DEFAULT_ROSTER_SIZE

    def default_document(self) -> MatchDocument:
        return default_document(self.points_to_win, self.roster_size)


@dataclass
class LoggingConfig:
    dir: str = "logs"
    level: str = "INFO"

    @property
    def level_no(self) -> int:
        return getattr(logging, self.level.upper(), logging.INFO)


@dataclass
class RelayConfig:
    bind: str = "0.0.0.0"
    journal: str = ""

    @property
    def journal_path(self) -> Optional[Path]:
        return Path(self.journal) if self.journal else None


@dataclass
class ScoreboardConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    match: MatchConfig = field(default_factory=MatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)

    def validate(self) -> list[str]:
        errors = []
        if not (1 <= self.store.port <= 65535):
            errors.append(f"store.port must be 1-65535, got {self.store.port}")
        if not self.store.key:
            errors.append("store.key must not be empty")
        if self.store.sync_interval_ms <= 0:
            errors.append("store.sync_interval_ms must be positive")
        if self.match.default_duration_seconds <= 0:
            errors.append("match.default_duration_seconds must be positive")
        if self.match.roster_size not in ROSTER_SIZES:
            errors.append(f"match.roster_size must be one of {ROSTER_SIZES}")
        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid logging.level: {self.logging.level}")
        return errors


def _parse_store(raw: dict) -> StoreConfig:
    return StoreConfig(
        host=raw.get("host", "127.0.0.1"),
        port=raw.get("port", DEFAULT_PORT),
        key=raw.get("key", SCOREBOARD_KEY),
        sync_interval_ms=raw.get("sync_interval_ms", 5000),
    )


def _parse_match(raw: dict) -> MatchConfig:
    return MatchConfig(
        title=raw.get("title", "NERF WARS: TEAM DUEL"),
        default_duration_seconds=raw.get("default_duration_seconds", DEFAULT_DURATION_SECONDS),
        points_to_win=raw.get("points_to_win", DEFAULT_POINTS_TO_WIN),
        roster_size=raw.get("roster_size", DEFAULT_ROSTER_SIZE),
    )


def load_config(path: Optional[Path]) -> ScoreboardConfig:
    """Load a duelboard.toml file; a missing path gives the defaults."""
    if path is None or not path.exists():
        return ScoreboardConfig()
    with open(path, "rb") as f:
        data = tomllib.load(f)

    logging_raw = data.get("logging", {})
    relay_raw = data.get("relay", {})
    return ScoreboardConfig(
        store=_parse_store(data.get("store", {})),
        match=_parse_match(data.get("match", {})),
        logging=LoggingConfig(
            dir=logging_raw.get("dir", "logs"),
            level=logging_raw.get("level", "INFO"),
        ),
        relay=RelayConfig(
            bind=relay_raw.get("bind", "0.0.0.0"),
            journal=relay_raw.get("journal", ""),
        ),
    )
