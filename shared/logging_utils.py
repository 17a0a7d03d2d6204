"""DuelBoard logging utilities."""
from __future__ import annotations
import logging
import logging.handlers
import json
from pathlib import Path
from typing import Iterator


def setup_rotating_logger(name: str, log_dir: Path, level: int = logging.DEBUG) -> logging.Logger:
    """Set up a rotating file logger + console output."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{name}.log"

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        # Rotating file handler: 5MB x 5 files
        fh = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        fh.setLevel(level)
        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(max(level, logging.INFO))
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    return logger


def append_jsonl(path: Path, record: dict) -> None:
    """Append one JSON record as a line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(record) + "\n")


def read_jsonl(path: Path) -> Iterator[dict]:
    """Yield records of a JSONL file, skipping blank and corrupt lines."""
    if not path.exists():
        return
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logging.getLogger("duelboard.journal").warning("Skipping corrupt journal line")
