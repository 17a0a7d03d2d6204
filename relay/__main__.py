"""DuelBoard store relay entry point."""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from relay.server import StoreRelay
from shared.config import load_config
from shared.logging_utils import setup_rotating_logger


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="duelboard-relay", description="DuelBoard store relay")
    parser.add_argument("--config", type=Path, default=Path("duelboard.toml"))
    parser.add_argument("--bind", help="address to listen on")
    parser.add_argument("--port", type=int, help="port to listen on")
    parser.add_argument("--journal", type=Path, help="JSONL file to persist commits to")
    return parser.parse_args(argv)


async def _serve(relay: StoreRelay) -> None:
    await relay.start()
    try:
        await asyncio.Future()
    finally:
        await relay.stop()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config(args.config)
    errors = config.validate()

    setup_rotating_logger("duelboard", Path(config.logging.dir), config.logging.level_no)
    logger = logging.getLogger("duelboard.relay")
    if errors:
        for error in errors:
            logger.error("Config: %s", error)
        sys.exit(2)

    relay = StoreRelay(
        host=args.bind or config.relay.bind,
        port=args.port or config.store.port,
        journal=args.journal or config.relay.journal_path,
    )
    logger.info("DuelBoard relay starting")
    try:
        asyncio.run(_serve(relay))
    except KeyboardInterrupt:
        logger.info("DuelBoard relay stopped")


if __name__ == "__main__":
    main()
