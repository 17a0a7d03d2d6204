"""DuelBoard client entry point."""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
import threading
from pathlib import Path

from PySide6.QtWidgets import QApplication

from client.ui.main_window import ScoreboardWindow
from shared.config import load_config
from shared.logging_utils import setup_rotating_logger


def _run_asyncio_loop(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="duelboard", description="DuelBoard shared scoreboard")
    parser.add_argument("--config", type=Path, default=Path("duelboard.toml"))
    parser.add_argument("--host", default="", help="relay host; connects on startup when given")
    parser.add_argument("--port", type=int, help="relay port")
    return parser.parse_args(argv)


def main() -> None:
    args = _parse_args(sys.argv[1:])
    config = load_config(args.config)

    setup_rotating_logger("duelboard", Path(config.logging.dir), config.logging.level_no)
    logger = logging.getLogger("duelboard.client")
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("Config: %s", error)
        sys.exit(2)
    logger.info("DuelBoard client starting")

    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=_run_asyncio_loop, args=(loop,), daemon=True)
    thread.start()

    app = QApplication(sys.argv[:1])
    app.setApplicationName("DuelBoard")
    app.setOrganizationName("DuelBoard")

    window = ScoreboardWindow(loop, config, host=args.host, port=args.port)
    window.show()

    exit_code = app.exec()

    loop.call_soon_threadsafe(loop.stop)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
