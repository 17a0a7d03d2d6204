"""DuelBoard match session: one store, one mirror, one clock, one ticker."""
from __future__ import annotations
import asyncio
import logging
from typing import Callable, Optional

from client.synchronizer import StateSynchronizer
from shared.clock_sync import ClockOffsetTracker
from shared.match import MatchDocument, default_document
from shared.match_timer import DEFAULT_DURATION_SECONDS, MatchTimer
from shared.protocol import SCOREBOARD_KEY
from shared.store import RemoteStore

logger = logging.getLogger("duelboard.client.session")

TICK_INTERVAL_S = 1.0


class MatchSession:
    """
    Wires the synchronizer, the clock offset tracker and the match timer to a
    store. close() releases the document stream, the offset stream and the
    ticker together; no callback fires afterwards.
    """

    def __init__(self, store: RemoteStore, key: str = SCOREBOARD_KEY,
                 default_seconds: int = DEFAULT_DURATION_SECONDS,
                 defaults: Optional[MatchDocument] = None,
                 local_clock: Optional[Callable[[], int]] = None,
                 on_snapshot: Optional[Callable[[MatchDocument], None]] = None,
                 on_tick: Optional[Callable[[int], None]] = None):
        self.store = store
        self.clock = ClockOffsetTracker(local_clock)
        self.sync = StateSynchronizer(store, key, defaults or default_document())
        self.timer = MatchTimer(self.sync, self.clock, default_seconds)
        self.timer.on_tick = on_tick
        self.on_snapshot = on_snapshot
        self._unsubscribe_snapshots: Optional[Callable[[], None]] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        self.clock.attach(self.store)
        self._unsubscribe_snapshots = self.sync.subscribe(self._on_snapshot)
        self.sync.start()

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self.stop_ticker()
        self.sync.stop()
        if self._unsubscribe_snapshots is not None:
            self._unsubscribe_snapshots()
            self._unsubscribe_snapshots = None
        self.clock.detach()
        logger.info("Session closed")

    def _on_snapshot(self, doc: MatchDocument) -> None:
        if not self._open:
            return
        self.timer.observe(doc)
        if self.on_snapshot:
            try:
                self.on_snapshot(doc)
            except Exception as e:
                logger.error("Snapshot callback error: %s", e)

    # ---- Ticker ----

    def start_ticker(self, interval: float = TICK_INTERVAL_S) -> asyncio.Task:
        """Start the periodic re-evaluation on the running event loop."""
        self.stop_ticker()
        self._tick_task = asyncio.get_running_loop().create_task(self._tick_loop(interval))
        return self._tick_task

    def stop_ticker(self) -> None:
        if self._tick_task:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick_loop(self, interval: float) -> None:
        while self._open:
            self.timer.tick()
            await asyncio.sleep(interval)
