"""DuelBoard countdown reconciliation between the shared end time and local clocks."""
from __future__ import annotations
import logging
from typing import Any, Callable, Optional

from shared.match import MatchDocument, TimerState

logger = logging.getLogger("duelboard.timer")

DEFAULT_DURATION_SECONDS = 450


def remaining_seconds(end_time: Optional[int], now_ms: int,
                      default_seconds: int = DEFAULT_DURATION_SECONDS) -> int:
    """Whole seconds left until end_time, never negative. No end time means full duration."""
    if end_time is None:
        return default_seconds
    return max(0, (end_time - now_ms) // 1000)


def format_clock(seconds: int) -> str:
    """Format seconds as M:SS."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins}:{secs:02d}"


def resume_fields(remaining: int, now_ms: int) -> dict[str, Any]:
    return {"timer": TimerState(end_time=now_ms + remaining * 1000), "is_paused": False}


def pause_fields() -> dict[str, Any]:
    # end_time stays as it is; the paused reading is frozen locally
    return {"is_paused": True}


def reset_fields() -> dict[str, Any]:
    return {"timer": TimerState(end_time=None), "is_paused": True}


class MatchTimer:
    """
    Derives the displayed countdown from the mirrored end time.

    The formula is the same whether the match runs or not. What differs is the
    instant it is evaluated at: every tick moves the reading instant to the
    corrected current time while the document is running, and leaves it alone
    while paused. A paused display therefore holds the value it had at the
    moment of pausing, and resume re-anchors end time from exactly that value.

    A client that first sees the match while it is paused with an end time
    set never held that reading. It shows the stale end time against its own
    clock and refuses to resume until it has seen the timer run or reset.
    """

    def __init__(self, synchronizer, clock,
                 default_seconds: int = DEFAULT_DURATION_SECONDS):
        self.synchronizer = synchronizer
        self.clock = clock
        self.default_seconds = default_seconds
        self._reading_ms: Optional[int] = None
        self._running = False
        self._reading_held = False
        self.on_tick: Optional[Callable[[int], None]] = None

    @property
    def document(self) -> Optional[MatchDocument]:
        return self.synchronizer.snapshot

    @property
    def is_paused(self) -> bool:
        doc = self.document
        return doc is None or not doc.is_running

    @property
    def reading_ms(self) -> int:
        if self._reading_ms is None:
            self._reading_ms = self.clock.corrected_now()
        return self._reading_ms

    @property
    def can_resume(self) -> bool:
        """True when paused and the paused reading is one this client held."""
        return self.document is not None and self.is_paused and self._reading_held

    def observe(self, doc: MatchDocument) -> None:
        """Called for every snapshot; re-anchors the reading while running."""
        was_running = self._running
        self._running = doc.is_running
        if self._running or doc.timer.end_time is None:
            self._reading_held = True
        if self._running:
            self._reading_ms = self.clock.corrected_now()
        elif was_running:
            logger.info("Timer paused at %s", format_clock(self.remaining_seconds()))
        elif not self._reading_held:
            logger.warning("Joined a paused match; paused time was not observed here")

    def tick(self) -> int:
        """Re-evaluate the countdown. Never raises from the callback."""
        if self._running:
            self._reading_ms = self.clock.corrected_now()
        remaining = self.remaining_seconds()
        if self.on_tick:
            try:
                self.on_tick(remaining)
            except Exception as e:
                logger.error("Tick callback error: %s", e)
        return remaining

    def remaining_seconds(self) -> int:
        doc = self.document
        end_time = doc.timer.end_time if doc is not None else None
        return remaining_seconds(end_time, self.reading_ms, self.default_seconds)

    def resume(self) -> None:
        if not self.is_paused:
            return
        if not self.can_resume:
            logger.warning("Resume ignored: no paused reading held on this client")
            return
        remaining = self.remaining_seconds()
        now = self.clock.corrected_now()
        logger.info("Resuming with %ss remaining", remaining)
        self.synchronizer.mutate(**resume_fields(remaining, now))

    def pause(self) -> None:
        if self.is_paused:
            return
        self.synchronizer.mutate(**pause_fields())

    def toggle(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def reset(self) -> None:
        if self.document is None:
            logger.warning("Reset ignored: no snapshot yet")
            return
        self.synchronizer.mutate(**reset_fields())
