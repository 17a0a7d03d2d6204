"""DuelBoard clock sync: store-offset estimation and corrected time."""
from __future__ import annotations
import logging
import statistics
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger("duelboard.clock")


def local_now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SyncSample:
    t1: int  # client send time (local ms)
    t2: int  # store recv time (server ms)
    t3: int  # store send time (server ms)
    t4: int  # client recv time (local ms)

    @property
    def rtt_ms(self) -> int:
        return (self.t4 - self.t1) - (self.t3 - self.t2)

    @property
    def offset_ms(self) -> float:
        """Estimated offset: server_time - local_time. Positive means the store is ahead."""
        return ((self.t2 - self.t1) + (self.t3 - self.t4)) / 2.0


class ClockSyncState:
    """Maintains rolling window of probe samples and computes the server offset estimate."""

    WINDOW = 8
    OUTLIER_FACTOR = 2.0

    def __init__(self) -> None:
        self._samples: list[SyncSample] = []
        self._offset_ms: float = 0.0

    def add_sample(self, sample: SyncSample) -> None:
        self._samples.append(sample)
        if len(self._samples) > self.WINDOW:
            self._samples.pop(0)
        self._recompute()

    def _recompute(self) -> None:
        if not self._samples:
            return
        rtts = [s.rtt_ms for s in self._samples]
        # Reject high-RTT outliers
        if len(rtts) >= 3:
            median_rtt = statistics.median(rtts)
            good = [s for s in self._samples if s.rtt_ms <= median_rtt * self.OUTLIER_FACTOR]
        else:
            good = self._samples
        if good:
            self._offset_ms = statistics.median([s.offset_ms for s in good])

    @property
    def offset_ms(self) -> float:
        """Current estimated offset: server_time - local_time."""
        return self._offset_ms

    @property
    def sample_count(self) -> int:
        return len(self._samples)


class ClockOffsetTracker:
    """
    Keeps the last server-offset sample pushed by the store and derives
    corrected time from it. Without any sample the offset is 0 and corrected
    time is plain local time.
    """

    def __init__(self, local_clock: Optional[Callable[[], int]] = None):
        self._local_clock = local_clock or local_now_ms
        self._offset_ms: int = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._attached = False

    @property
    def offset_ms(self) -> int:
        return self._offset_ms

    def attach(self, store) -> None:
        """Subscribe to the store's server-offset feed."""
        if self._attached:
            return
        self._attached = True
        self._unsubscribe = store.listen_server_offset(self._on_offset)

    def detach(self) -> None:
        self._attached = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_offset(self, offset_ms: Optional[float]) -> None:
        if not self._attached:
            return
        if offset_ms is None:
            offset_ms = 0
        offset = int(offset_ms)
        if offset != self._offset_ms:
            logger.debug("Server offset %+dms -> %+dms", self._offset_ms, offset)
        self._offset_ms = offset

    def corrected_now(self) -> int:
        """Local wall-clock ms plus the last server offset sample."""
        return self._local_clock() + self._offset_ms
