"""Shared fixtures: a hand-driven local clock and an in-process store."""
import pytest

from shared.store import InMemoryStore


class FakeClock:
    """Local wall clock in ms that only moves when told to."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


class SlowSubscribeStore(InMemoryStore):
    """Hands new listeners the current value only when release() is called."""

    def __init__(self):
        super().__init__()
        self._releases = []

    def listen(self, key, callback):
        gate = {"open": False}

        def deliver(value):
            if gate["open"]:
                callback(value)

        unsubscribe = super().listen(key, deliver)

        def release():
            gate["open"] = True
            callback(self.get(key))

        self._releases.append(release)
        return unsubscribe

    def release(self):
        releases, self._releases = self._releases, []
        for release in releases:
            release()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def held_store():
    """Store whose fan-out waits for flush()."""
    return InMemoryStore(auto_deliver=False)


@pytest.fixture
def slow_store():
    """Store whose first delivery to each listener waits for release()."""
    return SlowSubscribeStore()
