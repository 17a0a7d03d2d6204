"""DuelBoard remote state store interface and the in-process store."""
from __future__ import annotations
import copy
import logging
from collections import deque
from typing import Any, Callable, Optional

logger = logging.getLogger("duelboard.store")

ValueCallback = Callable[[Optional[dict]], None]
OffsetCallback = Callable[[Optional[int]], None]
Unsubscribe = Callable[[], None]


class RemoteStore:
    """
    Narrow interface of the key-value store. Writes are unconditional
    whole-document overwrites; listeners get the current value right away and
    every committed value after that, in the store's commit order.
    """

    def listen(self, key: str, callback: ValueCallback) -> Unsubscribe:
        raise NotImplementedError

    def set(self, key: str, document: dict) -> None:
        raise NotImplementedError

    def listen_server_offset(self, callback: OffsetCallback) -> Unsubscribe:
        raise NotImplementedError


class _Listeners:
    """Callback registry whose unsubscribe stops delivery immediately."""

    def __init__(self) -> None:
        self._callbacks: dict[int, Callable] = {}
        self._next = 0

    def add(self, callback: Callable) -> tuple[int, Unsubscribe]:
        token = self._next
        self._next += 1
        self._callbacks[token] = callback

        def unsubscribe() -> None:
            self._callbacks.pop(token, None)

        return token, unsubscribe

    def active(self, token: int) -> bool:
        return token in self._callbacks

    def emit(self, value: Any) -> None:
        for token, callback in list(self._callbacks.items()):
            if not self.active(token):
                continue
            try:
                callback(copy.deepcopy(value))
            except Exception as e:
                logger.error("Listener error: %s", e)

    def __len__(self) -> int:
        return len(self._callbacks)


class InMemoryStore(RemoteStore):
    """
    Process-local store. Commits are immediate. With auto_deliver off, fan-out
    is queued in commit order until flush(), which models delivery latency and
    lets several writers act on stale mirrors.
    """

    def __init__(self, auto_deliver: bool = True, server_offset_ms: Optional[int] = None):
        self.auto_deliver = auto_deliver
        self._values: dict[str, dict] = {}
        self._published: dict[str, dict] = {}
        self._listeners: dict[str, _Listeners] = {}
        self._offset_listeners = _Listeners()
        self._server_offset_ms = server_offset_ms
        self._pending: deque[tuple[str, Optional[dict]]] = deque()
        self._flushing = False
        self.commit_log: list[tuple[str, dict]] = []

    def get(self, key: str) -> Optional[dict]:
        value = self._values.get(key)
        return copy.deepcopy(value) if value is not None else None

    def listen(self, key: str, callback: ValueCallback) -> Unsubscribe:
        listeners = self._listeners.setdefault(key, _Listeners())
        _, unsubscribe = listeners.add(callback)
        # New listeners start from what has been fanned out so far
        published = self._published.get(key)
        callback(copy.deepcopy(published) if published is not None else None)
        return unsubscribe

    def set(self, key: str, document: dict) -> None:
        value = copy.deepcopy(document)
        self._values[key] = value
        self.commit_log.append((key, value))
        logger.debug("Commit %s (%d pending)", key, len(self._pending))
        self._pending.append((key, value))
        if self.auto_deliver:
            self.flush()

    def flush(self) -> int:
        """Deliver queued commits in order. Returns the number delivered."""
        # Writes made by listeners are queued behind the commit being
        # delivered, so every listener sees commit order
        if self._flushing:
            return 0
        self._flushing = True
        delivered = 0
        try:
            while self._pending:
                key, value = self._pending.popleft()
                self._published[key] = value
                listeners = self._listeners.get(key)
                if listeners:
                    listeners.emit(value)
                delivered += 1
        finally:
            self._flushing = False
        return delivered

    @property
    def pending(self) -> int:
        return len(self._pending)

    def listen_server_offset(self, callback: OffsetCallback) -> Unsubscribe:
        _, unsubscribe = self._offset_listeners.add(callback)
        if self._server_offset_ms is not None:
            callback(self._server_offset_ms)
        return unsubscribe

    def publish_server_offset(self, offset_ms: int) -> None:
        self._server_offset_ms = offset_ms
        self._offset_listeners.emit(offset_ms)

    def listener_count(self, key: Optional[str] = None) -> int:
        if key is None:
            return len(self._offset_listeners)
        listeners = self._listeners.get(key)
        return len(listeners) if listeners else 0
