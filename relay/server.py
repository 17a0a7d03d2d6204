"""DuelBoard store relay: a dumb key-value document store with push fan-out."""
from __future__ import annotations
import logging
import time
from pathlib import Path
from typing import Any, Optional

import websockets

from shared.hashing import short_digest
from shared.logging_utils import append_jsonl, read_jsonl
from shared.protocol import (
    make_envelope, parse_envelope,
    MSG_SUBSCRIBE, MSG_UNSUBSCRIBE, MSG_SET, MSG_SYNC,
    MSG_VALUE, MSG_SYNC_REPLY,
    DEFAULT_PORT,
)

logger = logging.getLogger("duelboard.relay.server")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _key(payload: dict) -> Optional[str]:
    key = payload.get("key")
    return key if isinstance(key, str) and key else None


class StoreRelay:
    """
    Keeps one JSON value per key, commits writes in arrival order and pushes
    every committed value to all subscribers of the key, the writer included.
    Answers clock probes with its own time. It never looks inside values.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = DEFAULT_PORT,
                 journal: Optional[Path] = None):
        self.host = host
        self.port = port
        self.journal = journal
        self._values: dict[str, Any] = {}
        self._subscribers: dict[str, set] = {}
        self._ws_server = None
        self.commit_count = 0

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def replay_journal(self) -> int:
        """Restore the latest value of every key from the journal."""
        if self.journal is None:
            return 0
        count = 0
        for record in read_jsonl(self.journal):
            key = record.get("key")
            if key is None:
                continue
            self._values[key] = record.get("value")
            count += 1
        if count:
            logger.info("Replayed %d journal records (%d keys)", count, len(self._values))
        return count

    async def start(self) -> None:
        self.replay_journal()
        self._ws_server = await websockets.serve(self._handle_client, self.host, self.port)
        sockets = getattr(self._ws_server, "sockets", None)
        if self.port == 0 and sockets:
            self.port = list(sockets)[0].getsockname()[1]
        logger.info("Store relay listening on port %d", self.port)

    async def stop(self) -> None:
        if self._ws_server:
            self._ws_server.close()
            await self._ws_server.wait_closed()
            self._ws_server = None

    async def _handle_client(self, ws) -> None:
        logger.info("Client connected")
        try:
            async for raw in ws:
                try:
                    msg_type, ts, payload = parse_envelope(raw)
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("Bad envelope: %s", e)
                    continue
                if msg_type == MSG_SUBSCRIBE:
                    await self._on_subscribe(ws, payload)
                elif msg_type == MSG_UNSUBSCRIBE:
                    self._subscribers.get(_key(payload), set()).discard(ws)
                elif msg_type == MSG_SET:
                    self._on_set(payload)
                elif msg_type == MSG_SYNC:
                    await self._on_sync(ws, payload)
                else:
                    logger.debug("Ignoring message type %s", msg_type)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            for subscribers in self._subscribers.values():
                subscribers.discard(ws)
            logger.info("Client disconnected")

    async def _on_subscribe(self, ws, payload: dict) -> None:
        key = _key(payload)
        if not key:
            return
        self._subscribers.setdefault(key, set()).add(ws)
        await ws.send(make_envelope(MSG_VALUE, {"key": key, "value": self._values.get(key)}))

    def _on_set(self, payload: dict) -> None:
        key = _key(payload)
        if not key:
            return
        value = payload.get("value")
        self._values[key] = value
        self.commit_count += 1
        if self.journal is not None:
            append_jsonl(self.journal, {"ts_utc_ms": _now_ms(), "key": key, "value": value})
        subscribers = self._subscribers.get(key, set())
        logger.debug("Commit %s %s -> %d subscribers", key, short_digest(value), len(subscribers))
        # broadcast queues on every connection without yielding, so each
        # subscriber sees commits in commit order
        websockets.broadcast(subscribers, make_envelope(MSG_VALUE, {"key": key, "value": value}))

    async def _on_sync(self, ws, payload: dict) -> None:
        t2 = _now_ms()
        await ws.send(make_envelope(MSG_SYNC_REPLY, {
            "t1_utc_ms": payload.get("t1_utc_ms", 0),
            "t2_server_recv_utc_ms": t2,
            "t3_server_send_utc_ms": _now_ms(),
        }))
