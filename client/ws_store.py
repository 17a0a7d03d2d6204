"""DuelBoard WebSocket adapter for the remote state store relay."""
from __future__ import annotations
import asyncio
import copy
import logging
import time
from typing import Callable, Optional

import websockets

from shared.clock_sync import ClockSyncState, SyncSample
from shared.protocol import (
    make_envelope, parse_envelope,
    MSG_SUBSCRIBE, MSG_UNSUBSCRIBE, MSG_SET, MSG_SYNC,
    MSG_VALUE, MSG_SYNC_REPLY,
    DEFAULT_PORT,
)
from shared.store import RemoteStore, _Listeners, OffsetCallback, Unsubscribe, ValueCallback

logger = logging.getLogger("duelboard.client.store")


class WebSocketStore(RemoteStore):
    """
    RemoteStore backed by a relay connection.

    listen/set may be called from any thread; the actual sends are scheduled
    on the store's event loop. Listener callbacks run on that loop. While
    disconnected, writes are dropped with a warning and the last known values
    stay cached.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None,
                 sync_interval_ms: int = 5000):
        self.loop = loop
        self.sync_interval_ms = sync_interval_ms
        self.on_connection_change: Optional[Callable[[bool], None]] = None
        self._ws = None
        self._running = False
        self._values: dict[str, Optional[dict]] = {}
        self._listeners: dict[str, _Listeners] = {}
        self._offset_listeners = _Listeners()
        self._sync_state = ClockSyncState()
        self._sync_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    @property
    def server_offset_ms(self) -> Optional[int]:
        if self._sync_state.sample_count == 0:
            return None
        return int(round(self._sync_state.offset_ms))

    async def connect(self, host: str, port: int = DEFAULT_PORT) -> None:
        """Connect to the relay and process messages until disconnected."""
        self.loop = asyncio.get_running_loop()
        self._running = True
        uri = f"ws://{host}:{port}"
        logger.info("Connecting to %s", uri)
        try:
            async with websockets.connect(uri, ping_interval=10, ping_timeout=30) as ws:
                self._ws = ws
                self._set_connected(True)
                for key in list(self._listeners):
                    await self._send(MSG_SUBSCRIBE, {"key": key})
                self._sync_task = asyncio.create_task(self._sync_loop())
                async for raw in ws:
                    try:
                        self._handle_message(raw)
                    except Exception as e:
                        logger.error("Message handling error: %s", e)
        except Exception as e:
            logger.warning("Connection lost: %s", e)
        finally:
            self._ws = None
            if self._sync_task:
                self._sync_task.cancel()
                self._sync_task = None
            self._set_connected(False)

    async def disconnect(self) -> None:
        self._running = False
        if self._ws:
            try:
                await self._ws.close()
                logger.info("Disconnected from relay")
            except Exception as e:
                logger.warning("Error during disconnect: %s", e)

    def _set_connected(self, connected: bool) -> None:
        if self.on_connection_change:
            self.on_connection_change(connected)

    async def _send(self, msg_type: str, payload: dict) -> None:
        if not self._ws:
            logger.warning("Not connected; dropping %s", msg_type)
            return
        try:
            await self._ws.send(make_envelope(msg_type, payload))
        except Exception as e:
            logger.warning("Send error: %s", e)

    def _submit(self, msg_type: str, payload: dict) -> None:
        if self.loop is None or self.loop.is_closed():
            logger.warning("No event loop; dropping %s", msg_type)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self.loop:
            self.loop.create_task(self._send(msg_type, payload))
        else:
            asyncio.run_coroutine_threadsafe(self._send(msg_type, payload), self.loop)

    # ---- RemoteStore ----

    def listen(self, key: str, callback: ValueCallback) -> Unsubscribe:
        listeners = self._listeners.setdefault(key, _Listeners())
        first = len(listeners) == 0
        _, remove = listeners.add(callback)
        if key in self._values:
            callback(copy.deepcopy(self._values[key]))
        elif first and self.is_connected:
            self._submit(MSG_SUBSCRIBE, {"key": key})

        def unsubscribe() -> None:
            remove()
            if len(listeners) == 0 and self._listeners.get(key) is listeners:
                del self._listeners[key]
                self._values.pop(key, None)
                if self.is_connected:
                    self._submit(MSG_UNSUBSCRIBE, {"key": key})

        return unsubscribe

    def set(self, key: str, document: dict) -> None:
        self._submit(MSG_SET, {"key": key, "value": document})

    def listen_server_offset(self, callback: OffsetCallback) -> Unsubscribe:
        _, unsubscribe = self._offset_listeners.add(callback)
        if self.server_offset_ms is not None:
            callback(self.server_offset_ms)
        return unsubscribe

    # ---- Incoming ----

    def _handle_message(self, raw: str) -> None:
        msg_type, ts, payload = parse_envelope(raw)
        logger.debug("Recv: %s", msg_type)

        if msg_type == MSG_VALUE:
            key = payload.get("key")
            value = payload.get("value")
            listeners = self._listeners.get(key)
            if listeners is None:
                return
            self._values[key] = value
            listeners.emit(value)

        elif msg_type == MSG_SYNC_REPLY:
            t4 = int(time.time() * 1000)
            sample = SyncSample(
                t1=payload.get("t1_utc_ms", 0),
                t2=payload.get("t2_server_recv_utc_ms", 0),
                t3=payload.get("t3_server_send_utc_ms", 0),
                t4=t4,
            )
            self._sync_state.add_sample(sample)
            logger.debug("Sync rtt=%dms offset=%+.1fms", sample.rtt_ms, self._sync_state.offset_ms)
            self._offset_listeners.emit(self.server_offset_ms)

    async def _sync_loop(self) -> None:
        """Probe the relay clock now and then every sync interval."""
        interval = self.sync_interval_ms / 1000.0
        while self._running and self._ws:
            await self._send(MSG_SYNC, {"t1_utc_ms": int(time.time() * 1000)})
            await asyncio.sleep(interval)
