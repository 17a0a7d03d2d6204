"""DuelBoard store wire protocol definitions."""
from __future__ import annotations
import json
import time
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_envelope(msg_type: str, payload: dict[str, Any]) -> str:
    return json.dumps({"type": msg_type, "ts_utc_ms": _now_ms(), "payload": payload})


def parse_envelope(raw: str) -> tuple[str, int, dict[str, Any]]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"envelope must be an object, got {type(data).__name__}")
    payload = data.get("payload", {})
    if not isinstance(payload, dict):
        raise ValueError(f"payload must be an object, got {type(payload).__name__}")
    return data["type"], data.get("ts_utc_ms", 0), payload


DEFAULT_PORT = 9430
SCOREBOARD_KEY = "scoreboard"

# ---- Client → Store message types ----
MSG_SUBSCRIBE = "SUBSCRIBE"
MSG_UNSUBSCRIBE = "UNSUBSCRIBE"
MSG_SET = "SET"
MSG_SYNC = "SYNC"

# ---- Store → Client message types ----
MSG_VALUE = "VALUE"
MSG_SYNC_REPLY = "SYNC_REPLY"

CLIENT_MESSAGES = {MSG_SUBSCRIBE, MSG_UNSUBSCRIBE, MSG_SET, MSG_SYNC}
STORE_MESSAGES = {MSG_VALUE, MSG_SYNC_REPLY}
