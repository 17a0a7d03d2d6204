"""Tests for store wire protocol parsing."""
import json
import pytest
from shared.protocol import (
    make_envelope, parse_envelope, CLIENT_MESSAGES, STORE_MESSAGES,
    MSG_SET, MSG_VALUE, MSG_SYNC_REPLY,
)


def test_make_envelope_basic():
    msg = make_envelope("SUBSCRIBE", {"key": "scoreboard"})
    data = json.loads(msg)
    assert data["type"] == "SUBSCRIBE"
    assert "ts_utc_ms" in data
    assert data["payload"]["key"] == "scoreboard"


def test_parse_envelope():
    raw = json.dumps({"type": "VALUE", "ts_utc_ms": 1234567890, "payload": {"key": "k", "value": None}})
    msg_type, ts, payload = parse_envelope(raw)
    assert msg_type == MSG_VALUE
    assert ts == 1234567890
    assert payload == {"key": "k", "value": None}


def test_parse_envelope_defaults():
    msg_type, ts, payload = parse_envelope(json.dumps({"type": "SYNC"}))
    assert msg_type == "SYNC"
    assert ts == 0
    assert payload == {}


def test_parse_envelope_without_type_raises():
    with pytest.raises(KeyError):
        parse_envelope(json.dumps({"payload": {}}))


def test_message_directions_do_not_overlap():
    assert MSG_SET in CLIENT_MESSAGES
    assert MSG_SYNC_REPLY in STORE_MESSAGES
    assert not CLIENT_MESSAGES & STORE_MESSAGES


def test_set_carries_whole_document():
    document = {"playersA": [{"name": "Ann", "score": 3}], "timer": {"endTime": None}}
    _, _, payload = parse_envelope(make_envelope(MSG_SET, {"key": "scoreboard", "value": document}))
    assert payload["value"] == document


@pytest.mark.parametrize("raw", [
    "[]",
    '"SET"',
    "42",
    json.dumps({"type": "SET", "payload": ["scoreboard"]}),
    json.dumps({"type": "SET", "payload": "scoreboard"}),
])
def test_parse_envelope_rejects_non_object_shapes(raw):
    with pytest.raises(ValueError):
        parse_envelope(raw)
