"""Tests for document fingerprints."""
from shared.hashing import canonical_json, sha256_document, short_digest


def test_canonical_json_ignores_key_order():
    assert canonical_json({"b": [1, 2], "a": 1}) == canonical_json({"a": 1, "b": [1, 2]})
    assert canonical_json({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'


def test_sha256_document_is_stable():
    doc = {"playersA": [{"name": "Ann", "score": 1}], "timer": {"endTime": None}}
    assert sha256_document(doc) == sha256_document(dict(reversed(list(doc.items()))))
    assert len(sha256_document(doc)) == 64


def test_sha256_document_changes_with_content():
    assert sha256_document({"score": 1}) != sha256_document({"score": 2})


def test_short_digest():
    assert short_digest(None) == "-"
    assert short_digest({"a": 1}) == sha256_document({"a": 1})[:10]
    assert len(short_digest({"a": 1}, length=6)) == 6
