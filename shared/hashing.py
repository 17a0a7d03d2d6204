"""DuelBoard document fingerprints for logs and diagnostics."""
from __future__ import annotations
import hashlib
import json
from typing import Any, Optional


def canonical_json(document: Any) -> bytes:
    """Serialize with sorted keys and no whitespace so equal documents hash equally."""
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sha256_document(document: Any) -> str:
    """Compute SHA-256 hex digest of a JSON-compatible document."""
    return hashlib.sha256(canonical_json(document)).hexdigest()


def short_digest(document: Optional[Any], length: int = 10) -> str:
    """Abbreviated digest used in log lines; '-' for an absent document."""
    if document is None:
        return "-"
    return sha256_document(document)[:length]
