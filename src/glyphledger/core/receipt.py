"""Core hashing and receipt primitives used by every GlyphLedger module.

Functions:
    canonicalize: Stable, key-sorted JSON serialization
    sha256_hex: SHA-256 hex digest
    hash_any: sha256_hex(canonicalize(value))
    emit_receipt: Emit receipt with required fields to stdout
    StopRule: Exception for stoprule triggers
"""
import hashlib
import json
from datetime import datetime, timezone
from typing import Any


class StopRule(Exception):
    """Raised when stoprule triggers. Never catch silently."""
    pass


def canonicalize(value: Any) -> bytes:
    """Serialize a JSON-like value into its canonical byte form.

    Maps are key-sorted recursively, arrays keep their order, and no
    insignificant whitespace is emitted. Non-ASCII text is kept verbatim
    so the bytes match a JavaScript stable stringify of the same value.

    Args:
        value: dict/list/str/int/float/bool/None tree

    Returns:
        UTF-8 encoded canonical JSON

    Raises:
        ValueError: On NaN/Infinity or a circular reference (programmer error)
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def sha256_hex(data: bytes | str) -> str:
    """Compute lowercase SHA-256 hex digest.

    Pure function with no side effects.

    Args:
        data: Bytes or string (strings are UTF-8 encoded)

    Returns:
        64 hex chars
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hash_any(value: Any) -> str:
    """Hash any JSON-like value through its canonical form."""
    return sha256_hex(canonicalize(value))


def emit_receipt(receipt_type: str, data: dict, artifact_id: str = "unbound") -> dict:
    """Emit a receipt with standard required fields.

    Prints JSON to stdout with flush=True.

    Args:
        receipt_type: Type of receipt (seal, send, receive, segment, verify, key, anomaly)
        data: Receipt payload data
        artifact_id: Canonical hash of the artifact the receipt is about

    Returns:
        Complete receipt dict with receipt_type, ts, artifact_id, payload_hash
    """
    artifact_id = data.get("artifact_id", artifact_id)

    payload_hash = hash_any(data)

    receipt = {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "artifact_id": artifact_id,
        "payload_hash": payload_hash,
        **data
    }

    print(json.dumps(receipt, sort_keys=True), flush=True)

    return receipt
