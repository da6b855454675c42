"""Compact shareable history.

Lineage packed into a URL-safe token: ``h:`` + base64url(JSON array of
``{s, p, r?}``), no padding. ``s`` is the sender signature, ``p`` the send
pulse and ``r`` the receiver signature once the transfer is closed. Links
usually carry the value without the ``h:`` tag; decoding accepts both.
"""
import base64
import json

from ..core.constants import HISTORY_PREFIX
from ..core.errors import StructuralError
from ..core.model import ArtifactMetadata, _is


def history_records(meta: ArtifactMetadata) -> list[dict]:
    records = []
    for t in meta.transfers:
        record = {"s": t.sender_signature, "p": t.sender_kai_pulse}
        if t.receiver_signature:
            record["r"] = t.receiver_signature
        records.append(record)
    return records


def encode_history(meta: ArtifactMetadata) -> str:
    """Encode the live window's lineage as an ``h:`` token."""
    raw = json.dumps(history_records(meta), separators=(",", ":")).encode("utf-8")
    return HISTORY_PREFIX + base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_history(token: str) -> list[dict]:
    """Decode an ``h:`` token (prefix optional).

    Raises:
        StructuralError: If the token is not valid compact history
    """
    value = token[len(HISTORY_PREFIX):] if token.startswith(HISTORY_PREFIX) else token
    try:
        raw = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
        records = json.loads(raw)
    except ValueError as e:
        raise StructuralError(f"invalid compact history: {e}") from e

    if not isinstance(records, list):
        raise StructuralError("invalid compact history: expected a list")
    for record in records:
        if not (isinstance(record, dict) and isinstance(record.get("s"), str)
                and _is(record.get("p"), int)):
            raise StructuralError("invalid compact history record")
        if "r" in record and not isinstance(record["r"], str):
            raise StructuralError("invalid compact history record")
    return records
