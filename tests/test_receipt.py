"""Unit tests for core hashing and receipts.

Functions tested: canonicalize, sha256_hex, hash_any, emit_receipt, validate_receipt
"""
import json

import pytest

from glyphledger.core.receipt import StopRule, canonicalize, emit_receipt, hash_any, sha256_hex
from glyphledger.core.schemas import validate_receipt


class TestCanonicalize:
    """Tests for canonical JSON serialization."""

    def test_keys_sorted_recursively(self):
        """Maps are key-sorted at every depth."""
        a = canonicalize({"b": 1, "a": {"d": 2, "c": 3}})
        b = canonicalize({"a": {"c": 3, "d": 2}, "b": 1})

        assert a == b
        assert a == b'{"a":{"c":3,"d":2},"b":1}'

    def test_array_order_preserved(self):
        """Arrays keep their order."""
        assert canonicalize([3, 1, 2]) == b"[3,1,2]"
        assert canonicalize([1, 2]) != canonicalize([2, 1])

    def test_non_ascii_kept_verbatim(self):
        """Non-ASCII text is emitted as UTF-8, not escaped."""
        assert canonicalize({"k": "φ"}) == '{"k":"φ"}'.encode("utf-8")

    def test_nan_rejected(self):
        """Non-finite numbers are a programmer error."""
        with pytest.raises(ValueError):
            canonicalize({"x": float("nan")})

    def test_cycle_rejected(self):
        """Cyclic structures are a programmer error."""
        loop = []
        loop.append(loop)
        with pytest.raises(ValueError):
            canonicalize(loop)


class TestHashing:
    """Tests for sha256_hex and hash_any."""

    def test_sha256_known_vector(self):
        """Empty input hashes to the well-known SHA-256 constant."""
        assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_str_and_bytes_agree(self):
        """Strings are UTF-8 encoded before hashing."""
        assert sha256_hex("glyph") == sha256_hex(b"glyph")

    def test_hash_any_order_independent(self):
        """hash_any ignores map insertion order."""
        assert hash_any({"a": 1, "b": 2}) == hash_any({"b": 2, "a": 1})
        assert len(hash_any({"a": 1})) == 64


class TestReceipts:
    """Tests for receipt emission and validation."""

    def test_emit_receipt_prints_json(self, capsys):
        """emit_receipt prints one JSON line with the required fields."""
        receipt = emit_receipt("key", {"action": "create", "public_key": "abc"}, "artifact-1")

        line = capsys.readouterr().out.strip()
        printed = json.loads(line)

        assert printed == receipt
        assert printed["receipt_type"] == "key"
        assert printed["artifact_id"] == "artifact-1"
        assert printed["payload_hash"] == hash_any({"action": "create", "public_key": "abc"})
        assert printed["ts"].endswith("Z")

    def test_emitted_receipt_validates(self, capsys):
        """Receipts built by emit_receipt pass their schema."""
        receipt = emit_receipt("anomaly", {"operation": "send", "category": "policy", "message": "no"})

        assert validate_receipt(receipt) is True

    def test_validate_missing_field(self):
        """Missing schema fields raise StopRule."""
        receipt = {"receipt_type": "seal", "ts": "t", "artifact_id": "a", "payload_hash": "h"}

        with pytest.raises(StopRule):
            validate_receipt(receipt)

    def test_validate_unknown_type(self):
        """Unknown receipt types raise StopRule."""
        receipt = {"receipt_type": "mystery", "ts": "t", "artifact_id": "a", "payload_hash": "h"}

        with pytest.raises(StopRule):
            validate_receipt(receipt)

    def test_validate_wrong_type(self):
        """Wrong field types raise StopRule."""
        receipt = {
            "receipt_type": "key", "ts": "t", "artifact_id": "a", "payload_hash": "h",
            "action": "create", "public_key": 42,
        }

        with pytest.raises(StopRule):
            validate_receipt(receipt)
