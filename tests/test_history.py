"""Tests for compact shareable history.

Functions tested: history_records, encode_history, decode_history
"""
import base64
import json

import pytest

from glyphledger.core.errors import StructuralError
from glyphledger.ledger.history import decode_history, encode_history, history_records

from conftest import LIVE, run_cycles


class TestHistory:
    """Tests for history tokens."""

    def test_records(self, controller, sealed_meta):
        meta, _ = run_cycles(controller, sealed_meta, 2)
        meta = controller.send(meta, LIVE).metadata

        records = history_records(meta)

        assert len(records) == 3
        assert records[0]["s"] == LIVE and records[0]["r"] == LIVE
        assert records[2] == {"s": LIVE, "p": meta.transfers[2].sender_kai_pulse}

    def test_token_shape(self, controller, sealed_meta):
        """Tokens are h: plus unpadded URL-safe base64."""
        meta, _ = run_cycles(controller, sealed_meta, 1)
        token = encode_history(meta)

        assert token.startswith("h:")
        assert "=" not in token
        assert decode_history(token) == history_records(meta)

    def test_prefix_optional(self, controller, sealed_meta):
        meta, _ = run_cycles(controller, sealed_meta, 1)
        token = encode_history(meta)

        assert decode_history(token[2:]) == decode_history(token)

    def test_empty_history(self, sealed_meta):
        assert decode_history(encode_history(sealed_meta)) == []

    @pytest.mark.parametrize("payload", [
        {"s": "x"},
        [{"s": "x"}],
        [{"s": "x", "p": "1"}],
        [{"s": "x", "p": 1, "r": 2}],
        [{"s": "x", "p": True}],
    ])
    def test_bad_records(self, payload):
        raw = base64.urlsafe_b64encode(json.dumps(payload).encode()).rstrip(b"=").decode()

        with pytest.raises(StructuralError):
            decode_history("h:" + raw)

    def test_garbage_token(self):
        with pytest.raises(StructuralError):
            decode_history("h:%%%")
