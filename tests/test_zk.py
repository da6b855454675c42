"""Tests for optional ZK binding and verifying-key resolution.

Functions tested: make_stamp, stamp_matches_bundle, resolve_vkey, try_verify,
verify_zk_on_head, discover_verifier, fetch_vkey, load_vkey_file,
resolve_global_vkey
"""
import json
import logging

import pytest
import requests

from glyphledger.config.settings import LedgerConfig
from glyphledger.core.errors import CryptographicError
from glyphledger.core.model import ZkBundle
from glyphledger.core.receipt import hash_any
from glyphledger.ledger.controller import LedgerController, LedgerState
from glyphledger.ledger.hardened import verify_chain
from glyphledger.zk import binding, vkey
from glyphledger.zk.binding import (
    ZkVerifier,
    discover_verifier,
    make_stamp,
    resolve_vkey,
    stamp_matches_bundle,
    try_verify,
    verify_zk_on_head,
)
from glyphledger.zk.vkey import fetch_vkey, load_vkey_file, resolve_global_vkey

from conftest import LIVE, FakeProvider, FakeVerifier, run_cycles


def _bundle(valid=True, vkey_value=None) -> ZkBundle:
    return ZkBundle(
        scheme="groth16",
        curve="BLS12-381",
        proof={"valid": valid},
        public_signals=["1"],
        vkey=vkey_value,
    )


class TestStamps:
    """Tests for stamp binding."""

    def test_stamp_hashes(self):
        bundle = _bundle(vkey_value={"k": 1})
        stamp = make_stamp(bundle)

        assert stamp.proof_hash == hash_any({"valid": True})
        assert stamp.public_hash == hash_any(["1"])
        assert stamp.vkey_hash == hash_any({"k": 1})
        assert stamp.verified is None

    def test_stamp_mismatch(self):
        stamp = make_stamp(_bundle())
        assert stamp_matches_bundle(stamp, _bundle())
        assert not stamp_matches_bundle(stamp, _bundle(valid=False))

    def test_vkey_precedence(self, sealed_meta):
        """Bundle key, then artifact key, then global key."""
        sealed_meta.zk_verifying_key = {"k": "artifact"}

        assert resolve_vkey(_bundle(vkey_value={"k": "inline"}), sealed_meta, {"k": "global"}) == {"k": "inline"}
        assert resolve_vkey(_bundle(), sealed_meta, {"k": "global"}) == {"k": "artifact"}
        sealed_meta.zk_verifying_key = None
        assert resolve_vkey(_bundle(), sealed_meta, {"k": "global"}) == {"k": "global"}
        assert resolve_vkey(_bundle(), sealed_meta, None) is None


class TestTryVerify:
    """Tests for try_verify."""

    def test_unavailable_is_none(self):
        """Missing verifier or key is unknown, not a failure."""
        assert try_verify(None, _bundle(), {"k": 1}) is None
        assert try_verify(FakeVerifier(), _bundle(), None) is None

    def test_verdicts(self):
        assert try_verify(FakeVerifier(), _bundle(), {"k": 1}) is True
        assert try_verify(FakeVerifier(), _bundle(valid=False), {"k": 1}) is False

    def test_raising_verifier_is_false(self, caplog):
        class Exploding:
            def verify(self, vkey, public_signals, proof):
                raise RuntimeError("bad pairing")

        with caplog.at_level(logging.WARNING, logger="glyphledger.zk"):
            assert try_verify(Exploding(), _bundle(), {"k": 1}) is False
        assert "bad pairing" in caplog.text


class TestProofsOnEntries:
    """Tests for ZK proofs attached through the controller."""

    def _controller(self, keypair, clock, provider, verifier=None, global_vkey=None):
        return LedgerController(
            keypair=keypair,
            config=LedgerConfig(),
            clock=clock,
            verifier=verifier,
            proof_provider=provider,
            global_vkey=global_vkey,
        )

    def test_stamps_and_bundles_attached(self, keypair, clock, sealed_meta, fake_verifier):
        controller = self._controller(keypair, clock, FakeProvider(), fake_verifier)
        meta, _ = run_cycles(controller, sealed_meta, 1)
        entry = meta.hardened_transfers[0]

        assert entry.zk_send.verified is True
        assert entry.zk_receive.verified is True
        assert entry.zk_send_bundle.public_signals == [entry.transfer_leaf_hash_send]
        assert stamp_matches_bundle(entry.zk_send, entry.zk_send_bundle)

    def test_head_report_counts(self, keypair, clock, sealed_meta, fake_verifier):
        controller = self._controller(keypair, clock, FakeProvider(), fake_verifier)
        meta, _ = run_cycles(controller, sealed_meta, 2)

        checked, report = verify_zk_on_head(meta, fake_verifier)

        assert (report.verified, report.failed, report.unknown) == (4, 0, 0)
        assert checked is not meta

    def test_no_verifier_is_unknown(self, keypair, clock, sealed_meta):
        """Without a verifier proofs stay unknown and the chain stays ok."""
        controller = self._controller(keypair, clock, FakeProvider())
        meta, _ = run_cycles(controller, sealed_meta, 1)

        _, report = verify_zk_on_head(meta, None)
        chain = verify_chain(meta, None)

        assert report.unknown == 2
        assert chain.ok
        assert {i.kind for i in chain.issues} == {"zkUnavailable"}
        assert controller.status(meta, LIVE).state is LedgerState.VERIFIED

    def test_failed_proof_blocks(self, keypair, clock, sealed_meta, fake_verifier):
        """A rejected send proof is a cryptographic failure that blocks receive."""
        controller = self._controller(keypair, clock, FakeProvider(valid=False), fake_verifier)
        sent = controller.send(sealed_meta, LIVE)

        assert sent.ok
        assert sent.metadata.hardened_transfers[0].zk_send.verified is False

        received = controller.receive(sent.metadata, LIVE)

        assert not received.ok
        assert isinstance(received.error, CryptographicError)

    def test_swapped_proof_detected(self, keypair, clock, sealed_meta, fake_verifier):
        """Replacing a bundle without its stamp is a hash mismatch."""
        controller = self._controller(keypair, clock, FakeProvider(), fake_verifier)
        meta, _ = run_cycles(controller, sealed_meta, 1)
        meta.hardened_transfers[0].zk_send_bundle.proof = {"valid": True, "pi_a": ["9"]}

        chain = verify_chain(meta, fake_verifier)
        _, report = verify_zk_on_head(meta, fake_verifier)

        assert any(i.kind == "zkSendStampHashMismatch" for i in chain.issues)
        assert report.failures == [{"index": 0, "side": "send"}]

    def test_global_vkey_used(self, keypair, clock, sealed_meta, fake_verifier):
        """Bundles without an inline key fall back to the configured key."""
        provider = FakeProvider()
        provider.vkey = None
        controller = self._controller(keypair, clock, provider, fake_verifier, {"k": "global"})
        meta, _ = run_cycles(controller, sealed_meta, 1)

        assert meta.hardened_transfers[0].zk_send.vkey_hash == hash_any({"k": "global"})
        _, report = verify_zk_on_head(meta, fake_verifier, {"k": "global"})
        assert report.verified == 2


class _EntryPoint:
    def __init__(self, name, target=None, error=None):
        self.name = name
        self._target = target
        self._error = error

    def load(self):
        if self._error is not None:
            raise self._error
        return self._target


class TestDiscovery:
    """Tests for verifier discovery through entry points."""

    def test_first_usable_verifier(self, monkeypatch):
        eps = [
            _EntryPoint("broken", error=ImportError("missing module")),
            _EntryPoint("fake", target=FakeVerifier),
        ]
        monkeypatch.setattr(binding, "entry_points", lambda group: eps)

        verifier = discover_verifier()

        assert isinstance(verifier, FakeVerifier)
        assert isinstance(verifier, ZkVerifier)

    def test_none_registered(self, monkeypatch):
        monkeypatch.setattr(binding, "entry_points", lambda group: [])
        assert discover_verifier() is None

    def test_object_without_verify_skipped(self, monkeypatch):
        monkeypatch.setattr(binding, "entry_points", lambda group: [_EntryPoint("odd", target=object())])
        assert discover_verifier() is None


class _Response:
    def __init__(self, payload=None, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class TestVkeyResolution:
    """Tests for global verifying-key loading."""

    def test_fetch_ok(self, monkeypatch):
        calls = {}

        def fake_get(url, timeout, headers):
            calls["timeout"] = timeout
            return _Response({"protocol": "groth16"})

        monkeypatch.setattr(vkey.requests, "get", fake_get)

        assert fetch_vkey("https://keys.example/vkey.json", 1500) == {"protocol": "groth16"}
        assert calls["timeout"] == 1.5

    @pytest.mark.parametrize("outcome", ["timeout", "http", "json"])
    def test_fetch_failures_are_none(self, monkeypatch, outcome):
        def fake_get(url, timeout, headers):
            if outcome == "timeout":
                raise requests.Timeout("slow")
            if outcome == "http":
                return _Response({"x": 1}, status=503)
            return _Response(None)

        monkeypatch.setattr(vkey.requests, "get", fake_get)

        assert fetch_vkey("https://keys.example/vkey.json") is None

    def test_load_file(self, tmp_path):
        path = tmp_path / "vkey.json"
        path.write_text(json.dumps({"k": 1}))

        assert load_vkey_file(path) == {"k": 1}
        assert load_vkey_file(tmp_path / "missing.json") is None

    def test_file_before_url(self, tmp_path, monkeypatch):
        path = tmp_path / "vkey.json"
        path.write_text(json.dumps({"k": "file"}))
        monkeypatch.setattr(vkey.requests, "get", lambda *a, **k: pytest.fail("should not fetch"))

        config = LedgerConfig(vkey_path=path, vkey_url="https://keys.example/vkey.json")

        assert resolve_global_vkey(config) == {"k": "file"}

    def test_nothing_configured(self):
        assert resolve_global_vkey(LedgerConfig()) is None
