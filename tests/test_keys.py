"""Tests for the local keypair and its persistence.

Functions tested: sign, verify, export_public_key, phi_from_public_key,
KeyPair, KeyStore.load, KeyStore.load_or_create, KeyStore.record_binding
"""
import json
import os
import stat

import pytest

from glyphledger.core.errors import KeyConsistencyError
from glyphledger.core.schemas import validate_receipt
from glyphledger.identity.keys import (
    KeyPair,
    KeyStore,
    b64u_decode,
    b64u_encode,
    phi_from_public_key,
    verify,
)


class TestSignatures:
    """Tests for ECDSA P-256 signing in raw r||s form."""

    def test_sign_verify(self, keypair):
        """A fresh signature verifies under the same key."""
        sig = keypair.sign(b"hello")
        assert verify(keypair.public_key, b"hello", sig)

    def test_signature_is_64_raw_bytes(self, keypair):
        """Signatures are r||s, 32 bytes each, base64url without padding."""
        sig = keypair.sign(b"msg")

        assert "=" not in sig
        assert len(b64u_decode(sig)) == 64

    def test_wrong_message_fails(self, keypair):
        """Any message change breaks the signature."""
        sig = keypair.sign(b"msg")
        assert not verify(keypair.public_key, b"msg2", sig)

    def test_wrong_key_fails(self, keypair):
        """Another key cannot verify the signature."""
        other = KeyPair.generate()
        sig = keypair.sign(b"msg")
        assert not verify(other.public_key, b"msg", sig)

    def test_malformed_inputs_verify_false(self, keypair):
        """Garbage keys and signatures are rejected, not raised."""
        sig = keypair.sign(b"msg")

        assert not verify("not-a-key", b"msg", sig)
        assert not verify(keypair.public_key, b"msg", "AAAA")
        assert not verify(keypair.public_key, b"msg", b64u_encode(b"\x00" * 70))

    def test_phi_from_public_key(self, keypair):
        """Φ is a Base58Check address with a zero version byte."""
        phi = phi_from_public_key(keypair.public_key)

        assert phi.startswith("1")
        assert phi == phi_from_public_key(keypair.public_key)
        assert phi != phi_from_public_key(KeyPair.generate().public_key)


class TestKeyStore:
    """Tests for KeyStore persistence."""

    def test_empty_store_loads_none(self, key_store):
        """Nothing persisted yet."""
        assert key_store.load() is None
        assert key_store.bindings() == []

    def test_create_then_reload(self, key_store, capsys):
        """load_or_create persists a key that later loads unchanged."""
        created = key_store.load_or_create()
        reloaded = KeyStore(key_store.directory).load_or_create()

        assert reloaded.public_key == created.public_key
        assert key_store.public_path.read_text().strip() == created.public_key

        receipts = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [r["receipt_type"] for r in receipts] == ["key"]
        assert validate_receipt(receipts[0])

    @pytest.mark.skipif(os.name != "posix", reason="file modes are POSIX only")
    def test_private_key_mode(self, key_store):
        """Private key is readable by the owner only."""
        key_store.load_or_create()
        mode = stat.S_IMODE(key_store.private_path.stat().st_mode)
        assert mode == 0o600

    def test_partial_pair_raises(self, key_store):
        """Missing public half is a consistency error."""
        key_store.load_or_create()
        key_store.public_path.unlink()

        with pytest.raises(KeyConsistencyError):
            key_store.load()

    def test_mismatched_pair_raises(self, key_store):
        """A public half from another key is a consistency error."""
        key_store.load_or_create()
        key_store.public_path.write_text(KeyPair.generate().public_key + "\n")

        with pytest.raises(KeyConsistencyError):
            key_store.load_or_create()

    def test_unreadable_private_key(self, key_store):
        """Corrupt PEM is a consistency error."""
        key_store.load_or_create()
        key_store.private_path.write_bytes(b"not a pem")

        with pytest.raises(KeyConsistencyError):
            key_store.load()

    def test_no_regenerate_when_bound(self, key_store):
        """A lost key with recorded bindings is never silently replaced."""
        keypair = key_store.load_or_create()
        key_store.record_binding(keypair, "artifact-1", "send")
        key_store.private_path.unlink()
        key_store.public_path.unlink()

        with pytest.raises(KeyConsistencyError):
            key_store.load_or_create()

    def test_record_binding(self, key_store):
        """Bindings append in order with the signing key."""
        keypair = key_store.load_or_create()
        key_store.record_binding(keypair, "a", "send")
        key_store.record_binding(keypair, "a", "receive")

        bindings = key_store.bindings()
        assert [b["role"] for b in bindings] == ["send", "receive"]
        assert all(b["public_key"] == keypair.public_key for b in bindings)
        assert bindings[0]["artifact_id"] == "a"
