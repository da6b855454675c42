"""Sovereign local identity: one ECDSA P-256 keypair per device.

Wire formats:
    public key  base64url(SPKI DER), no padding
    signature   base64url(r || s), 64 bytes, no padding (IEEE P1363)

The store never regenerates a key once lineage entries were signed with it;
a partial, mismatched, or missing-but-bound key is a KeyConsistencyError
for the caller to resolve.
"""
import base64
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import base58
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from ..core.constants import PHI_PAYLOAD_BYTES, PHI_VERSION_BYTE
from ..core.errors import KeyConsistencyError
from ..core.receipt import emit_receipt, sha256_hex

CURVE = ec.SECP256R1()
COORDINATE_BYTES = 32

PRIVATE_FILE = "private.pem"
PUBLIC_FILE = "public.spki"
LINEAGE_FILE = "lineage.json"


def b64u_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64u_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def export_public_key(private_key: ec.EllipticCurvePrivateKey) -> str:
    """Portable public half: base64url(SPKI DER)."""
    spki = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return b64u_encode(spki)


def sign(private_key: ec.EllipticCurvePrivateKey, message: bytes) -> str:
    """ECDSA/SHA-256 signature in raw r||s form, base64url."""
    der = private_key.sign(message, ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der)
    raw = r.to_bytes(COORDINATE_BYTES, "big") + s.to_bytes(COORDINATE_BYTES, "big")
    return b64u_encode(raw)


def verify(public_key_b64u: str, message: bytes, signature_b64u: str) -> bool:
    """Verify a raw r||s signature against a base64url SPKI public key.

    Malformed keys or signatures verify as False; they cannot prove anything.
    """
    try:
        public_key = serialization.load_der_public_key(b64u_decode(public_key_b64u))
        raw = b64u_decode(signature_b64u)
    except (ValueError, TypeError, UnsupportedAlgorithm):
        return False

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        return False
    if not isinstance(public_key.curve, ec.SECP256R1):
        return False
    if len(raw) != 2 * COORDINATE_BYTES:
        return False

    r = int.from_bytes(raw[:COORDINATE_BYTES], "big")
    s = int.from_bytes(raw[COORDINATE_BYTES:], "big")
    try:
        public_key.verify(encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True


def phi_from_public_key(public_key_b64u: str) -> str:
    """Φ bound to a public key: Base58Check(0x00, SHA-256(SPKI)[:20])."""
    digest = bytes.fromhex(sha256_hex(b64u_decode(public_key_b64u)))
    payload = bytes([PHI_VERSION_BYTE]) + digest[:PHI_PAYLOAD_BYTES]
    return base58.b58encode_check(payload).decode("ascii")


@dataclass
class KeyPair:
    """Loaded keypair. ``public_key`` is the portable base64url SPKI."""
    private_key: ec.EllipticCurvePrivateKey
    public_key: str

    @classmethod
    def generate(cls) -> "KeyPair":
        private_key = ec.generate_private_key(CURVE)
        return cls(private_key=private_key, public_key=export_public_key(private_key))

    def sign(self, message: bytes) -> str:
        return sign(self.private_key, message)

    def private_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


class KeyStore:
    """File-backed persistence for the local keypair.

    Attributes:
        directory: Folder holding private.pem, public.spki and lineage.json
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    @property
    def private_path(self) -> Path:
        return self.directory / PRIVATE_FILE

    @property
    def public_path(self) -> Path:
        return self.directory / PUBLIC_FILE

    @property
    def lineage_path(self) -> Path:
        return self.directory / LINEAGE_FILE

    def bindings(self) -> list[dict]:
        """Lineage entries this device has signed, oldest first."""
        if not self.lineage_path.exists():
            return []
        with open(self.lineage_path) as f:
            return json.load(f)

    def load(self) -> KeyPair | None:
        """Load the persisted keypair, or None when nothing is persisted.

        Raises:
            KeyConsistencyError: If only one half exists or the halves disagree
        """
        has_private = self.private_path.exists()
        has_public = self.public_path.exists()

        if not has_private and not has_public:
            return None
        if has_private != has_public:
            missing = PUBLIC_FILE if has_private else PRIVATE_FILE
            raise KeyConsistencyError(f"Keypair incomplete: {missing} missing in {self.directory}")

        with open(self.private_path, "rb") as f:
            try:
                private_key = serialization.load_pem_private_key(f.read(), password=None)
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                raise KeyConsistencyError(f"Private key unreadable: {e}") from e
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise KeyConsistencyError("Private key is not an ECDSA key")

        stored_public = self.public_path.read_text().strip()
        derived_public = export_public_key(private_key)
        if stored_public != derived_public:
            raise KeyConsistencyError("Stored public key does not match private key")

        return KeyPair(private_key=private_key, public_key=derived_public)

    def load_or_create(self) -> KeyPair:
        """Reuse the persisted keypair, else generate and persist a fresh one.

        Raises:
            KeyConsistencyError: If keys are partial/mismatched, or missing while
                lineage bindings show a previous key signed entries
        """
        existing = self.load()
        if existing is not None:
            return existing

        if self.bindings():
            raise KeyConsistencyError(
                "Keypair missing but lineage entries are bound to a previous key; "
                "refusing to regenerate"
            )

        keypair = KeyPair.generate()
        self._persist(keypair)

        emit_receipt("key", {
            "action": "create",
            "public_key": keypair.public_key,
        })
        return keypair

    def record_binding(self, keypair: KeyPair, artifact_id: str, role: str) -> None:
        """Remember that this key signed a lineage entry for artifact_id."""
        bindings = self.bindings()
        bindings.append({
            "artifact_id": artifact_id,
            "role": role,
            "public_key": keypair.public_key,
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        })
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self.lineage_path, "w") as f:
            json.dump(bindings, f, indent=2)

    def _persist(self, keypair: KeyPair) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

        with open(self.private_path, "wb") as f:
            f.write(keypair.private_pem())
        # Unix only
        try:
            os.chmod(self.private_path, 0o600)
        except OSError:
            pass

        with open(self.public_path, "w") as f:
            f.write(keypair.public_key + "\n")
