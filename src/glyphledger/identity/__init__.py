"""Identity subpackage: local keypair, content signature and owner key."""
from .keys import (
    KeyPair,
    KeyStore,
    b64u_decode,
    b64u_encode,
    export_public_key,
    phi_from_public_key,
    sign,
    verify,
)
from .sigma import canonical_hash, centre_pixel_signature, compute_content_signature, derive_phi_key

__all__ = [
    "KeyPair",
    "KeyStore",
    "b64u_decode",
    "b64u_encode",
    "export_public_key",
    "phi_from_public_key",
    "sign",
    "verify",
    "canonical_hash",
    "centre_pixel_signature",
    "compute_content_signature",
    "derive_phi_key",
]
