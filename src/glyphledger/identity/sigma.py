"""Content signature (Σ), owner key (Φ) and live identity proofs.

Σ binds the identity coordinates of a glyph. Φ is a Base58Check address
derived from Σ. Neither involves a private key; they make tampering with
the identity fields visible, nothing more.
"""
import base58

from ..core.constants import PHI_PAYLOAD_BYTES, PHI_SUFFIX, PHI_VERSION_BYTE
from ..core.model import ArtifactMetadata
from ..core.receipt import sha256_hex


def compute_content_signature(meta: ArtifactMetadata) -> str | None:
    """Recompute Σ from identity fields.

    Args:
        meta: Artifact metadata

    Returns:
        64-char hex Σ, or None when identity fields are missing or wrong-typed
    """
    if not meta.has_core:
        return None
    intention = meta.intention_sigil or ""
    return sha256_hex(f"{meta.pulse}|{meta.beat}|{meta.step_index}|{meta.chakra_day}|{intention}")


def derive_phi_key(content_signature: str) -> str:
    """Φ = Base58Check(0x00, SHA-256(Σ + "φ")[:20])."""
    digest = bytes.fromhex(sha256_hex(content_signature + PHI_SUFFIX))
    payload = bytes([PHI_VERSION_BYTE]) + digest[:PHI_PAYLOAD_BYTES]
    return base58.b58encode_check(payload).decode("ascii")


def canonical_hash(meta: ArtifactMetadata) -> str | None:
    """Identity-only hash used as the artifact id in receipts and file names."""
    if not meta.has_core:
        return None
    return sha256_hex(f"{meta.pulse}|{meta.beat}|{meta.step_index}|{meta.chakra_day}")


def centre_pixel_signature(pulse: int, rgb: tuple[int, int, int]) -> str:
    """Live identity proof sampled from the rendered glyph's centre pixel.

    Any opaque string works as a live signature; this is the one the
    renderer produces.
    """
    r, g, b = rgb
    return sha256_hex(f"{pulse}-2:3-{r},{g},{b}")[:32]
