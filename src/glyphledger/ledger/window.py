"""Head window verification.

refresh_head_window recomputes both window roots and re-derives a proof for
the newest leaf of each track. A stored root alone is not trusted: the
proof is checked directly and again through a portable head bundle, so a
corrupted bundle format is caught too.
"""
from dataclasses import dataclass

from ..anchor.bundles import (
    HeadWindowProofBundle,
    ProofBundle,
    SegmentProofBundle,
    verify_head_bundle,
    verify_segment_bundle,
)
from ..anchor.merkle import MerkleProof, build_root, merkle_proof, verify_proof
from ..core.model import ArtifactMetadata
from .leaves import hardened_leaf_hash, hash_transfer


@dataclass
class HeadProof:
    """Roots and proof checks from one refresh.

    ``*_ok`` fields are None when the corresponding window is empty.
    """
    window_root: str
    leaf_count: int
    proof: MerkleProof | None = None
    proof_ok: bool | None = None
    bundle_ok: bool | None = None
    hardened_root: str | None = None
    hardened_count: int = 0
    hardened_proof_ok: bool | None = None

    @property
    def ok(self) -> bool:
        return all(v is not False for v in (self.proof_ok, self.bundle_ok, self.hardened_proof_ok))

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "windowRoot": self.window_root,
            "leafCount": self.leaf_count,
            "proof": self.proof.to_dict() if self.proof else None,
            "proofOk": self.proof_ok,
            "bundleOk": self.bundle_ok,
            "hardenedRoot": self.hardened_root,
            "hardenedCount": self.hardened_count,
            "hardenedProofOk": self.hardened_proof_ok,
        }


def window_leaves(meta: ArtifactMetadata) -> list[str]:
    return [hash_transfer(t) for t in meta.transfers]


def verify_historical(meta: ArtifactMetadata, bundle: ProofBundle) -> bool:
    """Check a head or segment proof bundle against roots recomputed from meta.

    Args:
        meta: Artifact metadata
        bundle: HeadWindowProofBundle or SegmentProofBundle

    Returns:
        True if the bundle proves inclusion under this artifact's head
    """
    if isinstance(bundle, HeadWindowProofBundle):
        return verify_head_bundle(bundle, build_root(window_leaves(meta)))

    if isinstance(bundle, SegmentProofBundle):
        segments = sorted(meta.segments, key=lambda s: s.index)
        if not 0 <= bundle.segment_index < len(segments):
            return False
        if segments[bundle.segment_index].root != bundle.segment_root:
            return False
        segments_root = build_root([s.root for s in segments])
        if meta.segments_merkle_root is not None and meta.segments_merkle_root != segments_root:
            return False
        return verify_segment_bundle(bundle, segments_root)

    return False


def refresh_head_window(meta: ArtifactMetadata) -> tuple[ArtifactMetadata, HeadProof]:
    """Recompute window roots and re-derive proofs for the newest leaves.

    Pure: returns an updated copy and never touches ``meta``. Calling it
    twice on unchanged metadata yields identical results.

    Args:
        meta: Artifact metadata

    Returns:
        (copy with transfersWindowRoot / transfersWindowRootV14 set, HeadProof)
    """
    out = meta.copy()

    leaves = window_leaves(out)
    root = build_root(leaves)
    out.transfers_window_root = root
    head = HeadProof(window_root=root, leaf_count=len(leaves))

    if leaves:
        last = len(leaves) - 1
        proof = merkle_proof(leaves, last)
        head.proof = proof
        head.proof_ok = verify_proof(root, leaves[last], proof)
        bundle = HeadWindowProofBundle(window_merkle_root=root, transfer_proof=proof)
        head.bundle_ok = verify_historical(out, bundle)

    hardened = [hardened_leaf_hash(h) for h in out.hardened_transfers]
    if hardened:
        hardened_root = build_root(hardened)
        out.transfers_window_root_v14 = hardened_root
        head.hardened_root = hardened_root
        head.hardened_count = len(hardened)
        last = len(hardened) - 1
        head.hardened_proof_ok = verify_proof(hardened_root, hardened[last], merkle_proof(hardened, last))

    return out, head
