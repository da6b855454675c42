"""Anchor subpackage for cryptographic proofs.

Provides Merkle tree operations and proof bundle verification.
"""
from .merkle import EMPTY_ROOT, MerkleProof, build_root, build_tree, merkle_proof, verify_proof
from .bundles import (
    HeadWindowProofBundle,
    ProofBundle,
    SegmentProofBundle,
    bundle_from_dict,
    verify_head_bundle,
    verify_segment_bundle,
)

__all__ = [
    "EMPTY_ROOT",
    "MerkleProof",
    "build_root",
    "build_tree",
    "merkle_proof",
    "verify_proof",
    "HeadWindowProofBundle",
    "ProofBundle",
    "SegmentProofBundle",
    "bundle_from_dict",
    "verify_head_bundle",
    "verify_segment_bundle",
]
