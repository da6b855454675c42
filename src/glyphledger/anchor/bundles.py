"""Portable proof bundles for offline inclusion checks.

A head bundle proves a transfer is in the live window root. A segment
bundle proves a transfer is in an archived segment root, and that segment
root is in the head's segmentsMerkleRoot.
"""
from dataclasses import dataclass, field
from typing import Union

from .merkle import MerkleProof, verify_proof


@dataclass
class HeadWindowProofBundle:
    window_merkle_root: str
    transfer_proof: MerkleProof
    kind: str = "head"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "windowMerkleRoot": self.window_merkle_root,
            "transferProof": self.transfer_proof.to_dict(),
        }


@dataclass
class SegmentProofBundle:
    segment_index: int
    segment_root: str
    transfer_proof: MerkleProof
    head_hash_at_seal: str
    segments_siblings: list[str] = field(default_factory=list)
    kind: str = "segment"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "segmentIndex": self.segment_index,
            "segmentRoot": self.segment_root,
            "transferProof": self.transfer_proof.to_dict(),
            "segmentsSiblings": list(self.segments_siblings),
            "headHashAtSeal": self.head_hash_at_seal,
        }


ProofBundle = Union[HeadWindowProofBundle, SegmentProofBundle]


def bundle_from_dict(data: dict) -> ProofBundle:
    """Rebuild a bundle from its wire form.

    Raises:
        ValueError: If kind is unknown
    """
    kind = data.get("kind")
    if kind == "head":
        return HeadWindowProofBundle(
            window_merkle_root=data["windowMerkleRoot"],
            transfer_proof=MerkleProof.from_dict(data["transferProof"]),
        )
    if kind == "segment":
        return SegmentProofBundle(
            segment_index=int(data["segmentIndex"]),
            segment_root=data["segmentRoot"],
            transfer_proof=MerkleProof.from_dict(data["transferProof"]),
            segments_siblings=list(data.get("segmentsSiblings", [])),
            head_hash_at_seal=data["headHashAtSeal"],
        )
    raise ValueError(f"Unknown proof bundle kind: {kind}")


def verify_head_bundle(bundle: HeadWindowProofBundle, expected_root: str) -> bool:
    """Bundle root must match the expected window root and the proof must hold."""
    if bundle.window_merkle_root != expected_root:
        return False
    proof = bundle.transfer_proof
    return verify_proof(expected_root, proof.leaf, proof)


def verify_segment_bundle(bundle: SegmentProofBundle, segments_root: str) -> bool:
    """Check transfer ∈ segment root and segment root ∈ segments root."""
    proof = bundle.transfer_proof
    if not verify_proof(bundle.segment_root, proof.leaf, proof):
        return False
    segment_proof = MerkleProof(
        leaf=bundle.segment_root,
        index=bundle.segment_index,
        siblings=bundle.segments_siblings,
    )
    return verify_proof(segments_root, bundle.segment_root, segment_proof)
