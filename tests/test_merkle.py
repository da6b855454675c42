"""Tests for Merkle trees and portable proof bundles.

Functions tested: build_root, build_tree, merkle_proof, verify_proof,
bundle_from_dict, verify_head_bundle, verify_segment_bundle
"""
import pytest

from glyphledger.anchor.bundles import (
    HeadWindowProofBundle,
    SegmentProofBundle,
    bundle_from_dict,
    verify_head_bundle,
    verify_segment_bundle,
)
from glyphledger.anchor.merkle import (
    EMPTY_ROOT,
    MerkleProof,
    build_root,
    build_tree,
    merkle_proof,
    verify_proof,
)
from glyphledger.core.receipt import sha256_hex


def _leaves(n: int) -> list[str]:
    return [sha256_hex(f"leaf-{i}") for i in range(n)]


class TestBuildRoot:
    """Tests for root computation."""

    def test_empty_root(self):
        """Empty list hashes the empty string."""
        assert build_root([]) == EMPTY_ROOT
        assert EMPTY_ROOT == sha256_hex(b"")

    def test_single_leaf_is_root(self):
        """A single leaf is its own root."""
        leaf = sha256_hex("only")
        assert build_root([leaf]) == leaf

    def test_two_leaves(self):
        """Interior node hashes the concatenated hex strings."""
        a, b = _leaves(2)
        assert build_root([a, b]) == sha256_hex(a + b)

    def test_odd_count_duplicates_last(self):
        """Three leaves pair the last with itself."""
        a, b, c = _leaves(3)
        expected = sha256_hex(sha256_hex(a + b) + sha256_hex(c + c))
        assert build_root([a, b, c]) == expected

    def test_order_matters(self):
        """Swapping leaves changes the root."""
        a, b = _leaves(2)
        assert build_root([a, b]) != build_root([b, a])

    def test_tree_levels(self):
        """build_tree keeps the leaves as level zero."""
        leaves = _leaves(5)
        tree = build_tree(leaves)

        assert tree["levels"][0] == leaves
        assert tree["leaf_count"] == 5
        assert tree["levels"][-1] == [tree["root"]]


class TestProofs:
    """Tests for inclusion proofs."""

    @pytest.mark.parametrize("size", range(1, 10))
    def test_every_leaf_proves(self, size):
        """Each leaf of trees of size 1..9 proves into the root."""
        leaves = _leaves(size)
        root = build_root(leaves)

        for i, leaf in enumerate(leaves):
            proof = merkle_proof(leaves, i)
            assert verify_proof(root, leaf, proof)

    def test_unpaired_node_sibling_is_itself(self):
        """The last node of an odd level carries its own hash as sibling."""
        leaves = _leaves(3)
        proof = merkle_proof(leaves, 2)

        assert proof.siblings[0] == leaves[2]

    def test_tampered_leaf_fails(self):
        """A different leaf does not verify."""
        leaves = _leaves(4)
        root = build_root(leaves)
        proof = merkle_proof(leaves, 1)

        assert not verify_proof(root, sha256_hex("forged"), proof)

    def test_tampered_sibling_fails(self):
        """A flipped sibling hash breaks the proof."""
        leaves = _leaves(4)
        root = build_root(leaves)
        proof = merkle_proof(leaves, 1)
        proof.siblings[0] = sha256_hex("forged")

        assert not verify_proof(root, leaves[1], proof)

    def test_wrong_index_fails(self):
        """The index decides left/right; a wrong index recomputes another root."""
        leaves = _leaves(4)
        root = build_root(leaves)
        proof = merkle_proof(leaves, 1)
        proof.index = 0

        assert not verify_proof(root, leaves[1], proof)

    def test_short_proof_fails(self):
        """A proof missing levels for its index is rejected."""
        leaves = _leaves(8)
        root = build_root(leaves)
        proof = merkle_proof(leaves, 6)
        proof.siblings = proof.siblings[:1]

        assert not verify_proof(root, leaves[6], proof)

    def test_out_of_range_index(self):
        """Proofs for missing leaves are a programmer error."""
        with pytest.raises(IndexError):
            merkle_proof(_leaves(3), 3)
        with pytest.raises(IndexError):
            merkle_proof([], 0)

    def test_proof_dict_roundtrip(self):
        """MerkleProof survives its wire form."""
        proof = merkle_proof(_leaves(5), 4)
        assert MerkleProof.from_dict(proof.to_dict()) == proof


class TestBundles:
    """Tests for head and segment proof bundles."""

    def test_head_bundle_verifies(self):
        """A head bundle proves against its window root."""
        leaves = _leaves(3)
        root = build_root(leaves)
        bundle = HeadWindowProofBundle(window_merkle_root=root, transfer_proof=merkle_proof(leaves, 0))

        assert verify_head_bundle(bundle, root)
        assert not verify_head_bundle(bundle, build_root(_leaves(4)))

    def test_segment_bundle_two_levels(self):
        """Transfer proves into its segment and the segment into the segments root."""
        seg_a, seg_b = _leaves(2), _leaves(3)
        roots = [build_root(seg_a), build_root(seg_b)]
        segments_root = build_root(roots)

        bundle = SegmentProofBundle(
            segment_index=1,
            segment_root=roots[1],
            transfer_proof=merkle_proof(seg_b, 2),
            head_hash_at_seal=sha256_hex("head"),
            segments_siblings=merkle_proof(roots, 1).siblings,
        )

        assert verify_segment_bundle(bundle, segments_root)
        bundle.segment_index = 0
        assert not verify_segment_bundle(bundle, segments_root)

    def test_bundle_from_dict(self):
        """Both bundle kinds rebuild from their wire form."""
        leaves = _leaves(2)
        root = build_root(leaves)
        head = HeadWindowProofBundle(window_merkle_root=root, transfer_proof=merkle_proof(leaves, 1))
        segment = SegmentProofBundle(
            segment_index=0,
            segment_root=root,
            transfer_proof=merkle_proof(leaves, 0),
            head_hash_at_seal="h",
            segments_siblings=[],
        )

        assert bundle_from_dict(head.to_dict()) == head
        assert bundle_from_dict(segment.to_dict()) == segment

    def test_bundle_unknown_kind(self):
        """Unknown bundle kinds raise ValueError."""
        with pytest.raises(ValueError):
            bundle_from_dict({"kind": "sideways"})
