"""Merkle tree operations over ordered leaf hashes.

Padding rule: on a level with an odd node count the last node is paired
with itself (duplicate-last). build_root, build_tree, merkle_proof and
verify_proof all apply the same rule, so a proof for the unpaired node
carries that node's own hash as its sibling.

Interior node = sha256_hex(left_hex + right_hex).
"""
from dataclasses import dataclass, field

from ..core.receipt import sha256_hex

EMPTY_ROOT = sha256_hex(b"")


@dataclass
class MerkleProof:
    """Inclusion proof: sibling hashes bottom-up, positions from index bits."""
    leaf: str
    index: int
    siblings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"leaf": self.leaf, "index": self.index, "siblings": list(self.siblings)}

    @classmethod
    def from_dict(cls, data: dict) -> "MerkleProof":
        return cls(
            leaf=data["leaf"],
            index=int(data["index"]),
            siblings=list(data.get("siblings", [])),
        )


def _parent(left: str, right: str) -> str:
    return sha256_hex(left + right)


def build_tree(leaves: list[str]) -> dict:
    """Build full Merkle tree structure.

    Args:
        leaves: Ordered leaf hashes

    Returns:
        dict with root, levels (leaves first) and leaf_count
    """
    if not leaves:
        return {"root": EMPTY_ROOT, "levels": [], "leaf_count": 0}

    levels = [list(leaves)]
    current = list(leaves)

    while len(current) > 1:
        # Duplicate last if odd
        if len(current) % 2 == 1:
            current.append(current[-1])

        current = [_parent(current[i], current[i + 1]) for i in range(0, len(current), 2)]
        levels.append(current[:])

    return {"root": current[0], "levels": levels, "leaf_count": len(leaves)}


def build_root(leaves: list[str]) -> str:
    """Compute Merkle root from ordered leaf hashes.

    - Empty list: sha256 of the empty string
    - Single leaf: the leaf itself
    - Odd count: duplicate last hash

    Args:
        leaves: Ordered leaf hashes

    Returns:
        Merkle root hex
    """
    return build_tree(leaves)["root"]


def merkle_proof(leaves: list[str], index: int) -> MerkleProof:
    """Generate inclusion proof for the leaf at index.

    Args:
        leaves: Ordered leaf hashes
        index: Leaf position

    Returns:
        MerkleProof with siblings bottom-up

    Raises:
        IndexError: If index is outside the leaf list
    """
    if not 0 <= index < len(leaves):
        raise IndexError(f"Leaf index {index} out of range for {len(leaves)} leaves")

    levels = build_tree(leaves)["levels"]
    siblings = []
    idx = index

    for level in levels[:-1]:  # All levels except root
        level_copy = level[:]
        if len(level_copy) % 2 == 1:
            level_copy.append(level_copy[-1])

        siblings.append(level_copy[idx ^ 1])
        idx //= 2

    return MerkleProof(leaf=leaves[index], index=index, siblings=siblings)


def verify_proof(root: str, leaf: str, proof: MerkleProof) -> bool:
    """Recompute root from leaf and proof path, compare to expected root.

    Args:
        root: Expected Merkle root
        leaf: Leaf hash being proven
        proof: MerkleProof (its index decides left/right at each level)

    Returns:
        True if proof is valid, False otherwise
    """
    if leaf != proof.leaf or proof.index < 0:
        return False

    current = leaf
    idx = proof.index

    for sibling in proof.siblings:
        if idx % 2 == 0:
            # We're on left, sibling on right
            current = _parent(current, sibling)
        else:
            # We're on right, sibling on left
            current = _parent(sibling, current)
        idx //= 2

    # leftover index bits mean the proof is too short for its claimed position
    return idx == 0 and current == root
