"""Segmentation: roll the live window into immutable archived segments.

A roll is computed on a copy and returned whole (new metadata plus the
segment file bytes), so a caller sees either the old state or the fully
rolled one. Segment files are canonical JSON; their SHA-256 is the cid
recorded in the head.
"""
import json

from ..anchor.bundles import SegmentProofBundle
from ..anchor.merkle import build_root, merkle_proof
from ..core.constants import LEAF_HASH_ALGO, SEGMENT_FILE_VERSION, SEGMENT_FILENAME, SEGMENT_SIZE
from ..core.errors import PolicyError, StructuralError
from ..core.model import ArtifactMetadata, SegmentEntry, SegmentFile
from ..core.receipt import canonicalize, sha256_hex
from .leaves import hash_transfer, head_canonical_hash


def segment_filename(meta: ArtifactMetadata, index: int) -> str:
    return SEGMENT_FILENAME.format(pulse=meta.pulse, index=index)


def segments_root(segments: list[SegmentEntry]) -> str:
    """Merkle root over segment roots in index order."""
    return build_root([s.root for s in sorted(segments, key=lambda s: s.index)])


def should_roll(meta: ArtifactMetadata) -> bool:
    """Window has reached its cap and nothing is waiting for a receive."""
    cap = SEGMENT_SIZE if meta.segment_size is None else meta.segment_size
    if cap < 1:
        raise StructuralError(f"segmentSize must be a positive integer, got {cap}")
    last = meta.last_transfer
    return len(meta.transfers) >= cap and last is not None and not last.is_open


def seal_window_into_segment(meta: ArtifactMetadata) -> tuple[ArtifactMetadata, SegmentFile, bytes]:
    """Archive the live window as the next segment.

    Args:
        meta: Artifact metadata (not modified)

    Returns:
        (rolled copy of meta, SegmentFile, canonical segment bytes)

    Raises:
        PolicyError: If the window is empty or its last transfer is open
    """
    live = meta.transfers
    if not live:
        raise PolicyError("live window is empty; nothing to seal")
    if live[-1].is_open:
        raise PolicyError("cannot seal a segment while the last transfer is open", state="readyReceive")

    out = meta.copy()
    leaves = [hash_transfer(t) for t in out.transfers]
    root = build_root(leaves)
    head_hash = head_canonical_hash(out)

    index = len(out.segments)
    start = out.segmented_count()
    segment_file = SegmentFile(
        segment_index=index,
        segment_range=(start, start + len(leaves) - 1),
        segment_root=root,
        head_hash_at_seal=head_hash,
        transfers=list(out.transfers),
        version=SEGMENT_FILE_VERSION,
        leaf_hash=LEAF_HASH_ALGO,
    )
    blob = canonicalize(segment_file.to_dict())

    entry = SegmentEntry(index=index, root=root, cid=sha256_hex(blob), count=len(leaves))
    out.segments = [*out.segments, entry]
    out.segments_merkle_root = segments_root(out.segments)
    out.head_hash_at_seal = head_hash
    out.transfers = []
    out.transfers_window_root = None
    out.cumulative_transfers = out.segmented_count()
    if out.segment_size is None:
        out.segment_size = SEGMENT_SIZE

    return out, segment_file, blob


def verify_segment_file(entry: SegmentEntry, blob: bytes) -> list[str]:
    """Re-check an exported segment file against its head entry.

    Args:
        entry: SegmentEntry recorded in the head
        blob: Raw segment file bytes

    Returns:
        List of problems (empty if the file is intact)
    """
    problems = []

    if sha256_hex(blob) != entry.cid:
        problems.append("cid mismatch")

    try:
        segment_file = SegmentFile.from_dict(json.loads(blob))
    except (ValueError, StructuralError) as e:
        problems.append(f"unreadable segment file: {e}")
        return problems

    if segment_file.version != SEGMENT_FILE_VERSION:
        problems.append(f"unsupported version {segment_file.version}")
    if segment_file.leaf_hash != LEAF_HASH_ALGO:
        problems.append(f"unsupported leaf hash {segment_file.leaf_hash}")
    if segment_file.segment_index != entry.index:
        problems.append("segment index mismatch")

    count = len(segment_file.transfers)
    if count != entry.count:
        problems.append("transfer count mismatch")
    start, end = segment_file.segment_range
    if end - start + 1 != count:
        problems.append("segment range does not span its transfers")

    root = build_root([hash_transfer(t) for t in segment_file.transfers])
    if root != segment_file.segment_root or root != entry.root:
        problems.append("segment root mismatch")

    return problems


def build_segment_proof(meta: ArtifactMetadata, segment_file: SegmentFile, position: int) -> SegmentProofBundle:
    """Portable proof that transfer ``position`` of an archived segment is in the head.

    Raises:
        IndexError: If the segment or position does not exist
    """
    segments = sorted(meta.segments, key=lambda s: s.index)
    if not 0 <= segment_file.segment_index < len(segments):
        raise IndexError(f"segment {segment_file.segment_index} not recorded in head")

    leaves = [hash_transfer(t) for t in segment_file.transfers]
    roots = [s.root for s in segments]
    return SegmentProofBundle(
        segment_index=segment_file.segment_index,
        segment_root=segment_file.segment_root,
        transfer_proof=merkle_proof(leaves, position),
        head_hash_at_seal=segment_file.head_hash_at_seal,
        segments_siblings=merkle_proof(roots, segment_file.segment_index).siblings,
    )


def normalize_segments(meta: ArtifactMetadata) -> ArtifactMetadata:
    """Fill segmentation fields older artifacts omit. Returns a copy."""
    out = meta.copy()
    if out.segment_size is None:
        out.segment_size = SEGMENT_SIZE
    if out.cumulative_transfers is None:
        out.cumulative_transfers = out.segmented_count() + len(out.transfers)
    if out.segments and out.segments_merkle_root is None:
        out.segments_merkle_root = segments_root(out.segments)
    return out
