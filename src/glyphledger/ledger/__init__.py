"""Ledger subpackage: transfer tracks, segmentation and the state machine."""
from .leaves import (
    expected_prev_head_root,
    hardened_leaf_hash,
    hash_transfer,
    hash_transfer_sender_side,
    head_canonical_hash,
    head_links,
)
from .legacy import close_transfer, decode_payload, make_payload, open_transfer
from .hardened import (
    ChainIssue,
    ChainReport,
    append_send,
    build_receive_message,
    build_send_message,
    seal_receive,
    verify_chain,
)
from .segments import (
    build_segment_proof,
    normalize_segments,
    seal_window_into_segment,
    segment_filename,
    verify_segment_file,
)
from .window import HeadProof, refresh_head_window, verify_historical
from .history import decode_history, encode_history
from .controller import LedgerController, LedgerState, LedgerStatus, OperationResult, derive_state

__all__ = [
    "expected_prev_head_root",
    "hardened_leaf_hash",
    "hash_transfer",
    "hash_transfer_sender_side",
    "head_canonical_hash",
    "head_links",
    "close_transfer",
    "decode_payload",
    "make_payload",
    "open_transfer",
    "ChainIssue",
    "ChainReport",
    "append_send",
    "build_receive_message",
    "build_send_message",
    "seal_receive",
    "verify_chain",
    "build_segment_proof",
    "normalize_segments",
    "seal_window_into_segment",
    "segment_filename",
    "verify_segment_file",
    "HeadProof",
    "refresh_head_window",
    "verify_historical",
    "decode_history",
    "encode_history",
    "LedgerController",
    "LedgerState",
    "LedgerStatus",
    "OperationResult",
    "derive_state",
]
