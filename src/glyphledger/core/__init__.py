"""Core subpackage for GlyphLedger primitives.

Exports hashing, receipts, errors, constants and the data model.
"""
from .receipt import canonicalize, emit_receipt, hash_any, sha256_hex, StopRule
from .errors import (
    ArtifactParseError,
    ChainConsistencyError,
    CryptographicError,
    KeyConsistencyError,
    LedgerError,
    PolicyError,
    StructuralError,
)
from .schemas import RECEIPT_SCHEMAS, REQUIRED_FIELDS, validate_receipt
from .constants import (
    SEGMENT_SIZE,
    SIGIL_CTX,
    SIGIL_TYPE,
    kai_pulse_now,
)
from .model import (
    ArtifactMetadata,
    HardenedTransfer,
    LedgerEntry,
    Payload,
    SegmentEntry,
    SegmentFile,
    Transfer,
    ZkArtifact,
    ZkBundle,
    ZkStamp,
)

__all__ = [
    # Hashing + receipts
    "canonicalize",
    "emit_receipt",
    "hash_any",
    "sha256_hex",
    "StopRule",
    # Errors
    "ArtifactParseError",
    "ChainConsistencyError",
    "CryptographicError",
    "KeyConsistencyError",
    "LedgerError",
    "PolicyError",
    "StructuralError",
    # Schemas
    "RECEIPT_SCHEMAS",
    "REQUIRED_FIELDS",
    "validate_receipt",
    # Constants
    "SEGMENT_SIZE",
    "SIGIL_CTX",
    "SIGIL_TYPE",
    "kai_pulse_now",
    # Model
    "ArtifactMetadata",
    "HardenedTransfer",
    "LedgerEntry",
    "Payload",
    "SegmentEntry",
    "SegmentFile",
    "Transfer",
    "ZkArtifact",
    "ZkBundle",
    "ZkStamp",
]
