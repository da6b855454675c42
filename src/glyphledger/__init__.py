"""
GlyphLedger - Offline Verifiable Transfer Ledger

A glyph carries its whole custody history inside its own file. Every
transfer is stamped, signed and hash-chained, every window is Merkle
rooted, and any third party can verify the lineage from the file alone.
"""

__version__ = "1.0.0"

from glyphledger.core.receipt import canonicalize, emit_receipt, hash_any, sha256_hex, StopRule
from glyphledger.core.errors import LedgerError
from glyphledger.core.model import ArtifactMetadata
from glyphledger.ledger.controller import LedgerController, LedgerState

__all__ = [
    "canonicalize",
    "emit_receipt",
    "hash_any",
    "sha256_hex",
    "StopRule",
    "LedgerError",
    "ArtifactMetadata",
    "LedgerController",
    "LedgerState",
    "__version__",
]
