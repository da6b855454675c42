"""Typed ledger failures.

Every failure carries a category from the ledger error taxonomy:
structural, cryptographic, chain-consistency and policy. Availability
problems (no ZK verifier, no verifying key) are never raised; they surface
as a None verdict instead.
"""
from .receipt import StopRule

STRUCTURAL = "structural"
CRYPTOGRAPHIC = "cryptographic"
CHAIN_CONSISTENCY = "chain-consistency"
AVAILABILITY = "availability"
POLICY = "policy"


class LedgerError(StopRule):
    """Base class for failures reported by ledger operations."""
    category = STRUCTURAL

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "category": self.category,
            "message": str(self),
        }


class StructuralError(LedgerError):
    """Missing or malformed fields. Recoverable only with a valid artifact."""
    category = STRUCTURAL


class ArtifactParseError(StructuralError):
    """Metadata container missing, duplicated or not valid JSON."""


class CryptographicError(LedgerError):
    """Signature or hash mismatch. Never silently accepted."""
    category = CRYPTOGRAPHIC


class ChainConsistencyError(LedgerError):
    """Hash-chain link mismatch or a duplicate receive on a closed transfer."""
    category = CHAIN_CONSISTENCY


class KeyConsistencyError(ChainConsistencyError):
    """Persisted keypair is partial, mismatched, or already bound to lineage."""


class PolicyError(LedgerError):
    """Operation attempted outside its legal state."""
    category = POLICY

    def __init__(self, message: str, state: str | None = None):
        super().__init__(message)
        self.state = state

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["state"] = self.state
        return data
