"""Ledger controller: state derivation and gated mutations.

The controller is value-in/value-out. Every mutating operation takes the
current metadata, works on a deep copy, and returns an OperationResult with
either the new metadata or a typed error and the untouched input. Mutations
are serialized by a single-flight lock; status() is read-only.
"""
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..config.settings import LedgerConfig
from ..core.constants import SIGIL_CTX, SIGIL_TYPE, kai_pulse_now
from ..core.errors import (
    CHAIN_CONSISTENCY,
    ChainConsistencyError,
    CryptographicError,
    LedgerError,
    PolicyError,
    STRUCTURAL,
    StructuralError,
)
from ..core.model import ArtifactMetadata, Payload, SegmentFile
from ..core.receipt import emit_receipt
from ..identity.keys import KeyPair, KeyStore
from ..identity.sigma import canonical_hash, compute_content_signature, derive_phi_key
from ..zk.binding import ZkProofProvider, ZkReport, ZkVerifier, verify_zk_on_head
from .hardened import ChainReport, append_send, seal_receive, verify_chain
from .legacy import check_open_invariant, close_transfer, last_party, open_transfer
from .segments import normalize_segments, seal_window_into_segment, should_roll
from .window import HeadProof, refresh_head_window


class LedgerState(Enum):
    INVALID = "invalid"
    STRUCT_MISMATCH = "structMismatch"
    SIG_MISMATCH = "sigMismatch"
    NOT_OWNER = "notOwner"
    UNSIGNED = "unsigned"
    READY_SEND = "readySend"
    READY_RECEIVE = "readyReceive"
    COMPLETE = "complete"
    VERIFIED = "verified"


SEAL_STATES = frozenset({LedgerState.UNSIGNED})
SEND_STATES = frozenset({LedgerState.READY_SEND, LedgerState.COMPLETE, LedgerState.VERIFIED})
RECEIVE_STATES = frozenset({LedgerState.READY_RECEIVE})
SEGMENT_STATES = frozenset({LedgerState.COMPLETE, LedgerState.VERIFIED})


def markers_ok(meta: ArtifactMetadata) -> bool:
    """@context and type are either absent or the expected constants."""
    context_ok = meta.context is None or meta.context == SIGIL_CTX
    type_ok = meta.type is None or meta.type == SIGIL_TYPE
    return context_ok and type_ok


def content_signature_matches(meta: ArtifactMetadata) -> bool | None:
    """None when there is no stored Σ or it cannot be recomputed."""
    if not meta.content_signature:
        return None
    expected = compute_content_signature(meta)
    if expected is None:
        return None
    return expected == meta.content_signature


def is_owner(meta: ArtifactMetadata, live_signature: str | None) -> bool | None:
    party = last_party(meta)
    if not party or not live_signature:
        return None
    return party == live_signature


def derive_state(meta: ArtifactMetadata, live_signature: str | None = None) -> LedgerState:
    """Derive the ledger state; first matching rule wins.

    Never returns VERIFIED. Upgrading complete to verified needs the full
    verification pass in LedgerController.status().
    """
    if not markers_ok(meta):
        return LedgerState.INVALID
    if not meta.has_core:
        return LedgerState.STRUCT_MISMATCH
    if content_signature_matches(meta) is False:
        return LedgerState.SIG_MISMATCH
    if is_owner(meta, live_signature) is False:
        return LedgerState.NOT_OWNER
    if not meta.content_signature:
        return LedgerState.UNSIGNED
    last = meta.last_transfer
    if last is None:
        return LedgerState.READY_SEND
    if last.is_open:
        return LedgerState.READY_RECEIVE
    return LedgerState.COMPLETE


@dataclass
class LedgerStatus:
    """Full verification snapshot of one artifact."""
    state: LedgerState
    derived: LedgerState
    metadata: ArtifactMetadata
    head: HeadProof
    chain: ChainReport
    zk: ZkReport
    content_signature_ok: bool | None = None
    owner: bool | None = None

    @property
    def blocked(self) -> bool:
        return not self.chain.ok or not self.head.ok

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "derived": self.derived.value,
            "blocked": self.blocked,
            "contentSignatureOk": self.content_signature_ok,
            "owner": self.owner,
            "head": self.head.to_dict(),
            "chain": self.chain.to_dict(),
            "zk": self.zk.to_dict(),
        }


@dataclass
class OperationResult:
    """Outcome of a mutating operation.

    On failure ``metadata`` is the caller's input, unchanged.
    """
    ok: bool
    metadata: ArtifactMetadata
    state: LedgerState
    error: LedgerError | None = None
    segment: SegmentFile | None = None
    segment_blob: bytes | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "ok": self.ok,
            "state": self.state.value,
            "error": self.error.to_dict() if self.error else None,
            "segment": self.segment.segment_index if self.segment else None,
        }
        data.update(self.details)
        return data


class LedgerController:
    """Gates seal / send / receive / segment seal on the derived state.

    Args:
        keypair: Local signing key; loaded from key_store when omitted
        key_store: Persistent key store, also records lineage bindings
        config: Ledger configuration (segment size default)
        clock: Returns the current pulse
        verifier: Optional ZK verifier capability
        proof_provider: Optional ZK proof source for new entries
        global_vkey: Optional configured ZK verifying key
    """

    def __init__(
        self,
        keypair: KeyPair | None = None,
        key_store: KeyStore | None = None,
        config: LedgerConfig | None = None,
        clock: Callable[[], int] = kai_pulse_now,
        verifier: ZkVerifier | None = None,
        proof_provider: ZkProofProvider | None = None,
        global_vkey: Any = None,
    ):
        self.keypair = keypair
        self.key_store = key_store
        self.config = config or LedgerConfig()
        self.clock = clock
        self.verifier = verifier
        self.proof_provider = proof_provider
        self.global_vkey = global_vkey
        self._lock = threading.Lock()

    # --- helpers -------------------------------------------------------

    def _keys(self) -> KeyPair:
        if self.keypair is None:
            if self.key_store is None:
                raise StructuralError("no signing key configured")
            self.keypair = self.key_store.load_or_create()
        return self.keypair

    def _prepare(self, meta: ArtifactMetadata) -> ArtifactMetadata:
        working = meta.copy()
        if working.segment_size is None:
            working.segment_size = self.config.segment_size
        return normalize_segments(working)

    def _guard(self, operation: str, working: ArtifactMetadata, state: LedgerState, allowed: frozenset) -> None:
        if state not in allowed:
            raise PolicyError(f"{operation} not allowed in state {state.value}", state=state.value)

        check_open_invariant(working)

        report = verify_chain(working, self.verifier, self.global_vkey)
        hard = report.hard_issues()
        if hard:
            first = hard[0]
            message = f"hardened entry {first.index}: {first.kind}; ledger flagged inconsistent"
            if first.severity == CHAIN_CONSISTENCY:
                raise ChainConsistencyError(message)
            if first.severity == STRUCTURAL:
                raise StructuralError(message)
            raise CryptographicError(message)

    def _commit(self, working: ArtifactMetadata, auto_roll: bool = True):
        segment = blob = None
        if auto_roll and should_roll(working):
            working, segment, blob = seal_window_into_segment(working)
        working.cumulative_transfers = working.segmented_count() + len(working.transfers)

        working, head = refresh_head_window(working)
        if not head.ok:
            raise CryptographicError("head window proof failed to re-derive")

        if segment is not None:
            self._emit_segment(working, segment)
        return working, segment, blob

    def _emit_segment(self, meta: ArtifactMetadata, segment: SegmentFile) -> None:
        entry = meta.segments[-1]
        emit_receipt("segment", {
            "segment_index": entry.index,
            "segment_root": entry.root,
            "cid": entry.cid,
            "count": entry.count,
            "cumulative_transfers": meta.cumulative_transfers,
        }, self._artifact_id(meta))

    @staticmethod
    def _artifact_id(meta: ArtifactMetadata) -> str:
        return meta.canonical_hash or canonical_hash(meta) or "unbound"

    def _run(
        self,
        operation: str,
        meta: ArtifactMetadata,
        live_signature: str | None,
        mutate: Callable[[ArtifactMetadata, LedgerState], OperationResult],
    ) -> OperationResult:
        with self._lock:
            state = derive_state(meta, live_signature)
            try:
                return mutate(self._prepare(meta), state)
            except LedgerError as e:
                emit_receipt("anomaly", {
                    "operation": operation,
                    "category": e.category,
                    "message": str(e),
                    "error": type(e).__name__,
                    "state": state.value,
                }, self._artifact_id(meta))
                return OperationResult(ok=False, metadata=meta, state=state, error=e)

    # --- read ----------------------------------------------------------

    def status(self, meta: ArtifactMetadata, live_signature: str | None = None) -> LedgerStatus:
        """Run full verification and report the (possibly upgraded) state.

        Args:
            meta: Artifact metadata (not modified)
            live_signature: Caller's live identity proof, if any

        Returns:
            LedgerStatus with head proof, chain report and ZK report
        """
        working = self._prepare(meta)
        derived = derive_state(working, live_signature)

        refreshed, head = refresh_head_window(working)
        checked, zk = verify_zk_on_head(refreshed, self.verifier, self.global_vkey)
        chain = verify_chain(checked, self.verifier, self.global_vkey)

        sig_ok = content_signature_matches(working)
        owner = is_owner(working, live_signature)

        state = derived
        if derived is LedgerState.COMPLETE and sig_ok and owner is not False and head.ok and chain.ok:
            state = LedgerState.VERIFIED

        emit_receipt("verify", {
            "state": state.value,
            "chain_ok": chain.ok,
            "head_proof_ok": head.proof_ok,
            "zk_verified": zk.verified,
            "zk_failed": zk.failed,
            "zk_unknown": zk.unknown,
        }, self._artifact_id(working))

        return LedgerStatus(
            state=state,
            derived=derived,
            metadata=checked,
            head=head,
            chain=chain,
            zk=zk,
            content_signature_ok=sig_ok,
            owner=owner,
        )

    # --- mutations -----------------------------------------------------

    def seal(self, meta: ArtifactMetadata) -> OperationResult:
        """Compute Σ and Φ for an unsigned artifact and anchor the creator key."""

        def mutate(working: ArtifactMetadata, state: LedgerState) -> OperationResult:
            self._guard("seal", working, state, SEAL_STATES)

            sigma = compute_content_signature(working)
            working.content_signature = sigma
            if working.owner_key is None:
                working.owner_key = derive_phi_key(sigma)
            if working.creator_public_key is None and (self.keypair or self.key_store):
                working.creator_public_key = self._keys().public_key
            working.canonical_hash = canonical_hash(working)

            working, _, _ = self._commit(working, auto_roll=False)
            emit_receipt("seal", {
                "content_signature": working.content_signature,
                "owner_key": working.owner_key,
                "creator_public_key": working.creator_public_key,
            }, self._artifact_id(working))
            return OperationResult(ok=True, metadata=working, state=derive_state(working))

        return self._run("seal", meta, None, mutate)

    def send(
        self,
        meta: ArtifactMetadata,
        live_signature: str,
        payload: Payload | None = None,
    ) -> OperationResult:
        """Open a legacy transfer and append its signed hardened entry."""

        def mutate(working: ArtifactMetadata, state: LedgerState) -> OperationResult:
            self._guard("send", working, state, SEND_STATES)
            keypair = self._keys()

            now = self.clock()
            transfer = open_transfer(working, live_signature, now, payload)
            if working.creator_public_key is None:
                working.creator_public_key = keypair.public_key
            entry = append_send(
                working, keypair, transfer,
                self.proof_provider, self.verifier, self.global_vkey,
            )
            working.transfer_nonce = entry.nonce
            transfer_index = working.segmented_count() + len(working.transfers) - 1
            window_size = len(working.transfers)

            working, segment, blob = self._commit(working)
            artifact_id = self._artifact_id(working)
            if self.key_store is not None:
                self.key_store.record_binding(keypair, artifact_id, "send")

            emit_receipt("send", {
                "transfer_index": transfer_index,
                "sender_kai_pulse": now,
                "previous_head_root": entry.previous_head_root,
                "window_size": window_size,
            }, artifact_id)
            return OperationResult(
                ok=True,
                metadata=working,
                state=derive_state(working, live_signature),
                segment=segment,
                segment_blob=blob,
                details={"transferIndex": transfer_index, "nonce": entry.nonce},
            )

        return self._run("send", meta, live_signature, mutate)

    def receive(self, meta: ArtifactMetadata, live_signature: str) -> OperationResult:
        """Close the open transfer and seal the receiver half of its hardened entry."""

        def mutate(working: ArtifactMetadata, state: LedgerState) -> OperationResult:
            self._guard("receive", working, state, RECEIVE_STATES)
            keypair = self._keys()

            now = self.clock()
            transfer = close_transfer(working, live_signature, now)
            entry = seal_receive(
                working, keypair, transfer,
                self.proof_provider, self.verifier, self.global_vkey,
            )
            transfer_index = working.segmented_count() + len(working.transfers) - 1

            working, segment, blob = self._commit(working)
            artifact_id = self._artifact_id(working)
            if self.key_store is not None and entry is not None:
                self.key_store.record_binding(keypair, artifact_id, "receive")

            emit_receipt("receive", {
                "transfer_index": transfer_index,
                "receiver_kai_pulse": now,
                "transfer_leaf_hash_receive": entry.transfer_leaf_hash_receive if entry else None,
            }, artifact_id)
            return OperationResult(
                ok=True,
                metadata=working,
                state=derive_state(working, live_signature),
                segment=segment,
                segment_blob=blob,
                details={"transferIndex": transfer_index, "payload": transfer.payload is not None},
            )

        return self._run("receive", meta, live_signature, mutate)

    def seal_segment(self, meta: ArtifactMetadata) -> OperationResult:
        """Roll the live window into a segment before it reaches the cap."""

        def mutate(working: ArtifactMetadata, state: LedgerState) -> OperationResult:
            self._guard("segment", working, state, SEGMENT_STATES)

            working, segment, blob = seal_window_into_segment(working)
            working, _, _ = self._commit(working, auto_roll=False)
            self._emit_segment(working, segment)
            return OperationResult(
                ok=True,
                metadata=working,
                state=derive_state(working),
                segment=segment,
                segment_blob=blob,
            )

        return self._run("segment", meta, None, mutate)
