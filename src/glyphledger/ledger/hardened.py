"""Hardened transfer track: signed, hash-chained lineage entries.

Every legacy send appends a hardened entry signed by the sender's key and
chained to the previous head. The matching receive fills the entry's
receiver half exactly once, signed by the receiver's key. verify_chain
re-derives every link, leaf and signature offline and reports failures
per entry, so a corrupted entry does not hide the entries before it.
"""
import secrets
from dataclasses import dataclass, field
from typing import Any

from ..core.constants import HARDENED_MESSAGE_VERSION, NONCE_BYTES
from ..core.errors import (
    AVAILABILITY,
    CHAIN_CONSISTENCY,
    CRYPTOGRAPHIC,
    STRUCTURAL,
    ChainConsistencyError,
)
from ..core.model import ArtifactMetadata, HardenedTransfer, Transfer, ZkBundle, ZkStamp
from ..core.receipt import canonicalize
from ..identity.keys import KeyPair, verify as verify_signature
from ..zk.binding import (
    ZkProofProvider,
    ZkVerifier,
    bundle_from_provided,
    make_stamp,
    resolve_vkey,
    stamp_matches_bundle,
    try_verify,
)
from .leaves import expected_prev_head_root, hash_transfer, hash_transfer_sender_side, head_links

ISSUE_SEVERITY = {
    "prevHeadMismatch": CHAIN_CONSISTENCY,
    "missingReceive": STRUCTURAL,
    "sendLeafMismatch": CRYPTOGRAPHIC,
    "receiveLeafMismatch": CRYPTOGRAPHIC,
    "sendSigInvalid": CRYPTOGRAPHIC,
    "receiveSigInvalid": CRYPTOGRAPHIC,
    "zkSendStampHashMismatch": CRYPTOGRAPHIC,
    "zkReceiveStampHashMismatch": CRYPTOGRAPHIC,
    "zkSendFailed": CRYPTOGRAPHIC,
    "zkReceiveFailed": CRYPTOGRAPHIC,
    "zkUnavailable": AVAILABILITY,
}


def new_nonce() -> str:
    return secrets.token_hex(NONCE_BYTES)


def sigil_summary(meta: ArtifactMetadata) -> dict:
    return {
        "pulse": meta.pulse,
        "beat": meta.beat,
        "stepIndex": meta.step_index,
        "chakraDay": meta.chakra_day,
        "contentSignature": meta.content_signature,
    }


def build_send_message(
    meta: ArtifactMetadata,
    previous_head_root: str,
    sender_pub_key: str,
    sender_kai_pulse: int,
    nonce: str,
    transfer_leaf_hash_send: str,
) -> bytes:
    return canonicalize({
        "v": HARDENED_MESSAGE_VERSION,
        "type": "send",
        "sigil": sigil_summary(meta),
        "previousHeadRoot": previous_head_root,
        "senderPubKey": sender_pub_key,
        "senderKaiPulse": sender_kai_pulse,
        "nonce": nonce,
        "transferLeafHashSend": transfer_leaf_hash_send,
    })


def build_receive_message(
    previous_head_root: str,
    sender_sig: str,
    receiver_kai_pulse: int,
    receiver_pub_key: str,
    transfer_leaf_hash_receive: str,
) -> bytes:
    return canonicalize({
        "v": HARDENED_MESSAGE_VERSION,
        "type": "receive",
        "link": sender_sig,
        "previousHeadRoot": previous_head_root,
        "receiverKaiPulse": receiver_kai_pulse,
        "receiverPubKey": receiver_pub_key,
        "transferLeafHashReceive": transfer_leaf_hash_receive,
    })


def _attach_proof(
    provided: dict | None,
    meta: ArtifactMetadata,
    verifier: ZkVerifier | None,
    global_vkey: Any,
) -> tuple[ZkStamp | None, ZkBundle | None]:
    if not provided:
        return None, None
    bundle = bundle_from_provided(provided)
    vkey = resolve_vkey(bundle, meta, global_vkey)
    stamp = make_stamp(bundle, vkey)
    stamp.verified = try_verify(verifier, bundle, vkey)
    return stamp, bundle


def append_send(
    meta: ArtifactMetadata,
    keypair: KeyPair,
    transfer: Transfer,
    proof_provider: ZkProofProvider | None = None,
    verifier: ZkVerifier | None = None,
    global_vkey: Any = None,
) -> HardenedTransfer:
    """Append a signed hardened entry for a just-opened legacy transfer.

    Args:
        meta: Working copy of the metadata (mutated in place)
        keypair: Sender's local keypair
        transfer: The open legacy transfer this entry binds
        proof_provider: Optional ZK proof source
        verifier: Optional ZK verifier
        global_vkey: Optional configured verifying key

    Returns:
        The appended HardenedTransfer

    Raises:
        ChainConsistencyError: If the previous hardened entry is still open
    """
    entries = meta.hardened_transfers
    if entries and entries[-1].is_open:
        raise ChainConsistencyError("previous hardened entry has no receive yet")

    previous_head_root = expected_prev_head_root(meta)
    nonce = new_nonce()
    leaf_send = hash_transfer_sender_side(transfer)

    message = build_send_message(
        meta,
        previous_head_root,
        keypair.public_key,
        transfer.sender_kai_pulse,
        nonce,
        leaf_send,
    )
    entry = HardenedTransfer(
        previous_head_root=previous_head_root,
        sender_pub_key=keypair.public_key,
        sender_sig=keypair.sign(message),
        sender_kai_pulse=transfer.sender_kai_pulse,
        nonce=nonce,
        transfer_leaf_hash_send=leaf_send,
    )

    if proof_provider is not None:
        provided = proof_provider.provide_send_proof({
            "previousHeadRoot": previous_head_root,
            "senderPubKey": keypair.public_key,
            "senderKaiPulse": transfer.sender_kai_pulse,
            "nonce": nonce,
            "transferLeafHashSend": leaf_send,
        })
        entry.zk_send, entry.zk_send_bundle = _attach_proof(provided, meta, verifier, global_vkey)

    entries.append(entry)
    return entry


def seal_receive(
    meta: ArtifactMetadata,
    keypair: KeyPair,
    transfer: Transfer,
    proof_provider: ZkProofProvider | None = None,
    verifier: ZkVerifier | None = None,
    global_vkey: Any = None,
) -> HardenedTransfer | None:
    """Fill the receiver half of the open hardened entry bound to ``transfer``.

    Returns:
        The sealed entry, or None when the legacy transfer predates the
        hardened track (no open entry to seal)

    Raises:
        ChainConsistencyError: If the open entry is bound to a different transfer
    """
    entries = meta.hardened_transfers
    if not entries or not entries[-1].is_open:
        return None

    entry = entries[-1]
    if entry.transfer_leaf_hash_send != hash_transfer_sender_side(transfer):
        raise ChainConsistencyError("open hardened entry is not bound to the transfer being received")

    leaf_receive = hash_transfer(transfer)
    message = build_receive_message(
        entry.previous_head_root,
        entry.sender_sig,
        transfer.receiver_kai_pulse,
        keypair.public_key,
        leaf_receive,
    )

    entry.receiver_pub_key = keypair.public_key
    entry.receiver_sig = keypair.sign(message)
    entry.receiver_kai_pulse = transfer.receiver_kai_pulse
    entry.transfer_leaf_hash_receive = leaf_receive

    if proof_provider is not None:
        provided = proof_provider.provide_receive_proof({
            "previousHeadRoot": entry.previous_head_root,
            "senderSig": entry.sender_sig,
            "receiverPubKey": keypair.public_key,
            "receiverKaiPulse": transfer.receiver_kai_pulse,
            "transferLeafHashReceive": leaf_receive,
        })
        entry.zk_receive, entry.zk_receive_bundle = _attach_proof(provided, meta, verifier, global_vkey)

    return entry


@dataclass
class ChainIssue:
    index: int
    kind: str
    message: str

    @property
    def severity(self) -> str:
        return ISSUE_SEVERITY[self.kind]

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message,
        }


@dataclass
class ChainReport:
    """Offline verification result for the hardened track.

    Availability issues (ZK unknown) are reported but never make the
    chain fail.
    """
    entries: int
    issues: list[ChainIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.hard_issues()

    def hard_issues(self) -> list[ChainIssue]:
        return [i for i in self.issues if i.severity != AVAILABILITY]

    def entry_ok(self, index: int) -> bool:
        return not any(i.index == index and i.severity != AVAILABILITY for i in self.issues)

    def verdicts(self) -> list[bool]:
        return [self.entry_ok(i) for i in range(self.entries)]

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "entries": self.entries,
            "verdicts": self.verdicts(),
            "issues": [i.to_dict() for i in self.issues],
        }


def _check_zk(
    report: ChainReport,
    index: int,
    side: str,
    stamp: ZkStamp | None,
    bundle: ZkBundle | None,
    meta: ArtifactMetadata,
    verifier: ZkVerifier | None,
    global_vkey: Any,
) -> None:
    if stamp is None:
        return
    label = "Send" if side == "send" else "Receive"
    if bundle is None:
        if stamp.verified is False:
            report.issues.append(ChainIssue(index, f"zk{label}Failed", f"{side} proof cached as failed"))
        elif stamp.verified is None:
            report.issues.append(ChainIssue(index, "zkUnavailable", f"{side} proof bundle not embedded"))
        return
    if not stamp_matches_bundle(stamp, bundle):
        report.issues.append(ChainIssue(
            index, f"zk{label}StampHashMismatch", f"{side} stamp hashes do not match its bundle"
        ))
        return
    verdict = try_verify(verifier, bundle, resolve_vkey(bundle, meta, global_vkey))
    if verdict is None:
        report.issues.append(ChainIssue(index, "zkUnavailable", f"no verifier or verifying key for {side} proof"))
    elif not verdict:
        report.issues.append(ChainIssue(index, f"zk{label}Failed", f"{side} proof rejected by verifier"))


def verify_chain(
    meta: ArtifactMetadata,
    verifier: ZkVerifier | None = None,
    global_vkey: Any = None,
) -> ChainReport:
    """Re-derive every link, leaf binding and signature of the hardened track.

    Args:
        meta: Artifact metadata (not modified)
        verifier: Optional ZK verifier
        global_vkey: Optional configured verifying key

    Returns:
        ChainReport with per-entry issues
    """
    entries = meta.hardened_transfers
    report = ChainReport(entries=len(entries))
    links = head_links(meta)

    segmented = meta.segmented_count()
    total_legacy = segmented + len(meta.transfers)
    offset = total_legacy - len(entries)

    for i, entry in enumerate(entries):
        if entry.previous_head_root != links[i]:
            report.issues.append(ChainIssue(i, "prevHeadMismatch", "previousHeadRoot does not match recomputed head"))

        send_message = build_send_message(
            meta,
            entry.previous_head_root,
            entry.sender_pub_key,
            entry.sender_kai_pulse,
            entry.nonce,
            entry.transfer_leaf_hash_send,
        )
        if not verify_signature(entry.sender_pub_key, send_message, entry.sender_sig):
            report.issues.append(ChainIssue(i, "sendSigInvalid", "sender signature does not verify"))

        if entry.is_open:
            if i < len(entries) - 1:
                report.issues.append(ChainIssue(i, "missingReceive", "non-last entry has no receive"))
        else:
            receive_fields = (entry.receiver_pub_key, entry.receiver_kai_pulse, entry.transfer_leaf_hash_receive)
            if any(v is None for v in receive_fields):
                report.issues.append(ChainIssue(i, "receiveSigInvalid", "receive half is incomplete"))
            else:
                receive_message = build_receive_message(
                    entry.previous_head_root,
                    entry.sender_sig,
                    entry.receiver_kai_pulse,
                    entry.receiver_pub_key,
                    entry.transfer_leaf_hash_receive,
                )
                if not verify_signature(entry.receiver_pub_key, receive_message, entry.receiver_sig):
                    report.issues.append(ChainIssue(i, "receiveSigInvalid", "receiver signature does not verify"))

        # leaf bindings are only checkable while the legacy transfer is live
        global_index = offset + i
        if global_index < 0:
            report.issues.append(ChainIssue(i, "sendLeafMismatch", "no legacy transfer for this entry"))
        elif global_index >= segmented:
            transfer = meta.transfers[global_index - segmented]
            if entry.transfer_leaf_hash_send != hash_transfer_sender_side(transfer):
                report.issues.append(ChainIssue(i, "sendLeafMismatch", "sender leaf does not match legacy transfer"))
            if entry.is_open:
                if not transfer.is_open:
                    report.issues.append(ChainIssue(
                        i, "receiveLeafMismatch", "legacy transfer closed without a hardened receive"
                    ))
            elif transfer.is_open or entry.transfer_leaf_hash_receive != hash_transfer(transfer):
                report.issues.append(ChainIssue(i, "receiveLeafMismatch", "receive leaf does not match legacy transfer"))

        _check_zk(report, i, "send", entry.zk_send, entry.zk_send_bundle, meta, verifier, global_vkey)
        _check_zk(report, i, "receive", entry.zk_receive, entry.zk_receive_bundle, meta, verifier, global_vkey)

    return report
