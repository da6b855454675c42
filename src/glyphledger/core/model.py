"""Ledger data model.

Closed tagged unions over the shapes that live inside artifact metadata:

    LedgerEntry = Transfer | HardenedTransfer
    ZkArtifact = ZkStamp | ZkBundle

Each variant carries a ``kind`` tag. Wire dicts use the camelCase keys of the
embedded JSON; the Python side uses snake_case attributes. Unknown top-level
metadata keys are preserved in ``ArtifactMetadata.extra``.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from .errors import StructuralError


def _is(value: Any, kind: type) -> bool:
    # bool is an int subclass; never accept it where an int is expected
    if kind is int and isinstance(value, bool):
        return False
    return isinstance(value, kind)


def _require(data: dict, key: str, kind: type, where: str):
    value = data.get(key)
    if not _is(value, kind):
        raise StructuralError(f"{where}: field '{key}' missing or wrong type")
    return value


def _optional(data: dict, key: str, kind: type, where: str):
    value = data.get(key)
    if value is None:
        return None
    if not _is(value, kind):
        raise StructuralError(f"{where}: field '{key}' has wrong type")
    return value


def _as_dict(value: Any, where: str) -> dict:
    if not isinstance(value, dict):
        raise StructuralError(f"{where}: expected an object")
    return value


def _prune(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class Payload:
    """File attached to a legacy send (bytes kept base64 in ``encoded``)."""
    name: str
    mime: str
    size: int
    encoded: str

    def summary(self) -> dict:
        """Name/mime/size only; this is what leaf hashes bind."""
        return {"name": self.name, "mime": self.mime, "size": self.size}

    def to_dict(self) -> dict:
        return {**self.summary(), "encoded": self.encoded}

    @classmethod
    def from_dict(cls, data: Any) -> "Payload":
        data = _as_dict(data, "payload")
        return cls(
            name=_require(data, "name", str, "payload"),
            mime=_require(data, "mime", str, "payload"),
            size=_require(data, "size", int, "payload"),
            encoded=_require(data, "encoded", str, "payload"),
        )


@dataclass
class Transfer:
    """Legacy stamp-and-signature transfer. Open until receiver fields are set."""
    kind: ClassVar[str] = "legacy"

    sender_signature: str
    sender_stamp: str
    sender_kai_pulse: int
    payload: Payload | None = None
    receiver_signature: str | None = None
    receiver_stamp: str | None = None
    receiver_kai_pulse: int | None = None

    @property
    def is_open(self) -> bool:
        return not self.receiver_signature

    def to_dict(self) -> dict:
        return _prune({
            "senderSignature": self.sender_signature,
            "senderStamp": self.sender_stamp,
            "senderKaiPulse": self.sender_kai_pulse,
            "payload": self.payload.to_dict() if self.payload else None,
            "receiverSignature": self.receiver_signature,
            "receiverStamp": self.receiver_stamp,
            "receiverKaiPulse": self.receiver_kai_pulse,
        })

    @classmethod
    def from_dict(cls, data: Any) -> "Transfer":
        where = "transfer"
        data = _as_dict(data, where)
        payload = data.get("payload")
        return cls(
            sender_signature=_require(data, "senderSignature", str, where),
            sender_stamp=_require(data, "senderStamp", str, where),
            sender_kai_pulse=_require(data, "senderKaiPulse", int, where),
            payload=Payload.from_dict(payload) if payload is not None else None,
            receiver_signature=_optional(data, "receiverSignature", str, where),
            receiver_stamp=_optional(data, "receiverStamp", str, where),
            receiver_kai_pulse=_optional(data, "receiverKaiPulse", int, where),
        )


@dataclass
class ZkStamp:
    """Hashes binding a ZK proof to a lineage leaf. ``verified`` is a cache."""
    kind: ClassVar[str] = "stamp"

    scheme: str
    public_hash: str
    proof_hash: str
    curve: str | None = None
    vkey_hash: str | None = None
    verified: bool | None = None

    def binding_dict(self) -> dict:
        """Wire form without the ``verified`` cache."""
        return _prune({
            "scheme": self.scheme,
            "curve": self.curve,
            "publicHash": self.public_hash,
            "proofHash": self.proof_hash,
            "vkeyHash": self.vkey_hash,
        })

    def to_dict(self) -> dict:
        data = self.binding_dict()
        if self.verified is not None:
            data["verified"] = self.verified
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ZkStamp":
        where = "zk stamp"
        data = _as_dict(data, where)
        verified = data.get("verified")
        return cls(
            scheme=_require(data, "scheme", str, where),
            public_hash=_require(data, "publicHash", str, where),
            proof_hash=_require(data, "proofHash", str, where),
            curve=_optional(data, "curve", str, where),
            vkey_hash=_optional(data, "vkeyHash", str, where),
            verified=verified if isinstance(verified, bool) else None,
        )


@dataclass
class ZkBundle:
    """Full proof objects kept for offline re-verification."""
    kind: ClassVar[str] = "bundle"

    scheme: str
    proof: Any
    public_signals: Any
    curve: str | None = None
    vkey: Any = None

    def to_dict(self) -> dict:
        return _prune({
            "scheme": self.scheme,
            "curve": self.curve,
            "proof": self.proof,
            "publicSignals": self.public_signals,
            "vkey": self.vkey,
        })

    @classmethod
    def from_dict(cls, data: Any) -> "ZkBundle":
        where = "zk bundle"
        data = _as_dict(data, where)
        if "proof" not in data or "publicSignals" not in data:
            raise StructuralError(f"{where}: proof and publicSignals are required")
        return cls(
            scheme=_require(data, "scheme", str, where),
            proof=data["proof"],
            public_signals=data["publicSignals"],
            curve=_optional(data, "curve", str, where),
            vkey=data.get("vkey"),
        )


ZkArtifact = Union[ZkStamp, ZkBundle]


@dataclass
class HardenedTransfer:
    """Signed, hash-chained transfer record kept parallel to the legacy track."""
    kind: ClassVar[str] = "hardened"

    previous_head_root: str
    sender_pub_key: str
    sender_sig: str
    sender_kai_pulse: int
    nonce: str
    transfer_leaf_hash_send: str
    zk_send: ZkStamp | None = None
    zk_send_bundle: ZkBundle | None = None
    receiver_pub_key: str | None = None
    receiver_sig: str | None = None
    receiver_kai_pulse: int | None = None
    transfer_leaf_hash_receive: str | None = None
    zk_receive: ZkStamp | None = None
    zk_receive_bundle: ZkBundle | None = None

    @property
    def is_open(self) -> bool:
        return not self.receiver_sig

    def to_dict(self) -> dict:
        return _prune({
            "previousHeadRoot": self.previous_head_root,
            "senderPubKey": self.sender_pub_key,
            "senderSig": self.sender_sig,
            "senderKaiPulse": self.sender_kai_pulse,
            "nonce": self.nonce,
            "transferLeafHashSend": self.transfer_leaf_hash_send,
            "zkSend": self.zk_send.to_dict() if self.zk_send else None,
            "zkSendBundle": self.zk_send_bundle.to_dict() if self.zk_send_bundle else None,
            "receiverPubKey": self.receiver_pub_key,
            "receiverSig": self.receiver_sig,
            "receiverKaiPulse": self.receiver_kai_pulse,
            "transferLeafHashReceive": self.transfer_leaf_hash_receive,
            "zkReceive": self.zk_receive.to_dict() if self.zk_receive else None,
            "zkReceiveBundle": self.zk_receive_bundle.to_dict() if self.zk_receive_bundle else None,
        })

    @classmethod
    def from_dict(cls, data: Any) -> "HardenedTransfer":
        where = "hardened transfer"
        data = _as_dict(data, where)

        def stamp(key):
            return ZkStamp.from_dict(data[key]) if data.get(key) is not None else None

        def bundle(key):
            return ZkBundle.from_dict(data[key]) if data.get(key) is not None else None

        return cls(
            previous_head_root=_require(data, "previousHeadRoot", str, where),
            sender_pub_key=_require(data, "senderPubKey", str, where),
            sender_sig=_require(data, "senderSig", str, where),
            sender_kai_pulse=_require(data, "senderKaiPulse", int, where),
            nonce=_require(data, "nonce", str, where),
            transfer_leaf_hash_send=_require(data, "transferLeafHashSend", str, where),
            zk_send=stamp("zkSend"),
            zk_send_bundle=bundle("zkSendBundle"),
            receiver_pub_key=_optional(data, "receiverPubKey", str, where),
            receiver_sig=_optional(data, "receiverSig", str, where),
            receiver_kai_pulse=_optional(data, "receiverKaiPulse", int, where),
            transfer_leaf_hash_receive=_optional(data, "transferLeafHashReceive", str, where),
            zk_receive=stamp("zkReceive"),
            zk_receive_bundle=bundle("zkReceiveBundle"),
        )


LedgerEntry = Union[Transfer, HardenedTransfer]


@dataclass(frozen=True)
class SegmentEntry:
    """Head-side record of an archived segment. Never mutated."""
    index: int
    root: str
    cid: str
    count: int

    def to_dict(self) -> dict:
        return {"index": self.index, "root": self.root, "cid": self.cid, "count": self.count}

    @classmethod
    def from_dict(cls, data: Any) -> "SegmentEntry":
        where = "segment"
        data = _as_dict(data, where)
        return cls(
            index=_require(data, "index", int, where),
            root=_require(data, "root", str, where),
            cid=_require(data, "cid", str, where),
            count=_require(data, "count", int, where),
        )


@dataclass
class SegmentFile:
    """Exported archive of one rolled window."""
    segment_index: int
    segment_range: tuple[int, int]
    segment_root: str
    head_hash_at_seal: str
    transfers: list[Transfer]
    version: int = 1
    leaf_hash: str = "sha256"

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "segmentIndex": self.segment_index,
            "segmentRange": [self.segment_range[0], self.segment_range[1]],
            "segmentRoot": self.segment_root,
            "headHashAtSeal": self.head_hash_at_seal,
            "leafHash": self.leaf_hash,
            "transfers": [t.to_dict() for t in self.transfers],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SegmentFile":
        where = "segment file"
        data = _as_dict(data, where)
        seg_range = data.get("segmentRange")
        if not (isinstance(seg_range, list) and len(seg_range) == 2
                and all(isinstance(v, int) for v in seg_range)):
            raise StructuralError(f"{where}: segmentRange must be [start, end]")
        transfers = data.get("transfers")
        if not isinstance(transfers, list):
            raise StructuralError(f"{where}: transfers must be a list")
        return cls(
            version=_require(data, "version", int, where),
            segment_index=_require(data, "segmentIndex", int, where),
            segment_range=(seg_range[0], seg_range[1]),
            segment_root=_require(data, "segmentRoot", str, where),
            head_hash_at_seal=_require(data, "headHashAtSeal", str, where),
            leaf_hash=_require(data, "leafHash", str, where),
            transfers=[Transfer.from_dict(t) for t in transfers],
        )


# attribute -> wire key for scalar metadata fields
_SCALAR_KEYS = {
    "context": "@context",
    "type": "type",
    "pulse": "pulse",
    "beat": "beat",
    "step_index": "stepIndex",
    "chakra_day": "chakraDay",
    "content_signature": "contentSignature",
    "owner_key": "ownerKey",
    "creator_public_key": "creatorPublicKey",
    "kai_pulse": "kaiPulse",
    "intention_sigil": "intentionSigil",
    "segment_size": "segmentSize",
    "segments_merkle_root": "segmentsMerkleRoot",
    "transfers_window_root": "transfersWindowRoot",
    "transfers_window_root_v14": "transfersWindowRootV14",
    "cumulative_transfers": "cumulativeTransfers",
    "head_hash_at_seal": "headHashAtSeal",
    "transfer_nonce": "transferNonce",
    "canonical_hash": "canonicalHash",
    "zk_verifying_key": "zkVerifyingKey",
}

# older glyph files name the signature and owner key differently
LEGACY_ALIASES = {
    "kaiSignature": "contentSignature",
    "userPhiKey": "ownerKey",
}


@dataclass
class ArtifactMetadata:
    """The single record embedded in a glyph file.

    Identity fields are kept exactly as read (possibly wrong-typed) so that
    status derivation can report a structural mismatch instead of failing
    the parse.
    """
    context: str | None = None
    type: str | None = None
    pulse: Any = None
    beat: Any = None
    step_index: Any = None
    chakra_day: Any = None
    content_signature: str | None = None
    owner_key: str | None = None
    creator_public_key: str | None = None
    kai_pulse: int | None = None
    intention_sigil: str | None = None
    transfers: list[Transfer] = field(default_factory=list)
    hardened_transfers: list[HardenedTransfer] = field(default_factory=list)
    segments: list[SegmentEntry] = field(default_factory=list)
    segment_size: int | None = None
    segments_merkle_root: str | None = None
    transfers_window_root: str | None = None
    transfers_window_root_v14: str | None = None
    cumulative_transfers: int | None = None
    head_hash_at_seal: str | None = None
    transfer_nonce: str | None = None
    canonical_hash: str | None = None
    zk_verifying_key: Any = None
    extra: dict = field(default_factory=dict)

    @property
    def has_core(self) -> bool:
        """Identity coordinates present with the right types."""
        return (
            _is(self.pulse, int)
            and _is(self.beat, int)
            and _is(self.step_index, int)
            and isinstance(self.chakra_day, str)
        )

    @property
    def last_transfer(self) -> Transfer | None:
        return self.transfers[-1] if self.transfers else None

    def segmented_count(self) -> int:
        return sum(s.count for s in self.segments)

    def copy(self) -> "ArtifactMetadata":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        for attr, key in _SCALAR_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        if self.transfers:
            data["transfers"] = [t.to_dict() for t in self.transfers]
        if self.hardened_transfers:
            data["hardenedTransfers"] = [h.to_dict() for h in self.hardened_transfers]
        if self.segments:
            data["segments"] = [s.to_dict() for s in self.segments]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ArtifactMetadata":
        """Build metadata from embedded JSON, tolerating unknown fields.

        Raises:
            StructuralError: If a transfer/segment list is malformed
        """
        data = dict(_as_dict(data, "metadata"))
        for legacy_key, key in LEGACY_ALIASES.items():
            if legacy_key in data:
                value = data.pop(legacy_key)
                data.setdefault(key, value)

        kwargs: dict[str, Any] = {}
        for attr, key in _SCALAR_KEYS.items():
            if key in data:
                kwargs[attr] = data.pop(key)

        def entries(key, builder):
            raw = data.pop(key, None)
            if raw is None:
                return []
            if not isinstance(raw, list):
                raise StructuralError(f"metadata: '{key}' must be a list")
            return [builder(item) for item in raw]

        kwargs["transfers"] = entries("transfers", Transfer.from_dict)
        kwargs["hardened_transfers"] = entries("hardenedTransfers", HardenedTransfer.from_dict)
        kwargs["segments"] = entries("segments", SegmentEntry.from_dict)

        for attr in ("segment_size", "cumulative_transfers"):
            value = kwargs.get(attr)
            if value is not None and not _is(value, int):
                raise StructuralError(f"metadata: '{_SCALAR_KEYS[attr]}' must be an integer")
        if kwargs.get("segment_size") is not None and kwargs["segment_size"] < 1:
            raise StructuralError("metadata: 'segmentSize' must be a positive integer")

        return cls(**kwargs, extra=data)
