"""Leaf hashing for both transfer tracks and the hardened head chain.

Leaves:
    sender-side leaf   hash_any({senderSignature, senderStamp, senderKaiPulse, payload?})
    full leaf          sender-side fields + receiver fields when present
    hardened leaf      hash_any(entry without ZK bundles, stamps without ``verified``)

Head chain (order-sensitive rolling hash over hardened entries):
    link_0     = hash_any({v, kind:"genesis", identity..., contentSignature})
    link_{k+1} = hash_any({v, kind:"link", prev:link_k, index:k, leaf:hardened_leaf(entry_k)})

previousHeadRoot of entry i is link_i.
"""
from ..core.constants import HARDENED_MESSAGE_VERSION
from ..core.model import ArtifactMetadata, HardenedTransfer, Transfer
from ..core.receipt import hash_any


def sender_side_leaf(transfer: Transfer) -> dict:
    leaf = {
        "senderSignature": transfer.sender_signature,
        "senderStamp": transfer.sender_stamp,
        "senderKaiPulse": transfer.sender_kai_pulse,
    }
    if transfer.payload is not None:
        leaf["payload"] = transfer.payload.summary()
    return leaf


def hash_transfer_sender_side(transfer: Transfer) -> str:
    """Leaf hash of the sender half only; fixed at send time."""
    return hash_any(sender_side_leaf(transfer))


def hash_transfer(transfer: Transfer) -> str:
    """Full leaf hash; changes exactly once, when the receive closes the transfer."""
    leaf = sender_side_leaf(transfer)
    if transfer.receiver_signature is not None:
        leaf["receiverSignature"] = transfer.receiver_signature
    if transfer.receiver_stamp is not None:
        leaf["receiverStamp"] = transfer.receiver_stamp
    if transfer.receiver_kai_pulse is not None:
        leaf["receiverKaiPulse"] = transfer.receiver_kai_pulse
    return hash_any(leaf)


def hardened_leaf_hash(entry: HardenedTransfer) -> str:
    data = entry.to_dict()
    data.pop("zkSendBundle", None)
    data.pop("zkReceiveBundle", None)
    if entry.zk_send is not None:
        data["zkSend"] = entry.zk_send.binding_dict()
    if entry.zk_receive is not None:
        data["zkReceive"] = entry.zk_receive.binding_dict()
    return hash_any(data)


def genesis_link(meta: ArtifactMetadata) -> str:
    return hash_any({
        "v": HARDENED_MESSAGE_VERSION,
        "kind": "genesis",
        "pulse": meta.pulse,
        "beat": meta.beat,
        "stepIndex": meta.step_index,
        "chakraDay": meta.chakra_day,
        "contentSignature": meta.content_signature,
    })


def next_link(prev: str, index: int, entry: HardenedTransfer) -> str:
    return hash_any({
        "v": HARDENED_MESSAGE_VERSION,
        "kind": "link",
        "prev": prev,
        "index": index,
        "leaf": hardened_leaf_hash(entry),
    })


def head_links(meta: ArtifactMetadata, entries: list[HardenedTransfer] | None = None) -> list[str]:
    """All chain links: [link_0, ..., link_n] for n entries."""
    if entries is None:
        entries = meta.hardened_transfers
    links = [genesis_link(meta)]
    for k, entry in enumerate(entries):
        links.append(next_link(links[-1], k, entry))
    return links


def expected_prev_head_root(meta: ArtifactMetadata, index: int | None = None) -> str:
    """Head root an entry at ``index`` must carry (default: the next entry).

    Args:
        meta: Artifact metadata
        index: Position of the entry being checked or appended

    Returns:
        link_index recomputed from entries 0..index-1
    """
    entries = meta.hardened_transfers
    if index is None:
        index = len(entries)
    return head_links(meta, entries[:index])[-1]


def head_canonical_hash(meta: ArtifactMetadata) -> str:
    """Snapshot hash of the full ledger head, recorded as headHashAtSeal."""
    return hash_any({
        "pulse": meta.pulse,
        "beat": meta.beat,
        "stepIndex": meta.step_index,
        "chakraDay": meta.chakra_day,
        "contentSignature": meta.content_signature,
        "ownerKey": meta.owner_key,
        "creatorPublicKey": meta.creator_public_key,
        "cumulativeTransfers": meta.cumulative_transfers,
        "segments": [s.to_dict() for s in meta.segments],
        "segmentsMerkleRoot": meta.segments_merkle_root,
        "transfers": [hash_transfer(t) for t in meta.transfers],
        "hardenedTransfers": [hardened_leaf_hash(h) for h in meta.hardened_transfers],
    })
