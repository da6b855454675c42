"""Legacy transfer track: stamp-and-signature pairs.

A transfer is open while it has sender fields only, closed once a receive
fills the receiver fields. Only the last transfer may ever be open, and a
closed transfer is never touched again.
"""
import base64

from ..core.errors import ChainConsistencyError, PolicyError, StructuralError
from ..core.model import ArtifactMetadata, Payload, Transfer
from ..core.receipt import sha256_hex


def sender_stamp(live_signature: str, pulse: int, now_pulse: int) -> str:
    return sha256_hex(f"{live_signature}-{pulse}-{now_pulse}")


def receiver_stamp(live_signature: str, sender_stamp_hex: str, now_pulse: int) -> str:
    return sha256_hex(f"{live_signature}-{sender_stamp_hex}-{now_pulse}")


def make_payload(name: str, mime: str, data: bytes) -> Payload:
    """Wrap file bytes for attachment to a send."""
    return Payload(
        name=name,
        mime=mime,
        size=len(data),
        encoded=base64.b64encode(data).decode("ascii"),
    )


def decode_payload(payload: Payload) -> bytes:
    """Recover attached bytes.

    Raises:
        StructuralError: If the encoding is corrupt or the size disagrees
    """
    try:
        data = base64.b64decode(payload.encoded, validate=True)
    except ValueError as e:
        raise StructuralError(f"payload '{payload.name}' is not valid base64: {e}") from e
    if len(data) != payload.size:
        raise StructuralError(
            f"payload '{payload.name}' size mismatch: declared {payload.size}, got {len(data)}"
        )
    return data


def last_party(meta: ArtifactMetadata) -> str | None:
    """Live signature of whoever holds the glyph per the last transfer."""
    last = meta.last_transfer
    if last is None:
        return None
    return last.receiver_signature or last.sender_signature


def check_open_invariant(meta: ArtifactMetadata) -> None:
    """Raise StructuralError if any transfer other than the last is open."""
    for i, transfer in enumerate(meta.transfers[:-1]):
        if transfer.is_open:
            raise StructuralError(f"transfer {i} is open but is not the last transfer")


def open_transfer(
    meta: ArtifactMetadata,
    live_signature: str,
    now_pulse: int,
    payload: Payload | None = None,
) -> Transfer:
    """Append an open transfer to ``meta`` in place.

    Args:
        meta: Working copy of the metadata
        live_signature: Sender's live identity proof
        now_pulse: Current pulse
        payload: Optional attached file

    Returns:
        The appended Transfer

    Raises:
        PolicyError: If the last transfer is still open
    """
    last = meta.last_transfer
    if last is not None and last.is_open:
        raise PolicyError("cannot send while the last transfer is still open", state="readyReceive")

    transfer = Transfer(
        sender_signature=live_signature,
        sender_stamp=sender_stamp(live_signature, meta.pulse, now_pulse),
        sender_kai_pulse=now_pulse,
        payload=payload,
    )
    meta.transfers.append(transfer)
    return transfer


def close_transfer(meta: ArtifactMetadata, live_signature: str, now_pulse: int) -> Transfer:
    """Fill receiver fields of the last (open) transfer in place.

    Raises:
        PolicyError: If there is no transfer at all
        ChainConsistencyError: If the last transfer is already closed
    """
    last = meta.last_transfer
    if last is None:
        raise PolicyError("nothing to receive: no transfers", state="readySend")
    if not last.is_open:
        raise ChainConsistencyError("duplicate receive: last transfer is already closed")

    last.receiver_signature = live_signature
    last.receiver_stamp = receiver_stamp(live_signature, last.sender_stamp, now_pulse)
    last.receiver_kai_pulse = now_pulse
    return last
