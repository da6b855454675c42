"""Optional zero-knowledge proof binding for hardened transfers.

A stamp always binds hashes of the proof, its public signals and (when
known) its verifying key, so the binding is tamper-evident even with no
verifier installed. Actually checking a proof needs two capabilities that
may be absent: a ZkVerifier and a verifying key. When either is missing
the verdict is None ("unknown"), never False.
"""
import logging
from dataclasses import dataclass, field
from importlib.metadata import entry_points
from typing import Any, Protocol, runtime_checkable

from ..core.constants import ZK_CURVE, ZK_SCHEME, ZK_VERIFIER_ENTRY_POINT_GROUP
from ..core.model import ArtifactMetadata, ZkBundle, ZkStamp
from ..core.receipt import hash_any

logger = logging.getLogger("glyphledger.zk")


@runtime_checkable
class ZkVerifier(Protocol):
    def verify(self, vkey: Any, public_signals: Any, proof: Any) -> bool:
        ...


@runtime_checkable
class ZkProofProvider(Protocol):
    """Produces proofs for new hardened entries.

    Each method receives a context dict (previousHeadRoot, leaf hash, pulse,
    public key) and returns ``{"proof", "publicSignals", "vkey"?}`` or None.
    """

    def provide_send_proof(self, ctx: dict) -> dict | None:
        ...

    def provide_receive_proof(self, ctx: dict) -> dict | None:
        ...


def discover_verifier() -> ZkVerifier | None:
    """First verifier registered under the glyphledger.zk_verifiers entry point group.

    Entry points may name a class (instantiated with no arguments) or an
    object that already has a ``verify`` method.
    """
    for ep in entry_points(group=ZK_VERIFIER_ENTRY_POINT_GROUP):
        try:
            target = ep.load()
        except (ImportError, AttributeError) as e:
            logger.warning("zk verifier entry point %s failed to load: %s", ep.name, e)
            continue
        verifier = target() if isinstance(target, type) else target
        if isinstance(verifier, ZkVerifier):
            return verifier
        logger.warning("zk verifier entry point %s has no verify()", ep.name)
    return None


def bundle_from_provided(provided: dict) -> ZkBundle:
    return ZkBundle(
        scheme=provided.get("scheme", ZK_SCHEME),
        curve=provided.get("curve", ZK_CURVE),
        proof=provided["proof"],
        public_signals=provided["publicSignals"],
        vkey=provided.get("vkey"),
    )


def make_stamp(bundle: ZkBundle, vkey: Any = None) -> ZkStamp:
    """Hash-bind a bundle. ``vkey`` defaults to the bundle's inline key."""
    if vkey is None:
        vkey = bundle.vkey
    return ZkStamp(
        scheme=bundle.scheme,
        curve=bundle.curve,
        public_hash=hash_any(bundle.public_signals),
        proof_hash=hash_any(bundle.proof),
        vkey_hash=hash_any(vkey) if vkey is not None else None,
    )


def stamp_matches_bundle(stamp: ZkStamp, bundle: ZkBundle) -> bool:
    """Stamp hashes agree with the bundle they claim to bind."""
    if stamp.public_hash != hash_any(bundle.public_signals):
        return False
    if stamp.proof_hash != hash_any(bundle.proof):
        return False
    if stamp.vkey_hash is not None and bundle.vkey is not None:
        return stamp.vkey_hash == hash_any(bundle.vkey)
    return True


def resolve_vkey(bundle: ZkBundle, meta: ArtifactMetadata, global_vkey: Any = None) -> Any | None:
    """Verifying key precedence: bundle inline, artifact metadata, global."""
    if bundle.vkey is not None:
        return bundle.vkey
    if meta.zk_verifying_key is not None:
        return meta.zk_verifying_key
    return global_vkey


def try_verify(verifier: ZkVerifier | None, bundle: ZkBundle, vkey: Any) -> bool | None:
    """Run the verifier if both capabilities are present.

    Returns:
        True/False verdict, or None when the verifier or key is unavailable
    """
    if verifier is None or vkey is None:
        return None
    try:
        return bool(verifier.verify(vkey, bundle.public_signals, bundle.proof))
    except Exception as e:
        # a proof that crashes the verifier is not a valid proof
        logger.warning("zk verifier raised on %s proof: %s", bundle.scheme, e)
        return False


@dataclass
class ZkReport:
    """Outcome counts of a ZK pass over the hardened track."""
    verified: int = 0
    failed: int = 0
    unknown: int = 0
    failures: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "verified": self.verified,
            "failed": self.failed,
            "unknown": self.unknown,
            "failures": list(self.failures),
        }


def _check_side(
    meta: ArtifactMetadata,
    stamp: ZkStamp | None,
    bundle: ZkBundle | None,
    verifier: ZkVerifier | None,
    global_vkey: Any,
) -> bool | None:
    if stamp is None:
        return None
    if bundle is None:
        # stamp without proof objects: keep whatever was cached
        return stamp.verified
    if not stamp_matches_bundle(stamp, bundle):
        return False
    return try_verify(verifier, bundle, resolve_vkey(bundle, meta, global_vkey))


def verify_zk_on_head(
    meta: ArtifactMetadata,
    verifier: ZkVerifier | None = None,
    global_vkey: Any = None,
) -> tuple[ArtifactMetadata, ZkReport]:
    """Re-verify every ZK stamp that has a bundle and cache the verdict.

    Args:
        meta: Artifact metadata (not modified)
        verifier: ZK verifier capability, or None
        global_vkey: Configured verifying key, or None

    Returns:
        (copy of meta with ``verified`` flags set, report)
    """
    out = meta.copy()
    report = ZkReport()

    for index, entry in enumerate(out.hardened_transfers):
        sides = (
            ("send", entry.zk_send, entry.zk_send_bundle),
            ("receive", entry.zk_receive, entry.zk_receive_bundle),
        )
        for side, stamp, bundle in sides:
            if stamp is None:
                continue
            verdict = _check_side(out, stamp, bundle, verifier, global_vkey)
            if verdict is None:
                report.unknown += 1
                continue
            stamp.verified = verdict
            if verdict:
                report.verified += 1
            else:
                report.failed += 1
                report.failures.append({"index": index, "side": side})

    return out, report
