"""ZK subpackage: optional proof binding and verifying-key resolution."""
from .binding import (
    ZkProofProvider,
    ZkReport,
    ZkVerifier,
    bundle_from_provided,
    discover_verifier,
    make_stamp,
    resolve_vkey,
    stamp_matches_bundle,
    try_verify,
    verify_zk_on_head,
)
from .vkey import fetch_vkey, load_vkey_file, resolve_global_vkey

__all__ = [
    "ZkProofProvider",
    "ZkReport",
    "ZkVerifier",
    "bundle_from_provided",
    "discover_verifier",
    "make_stamp",
    "resolve_vkey",
    "stamp_matches_bundle",
    "try_verify",
    "verify_zk_on_head",
    "fetch_vkey",
    "load_vkey_file",
    "resolve_global_vkey",
]
