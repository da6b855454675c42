"""GlyphLedger constants and defaults.

All magic numbers live here. No exceptions.
"""
import time

# Artifact markers
SIGIL_CTX = "https://schema.phi.network/sigil/v1"
SIGIL_TYPE = "application/phi.kairos.sigil+svg"

# Pulse clock (external time calculus; only "now" is needed here)
PULSE_MS = 5_236
GENESIS_TS_MS = 1_715_323_541_888  # 2024-05-10T06:45:41.888Z

# Segmentation
SEGMENT_SIZE = 2_000  # live-window cap before rolling a segment
SEGMENT_FILE_VERSION = 1
LEAF_HASH_ALGO = "sha256"
SEGMENT_FILENAME = "sigil_segment_{pulse}_{index:06d}.json"

# Hardened lineage
HARDENED_MESSAGE_VERSION = 1
NONCE_BYTES = 16

# Compact history
HISTORY_PREFIX = "h:"

# Φ derivation
PHI_SUFFIX = "φ"
PHI_VERSION_BYTE = 0x00
PHI_PAYLOAD_BYTES = 20

# ZK
ZK_SCHEME = "groth16"
ZK_CURVE = "BLS12-381"
ZK_VERIFIER_ENTRY_POINT_GROUP = "glyphledger.zk_verifiers"
VKEY_FETCH_TIMEOUT_MS = 2000

# Chakra days, in canonical spelling
CHAKRA_DAYS = (
    "Root",
    "Sacral",
    "Solar Plexus",
    "Heart",
    "Throat",
    "Third Eye",
    "Crown",
)


def kai_pulse_now() -> int:
    """Current pulse index since genesis."""
    return int((time.time() * 1000 - GENESIS_TS_MS) // PULSE_MS)


def normalize_chakra_day(value) -> str | None:
    """Return canonical chakra day spelling, or None if unknown."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    for day in CHAKRA_DAYS:
        if day.lower() == key:
            return day
    return None
