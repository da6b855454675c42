"""Test configuration and fixtures for the glyph ledger.

Clock: deterministic pulse source
FakeVerifier / FakeProvider: stand-in ZK capabilities
Fixtures: key stores, sealed metadata, controllers
"""
import pytest

from glyphledger.config.settings import LedgerConfig
from glyphledger.core.constants import SIGIL_CTX, SIGIL_TYPE
from glyphledger.core.model import ArtifactMetadata
from glyphledger.identity.keys import KeyPair, KeyStore
from glyphledger.ledger.controller import LedgerController

LIVE = "a3f09c71d2b4e8a65f1c0b9d7e2a4c68"

SAMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="64" height="64" '
    'data-pulse="1000" data-beat="3" data-step-index="7" data-chakra-day="Heart">'
    '<metadata>{"@context": "' + SIGIL_CTX + '", "type": "' + SIGIL_TYPE + '", '
    '"pulse": 1000, "beat": 3, "stepIndex": 7, "chakraDay": "Heart"}</metadata>'
    '<rect width="64" height="64" fill="#3a7"/></svg>'
)


class Clock:
    """Monotonic fake pulse clock."""

    def __init__(self, start: int = 5_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


class FakeVerifier:
    """Accepts a proof iff proof["valid"] is True."""

    def __init__(self):
        self.calls = 0

    def verify(self, vkey, public_signals, proof) -> bool:
        self.calls += 1
        return isinstance(proof, dict) and proof.get("valid") is True


class FakeProvider:
    """Produces small proof bundles; ``valid`` controls the verdict."""

    def __init__(self, valid: bool = True, vkey: dict | None = None):
        self.valid = valid
        self.vkey = vkey if vkey is not None else {"protocol": "groth16", "k": 1}

    def _proof(self, ctx: dict) -> dict:
        return {
            "proof": {"valid": self.valid, "pi_a": ["1", "2"]},
            "publicSignals": [ctx.get("transferLeafHashSend") or ctx.get("transferLeafHashReceive")],
            "vkey": self.vkey,
        }

    def provide_send_proof(self, ctx: dict) -> dict:
        return self._proof(ctx)

    def provide_receive_proof(self, ctx: dict) -> dict:
        return self._proof(ctx)


def run_cycles(controller: LedgerController, meta: ArtifactMetadata, n: int, live: str = LIVE):
    """n send/receive cycles; returns final metadata and all results."""
    results = []
    for _ in range(n):
        sent = controller.send(meta, live)
        assert sent.ok, sent.error
        results.append(sent)
        received = controller.receive(sent.metadata, live)
        assert received.ok, received.error
        results.append(received)
        meta = received.metadata
    return meta, results


@pytest.fixture
def keypair() -> KeyPair:
    """Fresh in-memory keypair."""
    return KeyPair.generate()


@pytest.fixture
def key_store(tmp_path) -> KeyStore:
    """Empty key store under tmp_path."""
    return KeyStore(tmp_path / "keys")


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def unsigned_meta() -> ArtifactMetadata:
    """Identity fields only; not yet sealed."""
    return ArtifactMetadata(
        context=SIGIL_CTX,
        type=SIGIL_TYPE,
        pulse=1000,
        beat=3,
        step_index=7,
        chakra_day="Heart",
    )


@pytest.fixture
def controller(keypair, clock) -> LedgerController:
    return LedgerController(keypair=keypair, config=LedgerConfig(), clock=clock)


@pytest.fixture
def sealed_meta(controller, unsigned_meta) -> ArtifactMetadata:
    result = controller.seal(unsigned_meta)
    assert result.ok, result.error
    return result.metadata


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def sample_svg(tmp_path):
    """Unsigned glyph SVG on disk."""
    path = tmp_path / "glyph.svg"
    path.write_text(SAMPLE_SVG, encoding="utf-8")
    return path
