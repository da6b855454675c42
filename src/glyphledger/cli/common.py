"""Wiring shared by CLI commands: config, controller and artifact loading."""
import sys
from pathlib import Path

from ..artifact.store import ArtifactStore, write_segment
from ..artifact.svg import ParsedArtifact
from ..config.settings import LedgerConfig
from ..core.errors import LedgerError, POLICY, STRUCTURAL
from ..identity.keys import KeyStore
from ..ledger.controller import LedgerController, OperationResult
from ..zk.binding import discover_verifier
from ..zk.vkey import resolve_global_vkey
from .output import error_box

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_INPUT = 2


def load_config() -> LedgerConfig:
    config = LedgerConfig.from_env()
    errors = config.validate()
    if errors:
        error_box("Config: INVALID", "; ".join(errors))
        sys.exit(EXIT_INPUT)
    return config


def make_controller(config: LedgerConfig) -> LedgerController:
    return LedgerController(
        key_store=KeyStore(config.key_dir),
        config=config,
        verifier=discover_verifier(),
        global_vkey=resolve_global_vkey(config),
    )


def open_artifact(path: str | Path, title: str) -> tuple[ArtifactStore, ParsedArtifact]:
    """Read an artifact or exit with an input error."""
    store = ArtifactStore(path)
    try:
        return store, store.read()
    except FileNotFoundError:
        error_box(f"{title}: FAILED", f"File not found: {path}")
        sys.exit(EXIT_INPUT)
    except LedgerError as e:
        error_box(f"{title}: UNREADABLE", str(e))
        sys.exit(EXIT_INPUT)


def exit_code_for(result: OperationResult) -> int:
    if result.ok:
        return EXIT_OK
    if result.error is not None and result.error.category == STRUCTURAL:
        return EXIT_INPUT
    return EXIT_REJECTED


def fail(title: str, result: OperationResult, path: str) -> None:
    """Report a rejected operation and exit."""
    error = result.error
    message = f"{error.category}: {error}" if error else "operation failed"
    fix = None
    if error is not None and error.category == POLICY:
        fix = f"glyph status {path}  (state is {result.state.value})"
    error_box(f"{title}: REJECTED", message, fix)
    sys.exit(exit_code_for(result))


def persist(
    title: str,
    config: LedgerConfig,
    store: ArtifactStore,
    parsed: ParsedArtifact,
    result: OperationResult,
    out: str | None = None,
    segment_dir: str | None = None,
) -> tuple[Path, Path | None]:
    """Write a rolled segment, then the artifact; exit with an input error on I/O failure.

    The segment file is the only copy of the archived transfers, so the
    artifact is never rewritten unless the segment is already on disk.
    """
    segment_path = None
    try:
        if result.segment is not None:
            directory = Path(segment_dir) if segment_dir else config.segment_dir
            segment_path = write_segment(directory, result.metadata, result.segment, result.segment_blob)
        target = store.write(result.metadata, parsed.text, out)
    except OSError as e:
        stage = "segment" if result.segment is not None and segment_path is None else "artifact"
        error_box(f"{title}: WRITE FAILED", f"{stage}: {type(e).__name__}: {e}", "Check that --segment-dir and --out are writable")
        sys.exit(EXIT_INPUT)
    return target, segment_path
