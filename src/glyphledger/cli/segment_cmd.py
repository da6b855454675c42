"""Segment commands: seal, verify."""
import json
import sys

import click

from ..artifact.store import read_segment
from ..core.errors import StructuralError
from ..core.model import SegmentFile
from ..ledger.segments import build_segment_proof, verify_segment_file
from ..ledger.window import verify_historical
from .common import EXIT_INPUT, EXIT_OK, EXIT_REJECTED, fail, load_config, make_controller, open_artifact, persist
from .output import error_box, short, success_box


@click.group()
def segment():
    """Archived segment operations."""
    pass


@segment.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--out', type=click.Path(dir_okay=False), default=None, help='Write to this path instead of FILE')
@click.option('--segment-dir', type=click.Path(file_okay=False), default=None, help='Where the segment file goes')
def seal(file: str, out: str | None, segment_dir: str | None):
    """Roll the live window into a segment now."""
    config = load_config()
    store, parsed = open_artifact(file, "Segment Seal")

    result = make_controller(config).seal_segment(parsed.metadata)
    if not result.ok:
        fail("Segment Seal", result, file)

    target, path = persist("Segment Seal", config, store, parsed, result, out, segment_dir)
    entry = result.metadata.segments[-1]
    success_box("Segment Seal: SUCCESS", [
        ("File", str(target)),
        ("Segment", str(path)),
        ("Index", str(entry.index)),
        ("Count", str(entry.count)),
        ("Root", short(entry.root, 32)),
        ("CID", short(entry.cid, 32)),
    ], f"glyph segment verify {path} --artifact {target}")
    sys.exit(EXIT_OK)


@segment.command()
@click.argument('segment_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--artifact', 'artifact', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Artifact whose head records this segment')
def verify(segment_file: str, artifact: str):
    """Check a segment file against the artifact head, and every transfer in it."""
    _, parsed = open_artifact(artifact, "Segment Verify")
    meta = parsed.metadata
    blob = read_segment(segment_file)

    try:
        segment_data = SegmentFile.from_dict(json.loads(blob))
    except (ValueError, StructuralError) as e:
        error_box("Segment Verify: UNREADABLE", str(e))
        sys.exit(EXIT_INPUT)

    entry = next((s for s in meta.segments if s.index == segment_data.segment_index), None)
    if entry is None:
        error_box("Segment Verify: UNKNOWN", f"segment {segment_data.segment_index} not recorded in {artifact}")
        sys.exit(EXIT_REJECTED)

    problems = verify_segment_file(entry, blob)
    if not problems:
        for position in range(len(segment_data.transfers)):
            bundle = build_segment_proof(meta, segment_data, position)
            if not verify_historical(meta, bundle):
                problems.append(f"transfer {position} does not prove into segmentsMerkleRoot")
                break

    if problems:
        error_box("Segment Verify: INVALID", "; ".join(problems))
        sys.exit(EXIT_REJECTED)

    success_box("Segment Verify: VALID", [
        ("Segment", str(entry.index)),
        ("Transfers", str(entry.count)),
        ("Range", f"{segment_data.segment_range[0]}..{segment_data.segment_range[1]}"),
        ("Root", short(entry.root, 32)),
        ("CID", short(entry.cid, 32)),
    ])
    sys.exit(EXIT_OK)
