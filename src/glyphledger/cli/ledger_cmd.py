"""Ledger commands: status, seal, send, receive, verify, history."""
import sys
from pathlib import Path

import click

from ..artifact.svg import file_to_payload
from ..ledger.history import decode_history, encode_history
from ..ledger.legacy import decode_payload
from ..core.errors import LedgerError
from .common import EXIT_INPUT, EXIT_OK, EXIT_REJECTED, fail, load_config, make_controller, open_artifact, persist
from .output import error_box, print_json, short, state_chip, success_box, table


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--live', 'live_sig', default=None, help='Live identity proof of the caller')
@click.option('--json', 'as_json', is_flag=True, help='Print the full report as JSON')
def status(file: str, live_sig: str | None, as_json: bool):
    """Verify an artifact and show its ledger state."""
    config = load_config()
    _, parsed = open_artifact(file, "Status")
    report = make_controller(config).status(parsed.metadata, live_sig)

    if as_json:
        print_json(report.to_dict())
        sys.exit(EXIT_OK)

    meta = report.metadata
    click.echo(f"{file} {state_chip(report.state.value)}")
    success_box("Ledger Status", [
        ("State", report.state.value),
        ("Σ", short(meta.content_signature)),
        ("Φ", meta.owner_key or "-"),
        ("Live window", str(len(meta.transfers))),
        ("Segments", str(len(meta.segments))),
        ("Cumulative", str(meta.cumulative_transfers)),
        ("Window root", short(report.head.window_root)),
        ("Head proof", str(report.head.proof_ok)),
        ("Chain", "ok" if report.chain.ok else f"{len(report.chain.hard_issues())} issue(s)"),
        ("ZK", f"{report.zk.verified} ok / {report.zk.failed} failed / {report.zk.unknown} unknown"),
    ])
    sys.exit(EXIT_OK)


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--out', type=click.Path(dir_okay=False), default=None, help='Write to this path instead of FILE')
def seal(file: str, out: str | None):
    """Seal an unsigned artifact: compute Σ and Φ, anchor the creator key."""
    config = load_config()
    store, parsed = open_artifact(file, "Seal")
    result = make_controller(config).seal(parsed.metadata)
    if not result.ok:
        fail("Seal", result, file)

    target, _ = persist("Seal", config, store, parsed, result, out)
    success_box("Seal: SUCCESS", [
        ("File", str(target)),
        ("Σ", short(result.metadata.content_signature, 32)),
        ("Φ", result.metadata.owner_key),
        ("Creator key", short(result.metadata.creator_public_key, 32)),
    ], f"glyph send {target} --live <sig>")
    sys.exit(EXIT_OK)


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--live', 'live_sig', required=True, help='Live identity proof of the sender')
@click.option('--attach', type=click.Path(exists=True, dir_okay=False), default=None, help='File to attach')
@click.option('--out', type=click.Path(dir_okay=False), default=None, help='Write to this path instead of FILE')
@click.option('--segment-dir', type=click.Path(file_okay=False), default=None, help='Where rolled segments go')
def send(file: str, live_sig: str, attach: str | None, out: str | None, segment_dir: str | None):
    """Open a transfer and sign its hardened entry."""
    config = load_config()
    store, parsed = open_artifact(file, "Send")
    payload = file_to_payload(attach) if attach else None

    result = make_controller(config).send(parsed.metadata, live_sig, payload)
    if not result.ok:
        fail("Send", result, file)

    target, segment_path = persist("Send", config, store, parsed, result, out, segment_dir)
    entry = result.metadata.hardened_transfers[-1]
    rows = [
        ("File", str(target)),
        ("Transfer", str(result.details.get("transferIndex"))),
        ("Prev head", short(entry.previous_head_root, 32)),
        ("Sender sig", short(entry.sender_sig, 32)),
        ("State", result.state.value),
    ]
    if payload is not None:
        rows.append(("Payload", f"{payload.name} ({payload.size} bytes)"))
    if segment_path is not None:
        rows.append(("Segment", str(segment_path)))
    success_box("Send: SUCCESS", rows, f"glyph receive {target} --live <sig>")
    sys.exit(EXIT_OK)


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--live', 'live_sig', required=True, help='Live identity proof of the receiver')
@click.option('--extract-dir', type=click.Path(file_okay=False), default=None, help='Save an attached payload here')
@click.option('--out', type=click.Path(dir_okay=False), default=None, help='Write to this path instead of FILE')
@click.option('--segment-dir', type=click.Path(file_okay=False), default=None, help='Where rolled segments go')
def receive(file: str, live_sig: str, extract_dir: str | None, out: str | None, segment_dir: str | None):
    """Close the open transfer and countersign it."""
    config = load_config()
    store, parsed = open_artifact(file, "Receive")

    result = make_controller(config).receive(parsed.metadata, live_sig)
    if not result.ok:
        fail("Receive", result, file)

    target, segment_path = persist("Receive", config, store, parsed, result, out, segment_dir)
    rows = [
        ("File", str(target)),
        ("Transfer", str(result.details.get("transferIndex"))),
        ("State", result.state.value),
    ]

    # after a rollover the received transfer lives in the new segment
    received = result.metadata.transfers or (result.segment.transfers if result.segment else [])
    transfer = received[-1] if received else None
    if transfer is not None and transfer.payload is not None and extract_dir:
        try:
            data = decode_payload(transfer.payload)
        except LedgerError as e:
            error_box("Receive: PAYLOAD", str(e))
            sys.exit(EXIT_INPUT)
        directory = Path(extract_dir)
        directory.mkdir(parents=True, exist_ok=True)
        payload_path = directory / Path(transfer.payload.name).name
        payload_path.write_bytes(data)
        rows.append(("Payload", str(payload_path)))
    if segment_path is not None:
        rows.append(("Segment", str(segment_path)))

    success_box("Receive: SUCCESS", rows, f"glyph verify {target}")
    sys.exit(EXIT_OK)


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--live', 'live_sig', default=None, help='Live identity proof of the caller')
def verify(file: str, live_sig: str | None):
    """Verify hardened chain, head proofs and ZK stamps offline."""
    config = load_config()
    _, parsed = open_artifact(file, "Verify")
    report = make_controller(config).status(parsed.metadata, live_sig)

    chain = report.chain
    rows = []
    for index, ok in enumerate(chain.verdicts()):
        kinds = [i.kind for i in chain.issues if i.index == index]
        rows.append([str(index), "ok" if ok else "FAIL", ", ".join(kinds) or "-"])
    if rows:
        table(["Entry", "Verdict", "Issues"], rows)

    healthy = chain.ok and report.head.ok and report.state.value in ("verified", "complete", "readySend", "readyReceive")
    if healthy:
        success_box("Verify: VALID", [
            ("State", report.state.value),
            ("Entries", str(chain.entries)),
            ("Window root", short(report.head.window_root, 32)),
            ("Hardened root", short(report.head.hardened_root, 32)),
        ])
        sys.exit(EXIT_OK)

    reason = f"state {report.state.value}" if chain.ok else f"{len(chain.hard_issues())} chain issue(s)"
    error_box("Verify: INVALID", reason)
    sys.exit(EXIT_REJECTED)


@click.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False), required=False)
@click.option('--decode', 'token', default=None, help='Decode a compact history token instead')
def history(file: str | None, token: str | None):
    """Print the compact shareable history of the live window."""
    if token is None:
        if file is None:
            error_box("History: NO INPUT", "Provide FILE or --decode TOKEN")
            sys.exit(EXIT_INPUT)
        _, parsed = open_artifact(file, "History")
        token = encode_history(parsed.metadata)
        click.echo(token)

    try:
        records = decode_history(token)
    except LedgerError as e:
        error_box("History: INVALID", str(e))
        sys.exit(EXIT_INPUT)

    table(
        ["#", "Pulse", "Sender", "Receiver"],
        [[str(i), str(r["p"]), short(r["s"]), short(r.get("r"))] for i, r in enumerate(records)],
    )
    sys.exit(EXIT_OK)
