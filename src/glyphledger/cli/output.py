"""Shared output formatting with ASCII boxes. NO class - just functions."""

import json

import click

BOX_WIDTH = 64

# ledger state -> chip colour
STATE_COLORS = {
    "verified": "green",
    "complete": "green",
    "readySend": "cyan",
    "readyReceive": "cyan",
    "unsigned": "yellow",
    "notOwner": "yellow",
    "sigMismatch": "red",
    "structMismatch": "red",
    "invalid": "red",
}


def print_json(data: dict) -> None:
    """Print JSON data formatted."""
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def print_error(message: str) -> None:
    """Print error message in red."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


def _truncate(text: str, max_len: int) -> str:
    return text[:max_len - 3] + "..." if len(text) > max_len else text


def _box(title: str, lines: list[str], color: str) -> None:
    top = f"╭─ {title} " + "─" * max(BOX_WIDTH - len(title) - 4, 1) + "╮"
    click.echo(click.style(top, fg=color))
    for text in lines:
        text = _truncate(text, BOX_WIDTH - 3)
        click.echo(f"│ {text}" + " " * (BOX_WIDTH - len(text) - 2) + "│")
    click.echo(click.style("╰" + "─" * (BOX_WIDTH - 1) + "╯", fg=color))


def success_box(title: str, rows: list[tuple[str, str]], next_cmd: str | None = None) -> None:
    """Print green-bordered box of label/value rows with an optional Next: hint."""
    _box(title, [f"{label}: {value}" for label, value in rows], "green")
    if next_cmd:
        click.echo(f"Next: {next_cmd}")


def error_box(title: str, message: str, fix_cmd: str | None = None) -> None:
    """Print red-bordered error box with optional Fix: hint."""
    _box(title, [message], "red")
    if fix_cmd:
        click.echo(f"Fix: {fix_cmd}")


def state_chip(state: str) -> str:
    return click.style(f"[{state}]", fg=STATE_COLORS.get(state, "white"), bold=True)


def table(headers: list[str], rows: list[list[str]]) -> None:
    """Print simple table for list commands."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[:len(widths)]):
            widths[i] = max(widths[i], len(str(cell)))

    header_line = "│ " + " │ ".join(h.ljust(widths[i]) for i, h in enumerate(headers)) + " │"
    sep_line = "├" + "─" + "─┼─".join("─" * w for w in widths) + "─┤"

    click.echo("╭" + "─" * (len(header_line) - 2) + "╮")
    click.echo(header_line)
    click.echo(sep_line)
    for row in rows:
        cells = [str(row[i]).ljust(w) if i < len(row) else " " * w for i, w in enumerate(widths)]
        click.echo("│ " + " │ ".join(cells) + " │")
    click.echo("╰" + "─" * (len(header_line) - 2) + "╯")


def short(value: str | None, n: int = 16) -> str:
    """First n chars of a hash for display."""
    if not value:
        return "-"
    return value[:n] + ("…" if len(value) > n else "")
