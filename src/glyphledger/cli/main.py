"""GlyphLedger CLI entry point - assembles all command groups."""
import click

from .. import __version__
from .keys_cmd import keys
from .ledger_cmd import history, receive, seal, send, status, verify
from .segment_cmd import segment


@click.group()
@click.version_option(version=__version__)
def cli():
    """GlyphLedger: offline verifiable transfer ledger for glyph files."""
    pass


cli.add_command(keys)
cli.add_command(status)
cli.add_command(seal)
cli.add_command(send)
cli.add_command(receive)
cli.add_command(verify)
cli.add_command(history)
cli.add_command(segment)


if __name__ == "__main__":
    cli()
