"""
Entry point for running GlyphLedger as a module.

Usage:
    python -m glyphledger [command] [options]

Example:
    python -m glyphledger keys init
    python -m glyphledger status glyph.svg --live 3f2a...
    python -m glyphledger send glyph.svg --live 3f2a... --attach note.txt
"""

from glyphledger.cli.main import cli

if __name__ == "__main__":
    cli()
