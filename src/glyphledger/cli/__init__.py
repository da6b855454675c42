"""Command line interface for GlyphLedger."""
