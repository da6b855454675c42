"""Configuration for GlyphLedger."""
from .settings import LedgerConfig

__all__ = ["LedgerConfig"]
