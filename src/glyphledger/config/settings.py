"""Ledger configuration.

All settings can be overridden via environment variables with the GLYPH_
prefix.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..core.constants import SEGMENT_SIZE, VKEY_FETCH_TIMEOUT_MS


def _default_key_dir() -> Path:
    return Path.home() / ".glyphledger" / "keys"


@dataclass
class LedgerConfig:
    """Ledger configuration."""

    # Segmentation policy
    segment_size: int = SEGMENT_SIZE
    segment_dir: Path = field(default_factory=Path.cwd)

    # Local sovereign key
    key_dir: Path = field(default_factory=_default_key_dir)

    # Optional global ZK verifying key
    vkey_path: Path | None = None
    vkey_url: str | None = None
    vkey_timeout_ms: int = VKEY_FETCH_TIMEOUT_MS

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Load configuration from environment variables."""
        config = cls()

        if "GLYPH_SEGMENT_SIZE" in os.environ:
            config.segment_size = int(os.environ["GLYPH_SEGMENT_SIZE"])
        if "GLYPH_SEGMENT_DIR" in os.environ:
            config.segment_dir = Path(os.environ["GLYPH_SEGMENT_DIR"])

        if "GLYPH_KEY_DIR" in os.environ:
            config.key_dir = Path(os.environ["GLYPH_KEY_DIR"])

        if "GLYPH_VKEY_PATH" in os.environ:
            config.vkey_path = Path(os.environ["GLYPH_VKEY_PATH"])
        if "GLYPH_VKEY_URL" in os.environ:
            config.vkey_url = os.environ["GLYPH_VKEY_URL"]
        if "GLYPH_VKEY_TIMEOUT_MS" in os.environ:
            config.vkey_timeout_ms = int(os.environ["GLYPH_VKEY_TIMEOUT_MS"])

        return config

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if self.segment_size < 1:
            errors.append("segment_size must be a positive integer")
        if self.vkey_timeout_ms < 1:
            errors.append("vkey_timeout_ms must be positive")
        if self.vkey_url and not self.vkey_url.startswith(("http://", "https://")):
            errors.append("vkey_url must be an http(s) URL")

        return errors
