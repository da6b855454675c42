"""Tests for ledger configuration.

Functions tested: LedgerConfig.from_env, LedgerConfig.validate
"""
from pathlib import Path

from glyphledger.config.settings import LedgerConfig
from glyphledger.core.constants import SEGMENT_SIZE, VKEY_FETCH_TIMEOUT_MS


class TestLedgerConfig:
    """Tests for LedgerConfig."""

    def test_defaults(self, monkeypatch):
        for name in ("GLYPH_SEGMENT_SIZE", "GLYPH_KEY_DIR", "GLYPH_VKEY_URL", "GLYPH_VKEY_PATH"):
            monkeypatch.delenv(name, raising=False)

        config = LedgerConfig.from_env()

        assert config.segment_size == SEGMENT_SIZE
        assert config.vkey_timeout_ms == VKEY_FETCH_TIMEOUT_MS
        assert config.vkey_url is None
        assert config.key_dir.name == "keys"
        assert config.validate() == []

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GLYPH_SEGMENT_SIZE", "50")
        monkeypatch.setenv("GLYPH_SEGMENT_DIR", str(tmp_path / "segments"))
        monkeypatch.setenv("GLYPH_KEY_DIR", str(tmp_path / "keys"))
        monkeypatch.setenv("GLYPH_VKEY_PATH", str(tmp_path / "vkey.json"))
        monkeypatch.setenv("GLYPH_VKEY_URL", "https://keys.example/vkey.json")
        monkeypatch.setenv("GLYPH_VKEY_TIMEOUT_MS", "750")

        config = LedgerConfig.from_env()

        assert config.segment_size == 50
        assert config.segment_dir == tmp_path / "segments"
        assert config.key_dir == tmp_path / "keys"
        assert config.vkey_path == Path(tmp_path / "vkey.json")
        assert config.vkey_url == "https://keys.example/vkey.json"
        assert config.vkey_timeout_ms == 750

    def test_validate(self):
        config = LedgerConfig(segment_size=0, vkey_timeout_ms=0, vkey_url="ftp://keys")
        errors = config.validate()

        assert len(errors) == 3
        assert any("segment_size" in e for e in errors)
        assert any("vkey_url" in e for e in errors)
