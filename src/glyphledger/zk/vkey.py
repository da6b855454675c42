"""Global ZK verifying-key resolution.

A verifying key may come from a local JSON file or an http(s) URL. Any
failure degrades to None (ZK checks become "unknown"); it never blocks a
ledger operation.
"""
import json
import logging
from pathlib import Path
from typing import Any

import requests

from ..config.settings import LedgerConfig
from ..core.constants import VKEY_FETCH_TIMEOUT_MS

logger = logging.getLogger("glyphledger.zk")


def load_vkey_file(path: str | Path) -> Any | None:
    """Read a verifying key from disk, or None if unreadable."""
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("verifying key file %s unusable: %s", path, e)
        return None


def fetch_vkey(url: str, timeout_ms: int = VKEY_FETCH_TIMEOUT_MS) -> Any | None:
    """Fetch a verifying key JSON object, or None on timeout/HTTP/parse failure."""
    try:
        response = requests.get(
            url,
            timeout=timeout_ms / 1000,
            headers={"Accept": "application/json", "User-Agent": "GlyphLedger/1.0"},
        )
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("verifying key fetch from %s failed: %s", url, e)
        return None


def resolve_global_vkey(config: LedgerConfig) -> Any | None:
    """Configured global verifying key: file first, then URL."""
    if config.vkey_path is not None:
        vkey = load_vkey_file(config.vkey_path)
        if vkey is not None:
            return vkey
    if config.vkey_url:
        return fetch_vkey(config.vkey_url, config.vkey_timeout_ms)
    return None
