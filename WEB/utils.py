"""
Ripe Web — Utility Helpers
===========================

Shared helpers describing what key normalization does to key material and
how much an RSA key can carry.
"""

from __future__ import annotations

import sys
from pathlib import Path

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import ripe  # noqa: E402


# ---------------------------------------------------------------------------
# Key material report
# ---------------------------------------------------------------------------

def key_material_report(key: bytes) -> tuple[int, str, str]:
    """
    Describe how *key* maps onto the 32-byte AES-256 key.

    Returns
    -------
    (used, label, color) : tuple[int, str, str]
        used: bytes of the input that end up in the key
        label: human readable effect of normalization
        color: hex colour string for the UI indicator
    """
    size = len(key)
    if size == 0:
        return 0, "Empty: key would be all zeros", "#e74c3c"
    if size < ripe.KEY_SIZE:
        return (
            size,
            f"Zero-filled: {ripe.KEY_SIZE - size} of {ripe.KEY_SIZE} bytes are zero",
            "#f39c12",
        )
    if size > ripe.KEY_SIZE:
        return (
            ripe.KEY_SIZE,
            f"Truncated: last {size - ripe.KEY_SIZE} bytes are ignored",
            "#f39c12",
        )
    return size, "Full 32-byte key", "#2ecc71"


# ---------------------------------------------------------------------------
# RSA payload capacity
# ---------------------------------------------------------------------------

def payload_capacity(key_bits: int, payload_size: int) -> tuple[int, bool]:
    """Return ``(max_block_size, fits)`` for a payload under an RSA key."""
    max_size = ripe.max_rsa_block_size(key_bits)
    return max_size, payload_size <= max_size
