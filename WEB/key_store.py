"""
Ripe Web — Session-State Key Store
===================================

Keep shared AES key material and RSA keypairs entirely in
``st.session_state``.  Nothing is persisted to disk or sent anywhere beyond
the active session.
"""

from __future__ import annotations

import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import streamlit as st

# -- make project root importable so we can ``import ripe`` ----------------
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import ripe  # noqa: E402


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class KeyEntry:
    """Shared AES key material stored in the session (hex, any length)."""
    key_id: str
    name: str
    key_hex: str
    mode: str  # "system" | "custom"
    created: str
    client_id: str = ""


@dataclass
class RSAKeyEntry:
    """An RSA keypair stored in the session."""
    key_id: str
    name: str
    public_pem: str   # PEM text
    private_pem: str  # PEM text, empty for public-only entries
    key_size: int
    created: str

    @property
    def max_block_size(self) -> int:
        return ripe.max_rsa_block_size(self.key_size)


# ---------------------------------------------------------------------------
# Session-state initialisation
# ---------------------------------------------------------------------------

_AES_KEY = "ripe_aes_keys"
_RSA_KEY = "ripe_rsa_keys"


def _init_state() -> None:
    """Ensure session-state dicts exist."""
    if _AES_KEY not in st.session_state:
        st.session_state[_AES_KEY] = {}
    if _RSA_KEY not in st.session_state:
        st.session_state[_RSA_KEY] = {}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# AES key operations
# ---------------------------------------------------------------------------

def generate_system_key(name: str, client_id: str = "") -> KeyEntry:
    """Generate a random 32-byte AES key and store it in the session."""
    _init_state()
    entry = KeyEntry(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Untitled Key",
        key_hex=ripe.generate_key().hex(),
        mode="system",
        created=_now(),
        client_id=client_id,
    )
    st.session_state[_AES_KEY][entry.key_id] = entry
    return entry


def import_custom_key(
    name: str,
    value: str,
    fmt: str = "text",
    client_id: str = "",
) -> KeyEntry:
    """
    Import user-supplied key material.

    Parameters
    ----------
    value : str
        The key as plain text or hex.  Any length is accepted; it is
        normalized to 32 bytes at encryption time.
    fmt : str
        ``"text"`` or ``"hex"``.
    """
    _init_state()
    if fmt == "hex":
        raw = ripe.key_from_hex(value)
    else:
        raw = value.encode("utf-8")
    if not raw:
        raise ripe.BadKeyError("Key material must not be empty.")

    entry = KeyEntry(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Imported Key",
        key_hex=raw.hex(),
        mode="custom",
        created=_now(),
        client_id=client_id,
    )
    st.session_state[_AES_KEY][entry.key_id] = entry
    return entry


def list_aes_keys() -> list[KeyEntry]:
    """Return all AES keys in the session (newest first)."""
    _init_state()
    keys = list(st.session_state[_AES_KEY].values())
    keys.sort(key=lambda k: k.created, reverse=True)
    return keys


def get_aes_key(key_id: str) -> Optional[KeyEntry]:
    """Look up a single AES key by ID."""
    _init_state()
    return st.session_state[_AES_KEY].get(key_id)


def get_aes_key_bytes(key_id: str) -> bytes:
    """Return the stored key material (not yet normalized)."""
    entry = get_aes_key(key_id)
    if entry is None:
        raise ripe.BadKeyError(f"Key '{key_id}' not found in session.")
    return bytes.fromhex(entry.key_hex)


def delete_aes_key(key_id: str) -> bool:
    """Remove a key from the session. Returns True if it existed."""
    _init_state()
    return st.session_state[_AES_KEY].pop(key_id, None) is not None


# ---------------------------------------------------------------------------
# RSA keypair operations
# ---------------------------------------------------------------------------

def generate_rsa_keypair(
    name: str,
    key_size: int = ripe.DEFAULT_RSA_BITS,
    public_exponent: int = ripe.DEFAULT_PUBLIC_EXPONENT,
) -> RSAKeyEntry:
    """Generate an RSA keypair and store it in the session."""
    _init_state()
    private_pem, public_pem = ripe.generate_rsa_keypair(key_size, public_exponent)
    entry = RSAKeyEntry(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Untitled RSA Key",
        public_pem=public_pem,
        private_pem=private_pem,
        key_size=key_size,
        created=_now(),
    )
    st.session_state[_RSA_KEY][entry.key_id] = entry
    return entry


def import_rsa_key(name: str, public_pem: str, private_pem: str = "") -> RSAKeyEntry:
    """Import an RSA public key, optionally with its private half."""
    _init_state()
    pub = ripe.load_public_key(public_pem)
    if private_pem.strip():
        ripe.load_private_key(private_pem)
    entry = RSAKeyEntry(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Imported RSA Key",
        public_pem=public_pem.strip(),
        private_pem=private_pem.strip(),
        key_size=pub.key_size,
        created=_now(),
    )
    st.session_state[_RSA_KEY][entry.key_id] = entry
    return entry


def list_rsa_keys() -> list[RSAKeyEntry]:
    """Return all RSA keys in the session (newest first)."""
    _init_state()
    keys = list(st.session_state[_RSA_KEY].values())
    keys.sort(key=lambda k: k.created, reverse=True)
    return keys


def get_rsa_key(key_id: str) -> Optional[RSAKeyEntry]:
    _init_state()
    return st.session_state[_RSA_KEY].get(key_id)


def delete_rsa_key(key_id: str) -> bool:
    _init_state()
    return st.session_state[_RSA_KEY].pop(key_id, None) is not None
