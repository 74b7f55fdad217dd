"""
Ripe Web — Text Tab
====================

Encrypt / decrypt text using:
  • Stored AES key (wire envelope with optional client id)
  • RSA keypair (PKCS#1 v1.5, Base64 output)
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# -- project-root import ---------------------------------------------------
_root = str(Path(__file__).resolve().parent.parent.parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

import ripe  # noqa: E402

from key_store import (  # noqa: E402
    get_aes_key,
    get_aes_key_bytes,
    get_rsa_key,
    list_aes_keys,
    list_rsa_keys,
)
from utils import payload_capacity  # noqa: E402


# ---------------------------------------------------------------------------
# Public render function
# ---------------------------------------------------------------------------

def render() -> None:
    """Render the Text encryption / decryption tab."""

    # ---- Operation selector ----
    operation = st.radio(
        "Operation",
        ["Encrypt", "Decrypt"],
        horizontal=True,
        key="text_operation",
    )

    # ---- Key mode selector ----
    key_mode = st.radio(
        "Key Mode",
        ["AES Envelope", "RSA Key"],
        horizontal=True,
        key="text_key_mode",
    )

    selected_key_id: str | None = None
    selected_rsa_id: str | None = None
    client_id = ""
    padding = ripe.PADDING_PKCS7

    if key_mode == "AES Envelope":
        aes_keys = list_aes_keys()
        if not aes_keys:
            st.info("No keys stored yet. Generate or import one in the **Keys** tab.")
        else:
            options = {k.key_id: f"{k.name}  ({k.mode})" for k in aes_keys}
            selected_key_id = st.selectbox(
                "Select Key",
                options.keys(),
                format_func=lambda kid: options[kid],
                key="text_aes_key",
            )
            entry = get_aes_key(selected_key_id) if selected_key_id else None
            if operation == "Encrypt":
                client_id = st.text_input(
                    "Client ID (optional)",
                    value=entry.client_id if entry else "",
                    key="text_client_id",
                )
        padding = st.radio(
            "Padding",
            list(ripe.PADDING_MODES),
            horizontal=True,
            help="`zero` interoperates with legacy peers but only handles null-free text.",
            key="text_padding",
        )

    else:
        rsa_keys = list_rsa_keys()
        if not rsa_keys:
            st.info("No RSA keys stored yet. Generate or import one in the **Keys** tab.")
        else:
            options = {k.key_id: f"{k.name}  ({k.key_size}-bit)" for k in rsa_keys}
            selected_rsa_id = st.selectbox(
                "Select RSA Key",
                options.keys(),
                format_func=lambda kid: options[kid],
                key="text_rsa_key",
            )
            rsa_entry = get_rsa_key(selected_rsa_id) if selected_rsa_id else None
            if operation == "Decrypt" and rsa_entry and not rsa_entry.private_pem:
                st.warning("This key has no private key, so decryption is not possible.")

    # ---- Input area ----
    st.markdown("---")

    if operation == "Encrypt":
        input_text = st.text_area(
            "Plaintext",
            height=200,
            placeholder="Enter text to encrypt…",
            key="text_input_encrypt",
        )
    else:
        label = "Envelope" if key_mode == "AES Envelope" else "Ciphertext (Base64)"
        input_text = st.text_area(
            label,
            height=200,
            placeholder=f"Paste {label.lower()}…",
            key="text_input_decrypt",
        )

    if input_text:
        n_bytes = len(input_text.encode("utf-8"))
        caption = f"{len(input_text):,} chars  |  {n_bytes:,} bytes"
        if key_mode == "RSA Key" and operation == "Encrypt" and selected_rsa_id:
            rsa_entry = get_rsa_key(selected_rsa_id)
            if rsa_entry:
                max_size, fits = payload_capacity(rsa_entry.key_size, n_bytes)
                caption += f"  |  limit {max_size:,} bytes" + ("" if fits else " (too large)")
        st.caption(caption)

    # ---- Action button ----
    btn_label = "🔒 Encrypt" if operation == "Encrypt" else "🔓 Decrypt"
    if st.button(btn_label, type="primary", use_container_width=True, key="text_action"):
        if not input_text:
            st.error("Please enter some text first.")
            return

        try:
            if operation == "Encrypt":
                result = _do_encrypt(
                    input_text, key_mode, selected_key_id, selected_rsa_id, client_id, padding
                )
                st.success("Encryption successful!")
                st.text_area("Encrypted Output", value=result, height=200, key="text_output_display")
                if key_mode == "AES Envelope":
                    _render_envelope_details(result)
            else:
                plaintext = _do_decrypt(
                    input_text, key_mode, selected_key_id, selected_rsa_id, padding
                )
                st.success("Decryption successful!")
                try:
                    decoded = plaintext.decode("utf-8")
                    st.text_area("Decrypted Output", value=decoded, height=200, key="text_output_display")
                except UnicodeDecodeError:
                    st.warning("Decrypted data is not valid UTF-8 text. Showing as Base64.")
                    st.text_area(
                        "Decrypted Output (Base64)",
                        value=ripe.base64_encode(plaintext),
                        height=200,
                        key="text_output_display",
                    )

        except ripe.DecryptFailedError as e:
            st.error(f"Decryption failed: {e}")
        except ripe.BadKeyError as e:
            st.error(f"Invalid key: {e}")
        except ripe.TooLargeError as e:
            st.error(f"Payload too large: {e}")
        except ripe.EncodingMismatchError as e:
            st.error(f"Format error: {e}")
        except ripe.RipeError as e:
            st.error(f"Error: {e}")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _render_envelope_details(wire: str) -> None:
    """Show the fields of a freshly built envelope."""
    envelope = ripe.parse_envelope(wire)
    cols = st.columns(3)
    cols[0].metric("Length prefix", envelope.length)
    cols[1].code(envelope.iv_hex, language=None)
    cols[2].code(envelope.client_id or "(no client id)", language=None)


def _do_encrypt(
    plaintext_str: str,
    key_mode: str,
    key_id: str | None,
    rsa_id: str | None,
    client_id: str,
    padding: str,
) -> str:
    """Encrypt plaintext string and return the wire text."""
    pt = plaintext_str.encode("utf-8")

    if key_mode == "AES Envelope":
        if not key_id:
            raise ripe.BadKeyError("No key selected.")
        return ripe.prepare_data(pt, get_aes_key_bytes(key_id), client_id.strip(), padding=padding)

    if not rsa_id:
        raise ripe.BadKeyError("No RSA key selected.")
    entry = get_rsa_key(rsa_id)
    if not entry:
        raise ripe.BadKeyError("RSA key not found.")
    return ripe.base64_encode(ripe.encrypt_rsa(pt, entry.public_pem))


def _do_decrypt(
    wire: str,
    key_mode: str,
    key_id: str | None,
    rsa_id: str | None,
    padding: str,
) -> bytes:
    """Decrypt wire text and return plaintext bytes."""
    if key_mode == "AES Envelope":
        if not key_id:
            raise ripe.BadKeyError("No key selected.")
        return ripe.open_envelope(wire, get_aes_key_bytes(key_id), padding=padding)

    if not rsa_id:
        raise ripe.BadKeyError("No RSA key selected.")
    entry = get_rsa_key(rsa_id)
    if not entry:
        raise ripe.BadKeyError("RSA key not found.")
    if not entry.private_pem:
        raise ripe.BadKeyError("No private key available for decryption.")
    return ripe.decrypt_rsa(ripe.base64_decode(wire), entry.private_pem)
