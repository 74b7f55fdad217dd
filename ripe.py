"""
Ripe Encryption/Decryption Engine
==================================

Hybrid message envelope built from:
- AES-256-CBC symmetric encryption with a normalized 32-byte key
- RSA PKCS#1 v1.5 encryption for small payloads (e.g. wrapping AES keys)
- A compact, length-prefixed textual wire format

Uses the ``cryptography`` library for every primitive.

Wire format
-----------
::

    <payloadLength>:<ivHex>[:<clientId>]:<base64Ciphertext>

    payloadLength     decimal character count of everything after the first ':'
    ivHex             32 lowercase hex characters (16-byte IV)
    clientId          optional printable token without ':' (omitted with its ':')
    base64Ciphertext  standard alphabet, no line wrapping

Padding modes
-------------
``PADDING_PKCS7`` (default) round-trips any byte string.  ``PADDING_ZERO``
zero-extends the plaintext to the block size and truncates the decrypted
output at the first zero byte; it interoperates with legacy peers but only
round-trips null-free text.
"""

from __future__ import annotations

import base64
import binascii
import logging
import math
import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION: str = "1.0.0"

KEY_SIZE: int = 32        # AES-256 = 32 bytes
AES_BLOCK_SIZE: int = 16  # AES block = CBC IV size
IV_SIZE: int = AES_BLOCK_SIZE
IV_HEX_LENGTH: int = IV_SIZE * 2
BITS_PER_BYTE: int = 8

PKCS1_PADDING_OVERHEAD: int = 11  # RSA PKCS#1 v1.5
RSA_3: int = 3
DEFAULT_PUBLIC_EXPONENT: int = 65537
DEFAULT_RSA_BITS: int = 2048

PADDING_PKCS7: str = "pkcs7"
PADDING_ZERO: str = "zero"
PADDING_MODES: Tuple[str, ...] = (PADDING_PKCS7, PADDING_ZERO)

DELIMITER: str = ":"

_HEX_TOKEN = re.compile(r"[0-9a-fA-F]{1,2}")
_IV_HEX = re.compile(r"[0-9a-fA-F]{%d}" % IV_HEX_LENGTH)

BytesLike = Union[bytes, bytearray, str]

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RipeError(Exception):
    """Base exception for all Ripe errors."""


class BadKeyError(RipeError):
    """Key material is unparsable or inconsistent."""


class TooLargeError(RipeError):
    """Plaintext exceeds the RSA block capacity of the key."""


class GenerationFailedError(RipeError):
    """RSA key-pair generation failed."""


class DecryptFailedError(RipeError):
    """The primitive rejected the ciphertext (malformed input or bad padding)."""


class EncodingMismatchError(RipeError):
    """Malformed envelope: wrong IV length, missing delimiter, bad base64."""


# ---------------------------------------------------------------------------
# Envelope record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Envelope:
    """A parsed wire envelope (the ciphertext stays base64-encoded)."""

    iv_hex: str
    ciphertext_b64: str
    client_id: str = ""

    @property
    def payload(self) -> str:
        """Everything after the length prefix."""
        parts = [self.iv_hex]
        if self.client_id:
            parts.append(self.client_id)
        parts.append(self.ciphertext_b64)
        return DELIMITER.join(parts)

    @property
    def length(self) -> int:
        return len(self.payload)

    def to_string(self) -> str:
        return f"{self.length}{DELIMITER}{self.payload}"


# ---------------------------------------------------------------------------
# Small coercion helpers
# ---------------------------------------------------------------------------


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    raise TypeError(f"Expected bytes or str, got {type(data).__name__}.")


def _check_padding(mode: str) -> None:
    if mode not in PADDING_MODES:
        raise ValueError(
            f"Unknown padding mode {mode!r} (expected one of {PADDING_MODES})."
        )


def _aes_cipher(key: BytesLike, iv: bytes) -> Cipher:
    """Build an AES-256-CBC cipher after checking the IV size."""
    if len(iv) != IV_SIZE:
        raise EncodingMismatchError(
            f"IV must be exactly {IV_SIZE} bytes (got {len(iv)})."
        )
    return Cipher(algorithms.AES(RipeEngine.normalize_aes_key(key)), modes.CBC(iv))


# ---------------------------------------------------------------------------
# RipeEngine
# ---------------------------------------------------------------------------


class RipeEngine:
    """
    High-level encryption / decryption engine.

    All public methods are **static**; the class is a namespace that the
    module-level functions below are bound to.
    """

    # ------------------------------------------------------------------
    # Keys & codecs
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_aes_key(key: BytesLike) -> bytes:
        """
        Turn arbitrary key material into exactly ``KEY_SIZE`` bytes.

        Shorter input is zero-filled, longer input is truncated.  Neither is
        an error, so callers wanting full strength must supply 32 bytes of
        real entropy.
        """
        raw = _as_bytes(key)
        if len(raw) > KEY_SIZE:
            logger.warning(
                "AES key is %d bytes; only the first %d are used", len(raw), KEY_SIZE
            )
        elif len(raw) < KEY_SIZE:
            logger.debug("AES key is %d bytes; zero-filled to %d", len(raw), KEY_SIZE)
        return raw[:KEY_SIZE].ljust(KEY_SIZE, b"\x00")

    @staticmethod
    def generate_key() -> bytes:
        """Generate a cryptographically secure random 256-bit key."""
        return os.urandom(KEY_SIZE)

    @staticmethod
    def key_from_hex(h: str) -> bytes:
        """Decode hex key material (any length; normalization happens later)."""
        try:
            return bytes.fromhex(h.strip())
        except (ValueError, AttributeError) as exc:
            raise BadKeyError("Invalid hex key encoding.") from exc

    @staticmethod
    def base64_encode(data: BytesLike) -> str:
        """Standard-alphabet base64 without line wrapping."""
        return base64.b64encode(_as_bytes(data)).decode("ascii")

    @staticmethod
    def base64_decode(text: BytesLike) -> bytes:
        """Strict base64 decode; embedded whitespace is ignored."""
        compact = b"".join(_as_bytes(text).split())
        try:
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise EncodingMismatchError("Payload is not valid base64.") from exc

    # ------------------------------------------------------------------
    # Initialization vectors
    # ------------------------------------------------------------------

    @staticmethod
    def generate_iv() -> bytes:
        """Fresh 16-byte IV from the OS CSPRNG (thread-safe)."""
        return os.urandom(IV_SIZE)

    @staticmethod
    def iv_to_hex(iv: bytes) -> str:
        """Render a 16-byte IV as 32 lowercase hex characters."""
        if len(iv) != IV_SIZE:
            raise EncodingMismatchError(
                f"IV must be exactly {IV_SIZE} bytes (got {len(iv)})."
            )
        return bytes(iv).hex()

    @staticmethod
    def normalize_iv(iv_hex: str) -> Optional[str]:
        """
        Convert a condensed 32-char hex IV into spaced hex (``"ab cd ef ..."``).

        Returns ``None`` when the input is not exactly 32 characters long.
        """
        if len(iv_hex) != IV_HEX_LENGTH:
            return None
        return " ".join(iv_hex[i : i + 2] for i in range(0, IV_HEX_LENGTH, 2))

    @staticmethod
    def iv_to_bytes(spaced_hex: str) -> bytes:
        """
        Parse whitespace-separated hex byte tokens.

        Parsing stops at the first token that is not a one- or two-digit hex
        value (ASCII digits and letters only, no sign), so the result may be
        shorter than 16 bytes.
        """
        out = bytearray()
        for token in spaced_hex.split():
            if not _HEX_TOKEN.fullmatch(token):
                break
            out.append(int(token, 16))
        return bytes(out)

    @staticmethod
    def iv_from_hex(iv_hex: str) -> bytes:
        """Decode a 32-char hex IV into its 16 raw bytes."""
        spaced = RipeEngine.normalize_iv(iv_hex)
        if spaced is None:
            raise EncodingMismatchError(
                f"IV must be {IV_HEX_LENGTH} hex characters (got {len(iv_hex)})."
            )
        iv = RipeEngine.iv_to_bytes(spaced)
        if not _IV_HEX.fullmatch(iv_hex) or len(iv) != IV_SIZE:
            raise EncodingMismatchError(f"IV is not valid hex: {iv_hex!r}.")
        return iv

    # ------------------------------------------------------------------
    # AES-256-CBC
    # ------------------------------------------------------------------

    @staticmethod
    def encrypt_aes(
        plaintext: BytesLike,
        key: BytesLike,
        *,
        padding: str = PADDING_PKCS7,
    ) -> Tuple[bytes, bytes]:
        """
        Encrypt *plaintext* with AES-256-CBC under a fresh IV.

        Returns ``(ciphertext, iv)``.  The ciphertext length is always a
        multiple of 16 and never shorter than the plaintext.
        """
        _check_padding(padding)
        data = _as_bytes(plaintext)
        if padding == PADDING_PKCS7:
            padder = sym_padding.PKCS7(AES_BLOCK_SIZE * BITS_PER_BYTE).padder()
            data = padder.update(data) + padder.finalize()
        else:
            data += b"\x00" * (-len(data) % AES_BLOCK_SIZE)

        iv = RipeEngine.generate_iv()
        encryptor = _aes_cipher(key, iv).encryptor()
        return encryptor.update(data) + encryptor.finalize(), iv

    @staticmethod
    def decrypt_aes(
        ciphertext: bytes,
        key: BytesLike,
        iv: bytes,
        *,
        padding: str = PADDING_PKCS7,
    ) -> bytes:
        """
        Decrypt AES-256-CBC *ciphertext* with *key* and the IV used to encrypt.

        Raises
        ------
        EncodingMismatchError
            If the IV is not 16 bytes or the ciphertext is not block aligned.
        DecryptFailedError
            If PKCS#7 padding is invalid (usually a wrong key or IV).
        """
        _check_padding(padding)
        if len(ciphertext) % AES_BLOCK_SIZE != 0:
            raise EncodingMismatchError(
                f"Ciphertext length {len(ciphertext)} is not a multiple of "
                f"{AES_BLOCK_SIZE}."
            )
        decryptor = _aes_cipher(key, iv).decryptor()
        data = decryptor.update(bytes(ciphertext)) + decryptor.finalize()

        if padding == PADDING_ZERO:
            return data.split(b"\x00", 1)[0]
        unpadder = sym_padding.PKCS7(AES_BLOCK_SIZE * BITS_PER_BYTE).unpadder()
        try:
            return unpadder.update(data) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptFailedError(
                "Invalid padding: wrong key, wrong IV or corrupted data."
            ) from exc

    # ------------------------------------------------------------------
    # RSA keys
    # ------------------------------------------------------------------

    @staticmethod
    def max_rsa_block_size(key_bits: int) -> int:
        """Largest plaintext an RSA key of *key_bits* can take with PKCS#1."""
        return key_bits // BITS_PER_BYTE - PKCS1_PADDING_OVERHEAD

    @staticmethod
    def load_public_key(pem: BytesLike) -> RSAPublicKey:
        """
        Load an RSA public key from PEM.

        Both the PKCS#1 ``RSA PUBLIC KEY`` and the X.509 SubjectPublicKeyInfo
        ``PUBLIC KEY`` blocks are accepted.
        """
        try:
            key = serialization.load_pem_public_key(_as_bytes(pem))
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            logger.error("Failed to read RSA public key: %s", exc)
            raise BadKeyError("Failed to read RSA public key.") from exc
        if not isinstance(key, RSAPublicKey):
            raise BadKeyError("PEM does not contain an RSA public key.")
        return key

    @staticmethod
    def load_private_key(
        pem: BytesLike,
        passphrase: Optional[str] = None,
    ) -> RSAPrivateKey:
        """
        Load an RSA private key from PEM (PKCS#1 or PKCS#8).

        The key is validated with :meth:`check_rsa_key`; an inconsistent key
        is logged but still returned so decryption can be attempted.
        """
        pwd = passphrase.encode("utf-8") if passphrase else None
        try:
            key = serialization.load_pem_private_key(
                _as_bytes(pem),
                password=pwd,
                unsafe_skip_rsa_key_validation=True,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            logger.error("Unexpected error while reading private key: %s", exc)
            raise BadKeyError("Failed to read RSA private key.") from exc
        if not isinstance(key, RSAPrivateKey):
            raise BadKeyError("PEM does not contain an RSA private key.")
        if not RipeEngine.check_rsa_key(key):
            logger.error(
                "Failed to validate RSA key. Please check length and exponent value"
            )
        return key

    @staticmethod
    def check_rsa_key(private_key: RSAPrivateKey) -> bool:
        """Check that modulus, exponents and CRT factors agree."""
        nums = private_key.private_numbers()
        pub = nums.public_numbers
        p, q, d = nums.p, nums.q, nums.d
        if p * q != pub.n:
            return False
        lam = math.lcm(p - 1, q - 1)
        if (pub.e * d) % lam != 1:
            return False
        return (
            nums.dmp1 == d % (p - 1)
            and nums.dmq1 == d % (q - 1)
            and (nums.iqmp * q) % p == 1
        )

    @staticmethod
    def generate_rsa_keypair(
        key_bits: int = DEFAULT_RSA_BITS,
        public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
    ) -> Tuple[str, str]:
        """
        Generate an RSA key pair and return ``(private_pem, public_pem)``.

        The private half is PKCS#1 ``RSA PRIVATE KEY``, the public half is
        SubjectPublicKeyInfo ``PUBLIC KEY``.
        """
        logger.info(
            "Generating key pair that can encrypt %d bytes",
            RipeEngine.max_rsa_block_size(key_bits),
        )
        try:
            private_key = rsa.generate_private_key(
                public_exponent=public_exponent,
                key_size=key_bits,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            logger.error("Could not generate RSA key: %s", exc)
            raise GenerationFailedError(f"Could not generate RSA key: {exc}") from exc

        if not RipeEngine.check_rsa_key(private_key):
            logger.error("Failed to validate RSA key pair")

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return private_pem.decode("ascii"), public_pem.decode("ascii")

    # ------------------------------------------------------------------
    # RSA PKCS#1 v1.5 encrypt / decrypt
    # ------------------------------------------------------------------

    @staticmethod
    def encrypt_rsa(plaintext: BytesLike, public_pem: BytesLike) -> bytes:
        """
        Encrypt *plaintext* with an RSA public key in PEM form.

        The output is exactly the key's byte length.

        Raises
        ------
        BadKeyError
            If the PEM cannot be parsed.
        TooLargeError
            If the plaintext exceeds :meth:`max_rsa_block_size` for the key.
        """
        data = _as_bytes(plaintext)
        public_key = RipeEngine.load_public_key(public_pem)
        max_size = RipeEngine.max_rsa_block_size(public_key.key_size)
        if len(data) > max_size:
            raise TooLargeError(
                f"Data size should not exceed {max_size} bytes. "
                f"You have {len(data)} bytes"
            )
        return public_key.encrypt(data, asym_padding.PKCS1v15())

    @staticmethod
    def decrypt_rsa(
        ciphertext: bytes,
        private_pem: BytesLike,
        passphrase: Optional[str] = None,
    ) -> bytes:
        """
        Decrypt PKCS#1 v1.5 *ciphertext* with an RSA private key in PEM form.

        Raises
        ------
        BadKeyError
            If the PEM cannot be parsed.
        DecryptFailedError
            If the ciphertext does not fit the key (e.g. wrong length).

        A wrong private key or corrupted padding is not guaranteed to raise:
        OpenSSL 3.2+ applies implicit rejection and returns random bytes
        instead.  Callers that need to detect a wrong key must check the
        result themselves.
        """
        private_key = RipeEngine.load_private_key(private_pem, passphrase)
        try:
            return private_key.decrypt(bytes(ciphertext), asym_padding.PKCS1v15())
        except ValueError as exc:
            logger.error("Failed to decrypt: %s", exc)
            raise DecryptFailedError(f"RSA decryption failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Wire envelope
    # ------------------------------------------------------------------

    @staticmethod
    def prepare_data(
        plaintext: BytesLike,
        key: BytesLike,
        client_id: str = "",
        *,
        padding: str = PADDING_PKCS7,
    ) -> str:
        """
        Encrypt *plaintext* and serialize it as a length-prefixed envelope.

        ``<len>:<ivHex>[:<clientId>]:<base64Ciphertext>``
        """
        if client_id and (DELIMITER in client_id or not client_id.isprintable()):
            raise EncodingMismatchError(
                "Client id must be printable and must not contain ':'."
            )
        ciphertext, iv = RipeEngine.encrypt_aes(plaintext, key, padding=padding)
        envelope = Envelope(
            iv_hex=RipeEngine.iv_to_hex(iv),
            ciphertext_b64=RipeEngine.base64_encode(ciphertext),
            client_id=client_id,
        )
        return envelope.to_string()

    @staticmethod
    def parse_envelope(text: str) -> Envelope:
        """
        Split a wire string into its fields without decrypting.

        The leading length prefix is optional.  When present it must equal
        the length of the remaining payload.
        """
        text = text.strip()
        head, sep, rest = text.partition(DELIMITER)
        if not sep:
            raise EncodingMismatchError("Missing ':' delimiter after the IV.")

        # A 32-digit IV can look numeric; it only counts as a prefix on a match
        if head.isascii() and head.isdigit():
            matches = int(head) == len(rest)
            if not matches and len(head) != IV_HEX_LENGTH:
                raise EncodingMismatchError(
                    f"Length prefix {head} does not match payload length {len(rest)}."
                )
            if matches:
                head, sep, rest = rest.partition(DELIMITER)
                if not sep:
                    raise EncodingMismatchError("Missing ':' delimiter after the IV.")

        if len(head) != IV_HEX_LENGTH:
            raise EncodingMismatchError(
                f"IV segment must be {IV_HEX_LENGTH} hex characters (got {len(head)})."
            )
        RipeEngine.iv_from_hex(head)

        client_id, sep, body = rest.partition(DELIMITER)
        if not sep:
            client_id, body = "", rest
        return Envelope(iv_hex=head.lower(), ciphertext_b64=body, client_id=client_id)

    @staticmethod
    def open_envelope(
        text: str,
        key: BytesLike,
        iv: Optional[Union[str, bytes]] = None,
        *,
        padding: str = PADDING_PKCS7,
    ) -> bytes:
        """
        Decrypt a wire envelope produced by :meth:`prepare_data`.

        With an explicit *iv* (32-char hex or 16 raw bytes) *text* is taken
        to be the bare base64 ciphertext.  Any client id is ignored.
        """
        if iv is None:
            envelope = RipeEngine.parse_envelope(text)
            iv_bytes = RipeEngine.iv_from_hex(envelope.iv_hex)
            body = envelope.ciphertext_b64
        elif isinstance(iv, str):
            iv_bytes = RipeEngine.iv_from_hex(iv.strip())
            body = text
        else:
            iv_bytes = bytes(iv)
            body = text
        ciphertext = RipeEngine.base64_decode(body)
        return RipeEngine.decrypt_aes(ciphertext, key, iv_bytes, padding=padding)


def version() -> str:
    return VERSION


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

_engine = RipeEngine

normalize_aes_key = _engine.normalize_aes_key
generate_key = _engine.generate_key
key_from_hex = _engine.key_from_hex
base64_encode = _engine.base64_encode
base64_decode = _engine.base64_decode

generate_iv = _engine.generate_iv
iv_to_hex = _engine.iv_to_hex
normalize_iv = _engine.normalize_iv
iv_to_bytes = _engine.iv_to_bytes
iv_from_hex = _engine.iv_from_hex

encrypt_aes = _engine.encrypt_aes
decrypt_aes = _engine.decrypt_aes

max_rsa_block_size = _engine.max_rsa_block_size
load_public_key = _engine.load_public_key
load_private_key = _engine.load_private_key
check_rsa_key = _engine.check_rsa_key
generate_rsa_keypair = _engine.generate_rsa_keypair
encrypt_rsa = _engine.encrypt_rsa
decrypt_rsa = _engine.decrypt_rsa

prepare_data = _engine.prepare_data
parse_envelope = _engine.parse_envelope
open_envelope = _engine.open_envelope


# ---------------------------------------------------------------------------
# Self-test (run with: python ripe.py)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import sys

    passed = 0
    failed = 0

    def _test(name: str, fn):
        global passed, failed
        try:
            fn()
            print(f"  [PASS] {name}")
            passed += 1
        except Exception as exc:
            print(f"  [FAIL] {name}: {exc}")
            failed += 1

    print("=" * 60)
    print(f"Ripe {version()} Self-Test")
    print("=" * 60)

    def test_normalize():
        assert normalize_aes_key(b"abc") == b"abc" + b"\x00" * 29
        assert normalize_aes_key(b"x" * 40) == b"x" * 32

    _test("Key normalization pads and truncates", test_normalize)

    def test_iv_hex():
        iv = generate_iv()
        assert iv_from_hex(iv_to_hex(iv)) == iv

    _test("IV hex round-trip", test_iv_hex)

    def test_envelope():
        key = "0123456789abcdef0123456789abcdef"
        wire = prepare_data("hello world", key, "client1")
        assert open_envelope(wire, key) == b"hello world"

    _test("Envelope prepare -> open", test_envelope)

    def test_rsa():
        priv, pub = generate_rsa_keypair(2048)
        assert decrypt_rsa(encrypt_rsa(b"RSA payload", pub), priv) == b"RSA payload"

    _test("RSA encrypt -> decrypt", test_rsa)

    print("\n" + "=" * 60)
    print(f"Results: {passed}/{passed + failed} passed, {failed} failed")
    print("=" * 60)
    sys.exit(1 if failed else 0)
