"""
Ripe command-line tool
======================

Thin argparse front end over :mod:`ripe`::

    ripe genkey
    ripe aes-encrypt --key K [--client-id ID] --message "hello"
    ripe aes-decrypt --key K --message "<envelope>"
    ripe keygen --public pub.pem --private priv.pem --bits 2048
    ripe rsa-encrypt --key pub.pem --message "short secret"
    ripe rsa-decrypt --key priv.pem --input secret.b64

The log level comes from ``--verbose`` / ``--quiet`` or the
``RIPE_LOG_LEVEL`` environment variable (default ``WARNING``).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Union

import ripe

logger = logging.getLogger("ripe.cli")

LOG_LEVEL_ENV = "RIPE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_rsa_keypair(
    public_path: Union[str, Path],
    private_path: Union[str, Path],
    key_bits: int = ripe.DEFAULT_RSA_BITS,
    public_exponent: int = ripe.DEFAULT_PUBLIC_EXPONENT,
) -> None:
    """Generate a key pair and save both PEM halves."""
    private_pem, public_pem = ripe.generate_rsa_keypair(key_bits, public_exponent)
    Path(private_path).write_text(private_pem)
    Path(public_path).write_text(public_pem)
    logger.info("Successfully saved!")


def rsa_keypair_string(
    key_bits: int = ripe.DEFAULT_RSA_BITS,
    public_exponent: int = ripe.DEFAULT_PUBLIC_EXPONENT,
) -> str:
    """Generate a key pair as ``base64(private_pem):base64(public_pem)``."""
    private_pem, public_pem = ripe.generate_rsa_keypair(key_bits, public_exponent)
    return ripe.base64_encode(private_pem) + ":" + ripe.base64_encode(public_pem)


def read_message(args: argparse.Namespace) -> bytes:
    """Read message from CLI input."""
    if args.message is not None:
        return args.message.encode("utf-8")

    if args.input:
        return Path(args.input).read_bytes()

    return sys.stdin.buffer.read()


def write_output(data: Union[bytes, str], args: argparse.Namespace) -> None:
    """Write output to file or stdout."""
    if isinstance(data, str):
        data = data.encode("utf-8") if args.output else (data + "\n").encode("utf-8")
    if args.output:
        Path(args.output).write_bytes(data)
    else:
        sys.stdout.flush()
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def _aes_key(args: argparse.Namespace) -> bytes:
    if args.hex_key:
        return ripe.key_from_hex(args.key)
    return args.key.encode("utf-8")


# ---------------------------------------------------------------------------
# CLI Commands
# ---------------------------------------------------------------------------


def cmd_genkey(args: argparse.Namespace) -> None:
    print(ripe.generate_key().hex())


def cmd_aes_encrypt(args: argparse.Namespace) -> None:
    key = _aes_key(args)
    message = read_message(args)

    if args.output:
        # Raw ciphertext goes to the file, the IV to stdout
        ciphertext, iv = ripe.encrypt_aes(message, key, padding=args.padding)
        Path(args.output).write_bytes(ciphertext)
        print(f"IV: {ripe.iv_to_hex(iv)}")
        return

    print(ripe.prepare_data(message, key, args.client_id, padding=args.padding))


def cmd_aes_decrypt(args: argparse.Namespace) -> None:
    key = _aes_key(args)
    data = read_message(args)

    if args.raw:
        if not args.iv:
            raise ripe.EncodingMismatchError("--raw input requires --iv.")
        plaintext = ripe.decrypt_aes(
            data, key, ripe.iv_from_hex(args.iv), padding=args.padding
        )
    else:
        try:
            text = data.decode("ascii")
        except UnicodeDecodeError as exc:
            raise ripe.EncodingMismatchError("Envelope must be ASCII text.") from exc
        plaintext = ripe.open_envelope(text.strip(), key, args.iv, padding=args.padding)
    write_output(plaintext, args)


def cmd_rsa_encrypt(args: argparse.Namespace) -> None:
    public_pem = Path(args.key).read_bytes()
    message = read_message(args)
    ciphertext = ripe.encrypt_rsa(message, public_pem)
    write_output(ripe.base64_encode(ciphertext), args)


def cmd_rsa_decrypt(args: argparse.Namespace) -> None:
    private_pem = Path(args.key).read_bytes()
    data = read_message(args)
    if not args.raw:
        data = ripe.base64_decode(data)
    plaintext = ripe.decrypt_rsa(data, private_pem, passphrase=args.passphrase)
    write_output(plaintext, args)


def cmd_keygen(args: argparse.Namespace) -> None:
    if bool(args.public) != bool(args.private):
        raise SystemExit("keygen: --public and --private must be given together")
    if args.public:
        write_rsa_keypair(args.public, args.private, args.bits, args.exponent)
    else:
        print(rsa_keypair_string(args.bits, args.exponent))


# ---------------------------------------------------------------------------
# CLI Definition
# ---------------------------------------------------------------------------


def _add_io(p: argparse.ArgumentParser) -> None:
    p.add_argument("--message", help="message string")
    p.add_argument("--input", help="input filename (default: stdin)")
    p.add_argument("--output", help="output filename (default: stdout)")


def _add_aes_key(p: argparse.ArgumentParser) -> None:
    p.add_argument("--key", required=True, help="shared AES key material")
    p.add_argument("--hex-key", action="store_true", help="--key is hex encoded")
    p.add_argument(
        "--padding",
        choices=ripe.PADDING_MODES,
        default=ripe.PADDING_PKCS7,
        help="block padding (zero = legacy null-terminated text)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ripe",
        description="AES-256-CBC / RSA message envelopes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {ripe.version()}")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="errors only")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("genkey", help="print a random 256-bit AES key as hex")
    p.set_defaults(func=cmd_genkey)

    p = sub.add_parser("aes-encrypt", help="encrypt into a wire envelope")
    _add_aes_key(p)
    _add_io(p)
    p.add_argument("--client-id", default="", help="client identifier to embed")
    p.set_defaults(func=cmd_aes_encrypt)

    p = sub.add_parser("aes-decrypt", help="decrypt a wire envelope")
    _add_aes_key(p)
    _add_io(p)
    p.add_argument("--iv", help="explicit 32-char hex IV (input is then bare ciphertext)")
    p.add_argument("--raw", action="store_true", help="input is raw ciphertext, not base64")
    p.set_defaults(func=cmd_aes_decrypt)

    p = sub.add_parser("rsa-encrypt", help="encrypt with an RSA public key")
    p.add_argument("--key", required=True, help="public key PEM filename")
    _add_io(p)
    p.set_defaults(func=cmd_rsa_encrypt)

    p = sub.add_parser("rsa-decrypt", help="decrypt with an RSA private key")
    p.add_argument("--key", required=True, help="private key PEM filename")
    p.add_argument("--passphrase", help="private key passphrase, if encrypted")
    _add_io(p)
    p.add_argument("--raw", action="store_true", help="input is raw, not base64")
    p.set_defaults(func=cmd_rsa_decrypt)

    p = sub.add_parser("keygen", help="generate an RSA key pair")
    p.add_argument("--public", help="public key output filename")
    p.add_argument("--private", help="private key output filename")
    p.add_argument("--bits", type=int, default=ripe.DEFAULT_RSA_BITS, help="key length")
    p.add_argument(
        "--exponent",
        type=int,
        default=ripe.DEFAULT_PUBLIC_EXPONENT,
        help=f"public exponent ({ripe.RSA_3} or {ripe.DEFAULT_PUBLIC_EXPONENT})",
    )
    p.set_defaults(func=cmd_keygen)

    return parser


def configure_logging(args: argparse.Namespace) -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "WARNING"
    if args.verbose:
        level = "DEBUG"
    elif args.quiet:
        level = "ERROR"
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args)
    try:
        args.func(args)
    except ripe.RipeError as exc:
        logger.error("%s", exc)
        return 1
    except OSError as exc:
        logger.error("Unable to open [%s]: %s", exc.filename, exc.strerror)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
