"""
NodeIdent: Checksummed Text Encodings

CB58 is base58 (Bitcoin alphabet) over ``payload || checksum`` where the
checksum is the trailing 4 bytes of SHA-256(payload). The hex variant uses
the same checksum with a ``0x``-prefixed hex body.

Known vectors:
  b""                 -> "45PJLL"
  b"\\x00"             -> "1c7hwa"
  bytes(0..9) + 0xff  -> "1NVSVezva3bAtJesnUj"
"""

from __future__ import annotations

import hashlib
import hmac

from nodeident.errors import ChecksumMismatch, EncodingError

CHECKSUM_LENGTH = 4

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {ch: i for i, ch in enumerate(BASE58_ALPHABET)}


# ─── Checksum ─────────────────────────────────────────────────────


def checksum(data: bytes) -> bytes:
    """Trailing ``CHECKSUM_LENGTH`` bytes of SHA-256(data)."""
    return hashlib.sha256(data).digest()[-CHECKSUM_LENGTH:]


def _split_and_verify(decoded: bytes) -> bytes:
    if len(decoded) < CHECKSUM_LENGTH:
        raise EncodingError(
            f"decoded length {len(decoded)} shorter than checksum length {CHECKSUM_LENGTH}"
        )
    payload = decoded[:-CHECKSUM_LENGTH]
    embedded = decoded[-CHECKSUM_LENGTH:]
    expected = checksum(payload)
    if not hmac.compare_digest(embedded, expected):
        raise ChecksumMismatch(expected=expected, actual=embedded)
    return payload


# ─── Base58 ───────────────────────────────────────────────────────


def b58encode(data: bytes) -> str:
    """Base58-encode ``data``; each leading zero byte becomes a leading '1'."""
    stripped = data.lstrip(b"\x00")
    leading = len(data) - len(stripped)

    n = int.from_bytes(stripped, "big")
    digits: list[str] = []
    while n:
        n, rem = divmod(n, 58)
        digits.append(BASE58_ALPHABET[rem])

    return BASE58_ALPHABET[0] * leading + "".join(reversed(digits))


def b58decode(text: str) -> bytes:
    """Inverse of :func:`b58encode`. Raises EncodingError on foreign characters."""
    n = 0
    for pos, ch in enumerate(text):
        try:
            n = n * 58 + _BASE58_INDEX[ch]
        except KeyError:
            raise EncodingError(
                f"failed to decode base58: invalid character {ch!r} at position {pos}"
            ) from None

    stripped = text.lstrip(BASE58_ALPHABET[0])
    leading = len(text) - len(stripped)
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    return b"\x00" * leading + body


# ─── CB58 ─────────────────────────────────────────────────────────


def encode_cb58_with_checksum(data: bytes) -> str:
    return b58encode(data + checksum(data))


def decode_cb58_with_checksum(text: str) -> bytes:
    """Decode CB58 text and return the payload with its checksum verified."""
    return _split_and_verify(b58decode(text))


# ─── Hex ──────────────────────────────────────────────────────────


def encode_hex_with_checksum(data: bytes) -> str:
    return "0x" + (data + checksum(data)).hex()


def decode_hex_with_checksum(text: str) -> bytes:
    body = text[2:] if text[:2] in ("0x", "0X") else text
    try:
        decoded = bytes.fromhex(body)
    except ValueError as exc:
        raise EncodingError(f"failed to decode hex: {exc}") from exc
    return _split_and_verify(decoded)
