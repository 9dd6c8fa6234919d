"""
NodeIdent: Codecs

Checksummed text encodings shared by node identifiers and any other
identifier that is transcribed by hand.
"""

from nodeident.codec.cb58 import (
    CHECKSUM_LENGTH,
    decode_cb58_with_checksum,
    decode_hex_with_checksum,
    encode_cb58_with_checksum,
    encode_hex_with_checksum,
)

__all__ = [
    "CHECKSUM_LENGTH",
    "decode_cb58_with_checksum",
    "decode_hex_with_checksum",
    "encode_cb58_with_checksum",
    "encode_hex_with_checksum",
]
