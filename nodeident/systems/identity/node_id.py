"""
NodeIdent: Node Identity Derivation

The node identifier is the only thing two independent implementations must
agree on byte-for-byte, so the scheme is pinned here as constants:

  spki      = DER SubjectPublicKeyInfo as embedded in the certificate
  raw_hash  = SHA-256(spki)                       (32 bytes)
  checksum  = SHA-256(raw_hash)[-4:]              (4 bytes)
  textual   = "NodeID-" + base58(raw_hash || checksum)

Hashing the whole SPKI rather than the bare key material keeps keys of
different types from colliding trivially. Identifiers are recomputed on
every request and never cached.
"""

from __future__ import annotations

import hashlib
import hmac
from pathlib import Path

import structlog

from nodeident.codec.cb58 import (
    CHECKSUM_LENGTH,
    b58decode,
    b58encode,
    checksum as compute_checksum,
    decode_cb58_with_checksum,
)
from nodeident.errors import ChecksumMismatch, EncodingError, MalformedNodeIdentifier
from nodeident.primitives.credentials import NodeIdentifier
from nodeident.systems.credentials.certificate import Certificate
from nodeident.systems.credentials.loader import load_certificate

logger = structlog.get_logger("nodeident.identity.node_id")

NODE_ID_PREFIX = "NodeID-"
NODE_ID_HASH = "sha256"
RAW_HASH_LENGTH = hashlib.new(NODE_ID_HASH).digest_size


def hash_public_key_info(spki: bytes) -> bytes:
    return hashlib.new(NODE_ID_HASH, spki).digest()


def identifier_from_raw_hash(raw_hash: bytes) -> NodeIdentifier:
    """Render a raw hash as a NodeIdentifier. The checksum is always recomputed."""
    if len(raw_hash) != RAW_HASH_LENGTH:
        raise MalformedNodeIdentifier(
            f"raw hash must be {RAW_HASH_LENGTH} bytes, got {len(raw_hash)}"
        )
    tag = compute_checksum(raw_hash)
    return NodeIdentifier(
        raw_hash=raw_hash,
        checksum=tag,
        textual=NODE_ID_PREFIX + b58encode(raw_hash + tag),
    )


class NodeIdentityDeriver:
    """Computes node identifiers from certificates."""

    def __init__(self) -> None:
        self._logger = logger.bind(component="node_identity_deriver")

    def derive(self, certificate: Certificate) -> NodeIdentifier:
        """
        Derive the identifier for ``certificate``.

        Raises MalformedCertificate if its public-key encoding cannot be
        parsed.
        """
        spki = certificate.public_key_bytes
        node_id = identifier_from_raw_hash(hash_public_key_info(spki))
        self._logger.debug("node_id_derived", node_id=node_id.textual)
        return node_id

    def derive_from_pem(self, data: bytes) -> NodeIdentifier:
        return self.derive(Certificate.from_pem(data))

    def derive_from_file(self, cert_path: str | Path) -> NodeIdentifier:
        node_id = self.derive(load_certificate(cert_path))
        self._logger.info("node_id_loaded", path=str(cert_path), node_id=node_id.textual)
        return node_id


# ─── Decoding ─────────────────────────────────────────────────────


def parse_node_id(textual: str) -> NodeIdentifier:
    """
    Decode and validate a textual node identifier.

    Raises MalformedNodeIdentifier on a missing prefix, bad characters or
    wrong length, and ChecksumMismatch when the embedded checksum does not
    match the decoded raw hash.
    """
    if not isinstance(textual, str) or not textual.startswith(NODE_ID_PREFIX):
        raise MalformedNodeIdentifier(f"node ID must start with '{NODE_ID_PREFIX}': {textual!r}")

    body = textual[len(NODE_ID_PREFIX):]
    try:
        decoded = b58decode(body)
    except EncodingError as exc:
        raise MalformedNodeIdentifier(str(exc)) from exc

    if len(decoded) != RAW_HASH_LENGTH + CHECKSUM_LENGTH:
        raise MalformedNodeIdentifier(
            f"decoded node ID is {len(decoded)} bytes, expected "
            f"{RAW_HASH_LENGTH + CHECKSUM_LENGTH}"
        )

    raw_hash = decoded[:RAW_HASH_LENGTH]
    embedded = decoded[RAW_HASH_LENGTH:]
    expected = compute_checksum(raw_hash)
    if not hmac.compare_digest(embedded, expected):
        raise ChecksumMismatch(expected=expected, actual=embedded)

    return NodeIdentifier(raw_hash=raw_hash, checksum=embedded, textual=textual)


def decode_peer_node_id(textual: str) -> bytes:
    """
    Validate a node ID published by another node and return its payload.

    Peers on an existing network may use a shorter short-ID payload than the
    identifiers derived here, so only the prefix and the CB58 checksum are
    checked. Raises MalformedNodeIdentifier or ChecksumMismatch.
    """
    if not isinstance(textual, str) or not textual.startswith(NODE_ID_PREFIX):
        raise MalformedNodeIdentifier(f"node ID must start with '{NODE_ID_PREFIX}': {textual!r}")

    try:
        payload = decode_cb58_with_checksum(textual[len(NODE_ID_PREFIX):])
    except EncodingError as exc:
        raise MalformedNodeIdentifier(str(exc)) from exc

    if not payload:
        raise MalformedNodeIdentifier(f"node ID carries an empty payload: {textual!r}")
    return payload


def is_valid_node_id(textual: str) -> bool:
    try:
        parse_node_id(textual)
    except (MalformedNodeIdentifier, ChecksumMismatch):
        return False
    return True
