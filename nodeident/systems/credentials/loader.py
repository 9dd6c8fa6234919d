"""
NodeIdent: Credential Loader

Reads PEM credentials back from disk. Filesystem failures become
CredentialIOError. An unparseable certificate is MalformedCertificate; an
unparseable private key is EncodingError.
"""

from __future__ import annotations

from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm as _CryptoUnsupported
from cryptography.hazmat.primitives import serialization

from nodeident.errors import CredentialIOError, EncodingError
from nodeident.primitives.credentials import KeyPair
from nodeident.systems.credentials.certificate import Certificate


def read_bytes(path: str | Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise CredentialIOError(f"failed to read file: {exc}", str(path)) from exc


def load_certificate(cert_path: str | Path) -> Certificate:
    return Certificate.from_pem(read_bytes(cert_path))


def load_key_pair(key_path: str | Path) -> KeyPair:
    data = read_bytes(key_path)
    try:
        private_key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, _CryptoUnsupported) as exc:
        raise EncodingError(f"failed to parse private key {key_path}: {exc}") from exc
    return KeyPair.from_private_key(private_key)  # type: ignore[arg-type]
