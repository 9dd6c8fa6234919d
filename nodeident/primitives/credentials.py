"""
NodeIdent: Credential Primitives

Key algorithms, key pairs, validity windows and node identifiers. These are
created once per invocation and never mutated afterwards.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from pydantic import ConfigDict, model_validator

from nodeident.errors import UnsupportedAlgorithm
from nodeident.primitives.common import NodeIdentBaseModel

PrivateKey = Union[ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey, rsa.RSAPrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey, rsa.RSAPublicKey]


# ─── Enums ────────────────────────────────────────────────────────


class KeyAlgorithm(str, enum.Enum):
    ECDSA_P256 = "ecdsa-p256"
    ED25519 = "ed25519"
    RSA_2048 = "rsa-2048"

    @classmethod
    def parse(cls, value: str | KeyAlgorithm) -> KeyAlgorithm:
        """Accept enum members or their names/values, case-insensitively."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if normalized in (member.value, member.name.lower().replace("_", "-")):
                return member
        raise UnsupportedAlgorithm(f"unsupported key algorithm '{value}'")


# ─── Key Pair ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class KeyPair:
    """An asymmetric signing key pair. The private half never leaves memory
    except through CredentialWriter."""

    private_key: PrivateKey
    algorithm: KeyAlgorithm

    @property
    def public_key(self) -> PublicKey:
        return self.private_key.public_key()

    @property
    def public_key_bytes(self) -> bytes:
        """DER SubjectPublicKeyInfo of the public half."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def private_key_pem(self) -> bytes:
        return self.pem_for(self.private_key)

    @staticmethod
    def pem_for(private_key: PrivateKey) -> bytes:
        """Unencrypted PKCS#8 PEM."""
        return private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    @classmethod
    def from_private_key(cls, private_key: PrivateKey) -> KeyPair:
        """Wrap a loaded private key, inferring its algorithm."""
        if isinstance(private_key, ed25519.Ed25519PrivateKey):
            return cls(private_key=private_key, algorithm=KeyAlgorithm.ED25519)
        if isinstance(private_key, ec.EllipticCurvePrivateKey):
            if isinstance(private_key.curve, ec.SECP256R1):
                return cls(private_key=private_key, algorithm=KeyAlgorithm.ECDSA_P256)
            raise UnsupportedAlgorithm(f"unsupported curve '{private_key.curve.name}'")
        if isinstance(private_key, rsa.RSAPrivateKey):
            if private_key.key_size == 2048:
                return cls(private_key=private_key, algorithm=KeyAlgorithm.RSA_2048)
            raise UnsupportedAlgorithm(f"unsupported RSA key size {private_key.key_size}")
        raise UnsupportedAlgorithm(f"unsupported key type {type(private_key).__name__}")


# ─── Validity ─────────────────────────────────────────────────────


class CertificateValidity(NodeIdentBaseModel):
    not_before: datetime
    not_after: datetime

    @model_validator(mode="after")
    def _check_window(self) -> CertificateValidity:
        if self.not_before.tzinfo is None or self.not_after.tzinfo is None:
            raise ValueError("validity timestamps must be timezone-aware")
        if self.not_after <= self.not_before:
            raise ValueError("not_after must be later than not_before")
        return self


# ─── Node Identifier ──────────────────────────────────────────────


class NodeIdentifier(NodeIdentBaseModel):
    """
    Checksummed identifier of a node's public key.

    ``raw_hash`` is the digest of the certificate's SubjectPublicKeyInfo,
    ``checksum`` the short tag over ``raw_hash``, and ``textual`` the
    prefixed base58 rendering of both.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    raw_hash: bytes
    checksum: bytes
    textual: str

    def __str__(self) -> str:
        return self.textual
