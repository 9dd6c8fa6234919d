"""
NodeIdent: Self-Signed Certificates

Builds minimal X.509 v3 certificates whose issuer is their own subject and
whose signature comes from the certified key. The fields are fixed and
insecure: these certificates exist to carry a public key, not to be trusted
by a browser.

The compatibility surface is the SubjectPublicKeyInfo: any conformant
encoder may produce different certificate bytes for the same key pair, but
the SPKI lifted out of them must be byte-identical.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Union

import structlog
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm as _CryptoUnsupported
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from nodeident.codec.der import extract_spki_from_tbs
from nodeident.config import CertificateConfig
from nodeident.errors import EncodingError, MalformedCertificate
from nodeident.primitives.credentials import (
    CertificateValidity,
    KeyAlgorithm,
    KeyPair,
    PublicKey,
)
from nodeident.systems.credentials.keys import RandomnessProvider, system_randomness

logger = structlog.get_logger("nodeident.credentials.certificate")

DEFAULT_COMMON_NAME = "nodeident self signed cert"

# Upper bounds from RFC 5280 Appendix A.
_NAME_LENGTH_LIMITS = {
    NameOID.COMMON_NAME: 64,
    NameOID.ORGANIZATION_NAME: 64,
    NameOID.ORGANIZATIONAL_UNIT_NAME: 64,
    NameOID.LOCALITY_NAME: 128,
    NameOID.STATE_OR_PROVINCE_NAME: 128,
}

_NAME_KEYS = {
    "cn": NameOID.COMMON_NAME,
    "common_name": NameOID.COMMON_NAME,
    "o": NameOID.ORGANIZATION_NAME,
    "organization": NameOID.ORGANIZATION_NAME,
    "ou": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "organizational_unit": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "l": NameOID.LOCALITY_NAME,
    "locality": NameOID.LOCALITY_NAME,
    "st": NameOID.STATE_OR_PROVINCE_NAME,
    "state": NameOID.STATE_OR_PROVINCE_NAME,
    "c": NameOID.COUNTRY_NAME,
    "country": NameOID.COUNTRY_NAME,
}

Subject = Union[str, Mapping[str, str], x509.Name]


# ─── Certificate ──────────────────────────────────────────────────


class Certificate:
    """
    Read-only view over an X.509 certificate.

    Construct through ``from_pem``/``from_der`` when the bytes come from
    outside; both raise MalformedCertificate instead of leaking
    cryptography's parse errors.
    """

    __slots__ = ("_cert",)

    def __init__(self, cert: x509.Certificate) -> None:
        self._cert = cert

    @classmethod
    def from_pem(cls, data: bytes) -> Certificate:
        try:
            return cls(x509.load_pem_x509_certificate(data))
        except ValueError as exc:
            raise MalformedCertificate(f"failed to parse PEM certificate: {exc}") from exc

    @classmethod
    def from_der(cls, data: bytes) -> Certificate:
        try:
            return cls(x509.load_der_x509_certificate(data))
        except ValueError as exc:
            raise MalformedCertificate(f"failed to parse DER certificate: {exc}") from exc

    @property
    def x509(self) -> x509.Certificate:
        return self._cert

    @property
    def serial_number(self) -> int:
        return self._cert.serial_number

    @property
    def subject(self) -> str:
        return self._cert.subject.rfc4514_string()

    @property
    def issuer(self) -> str:
        return self._cert.issuer.rfc4514_string()

    @property
    def not_before(self) -> datetime:
        return self._cert.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self._cert.not_valid_after_utc

    @property
    def signature_algorithm(self) -> str:
        oid = self._cert.signature_algorithm_oid
        return getattr(oid, "_name", None) or oid.dotted_string

    @property
    def signature(self) -> bytes:
        return self._cert.signature

    @property
    def der(self) -> bytes:
        return self._cert.public_bytes(serialization.Encoding.DER)

    @property
    def pem(self) -> bytes:
        return self._cert.public_bytes(serialization.Encoding.PEM)

    @property
    def public_key_bytes(self) -> bytes:
        """
        DER SubjectPublicKeyInfo exactly as embedded in the TBSCertificate.

        Raises MalformedCertificate if the SPKI cannot be located or does not
        load as a public key.
        """
        try:
            spki = extract_spki_from_tbs(self._cert.tbs_certificate_bytes)
        except (EncodingError, ValueError) as exc:
            raise MalformedCertificate(f"cannot locate public key info: {exc}") from exc

        try:
            serialization.load_der_public_key(spki)
        except (ValueError, _CryptoUnsupported) as exc:
            raise MalformedCertificate(f"cannot parse public key info: {exc}") from exc
        return spki

    def public_key(self) -> PublicKey:
        try:
            return self._cert.public_key()  # type: ignore[return-value]
        except (ValueError, _CryptoUnsupported) as exc:
            raise MalformedCertificate(f"cannot parse public key: {exc}") from exc

    def verify_self_signature(self) -> bool:
        """True when issuer == subject and the signature verifies under the
        embedded public key."""
        try:
            self._cert.verify_directly_issued_by(self._cert)
            return True
        except (InvalidSignature, ValueError, TypeError, _CryptoUnsupported):
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Certificate):
            return NotImplemented
        return self.der == other.der

    def __hash__(self) -> int:
        return hash(self.der)

    def __repr__(self) -> str:
        return f"Certificate(subject={self.subject!r}, serial={self.serial_number})"


# ─── Builder ──────────────────────────────────────────────────────


def default_validity() -> CertificateValidity:
    defaults = CertificateConfig()
    return CertificateValidity(not_before=defaults.not_before, not_after=defaults.not_after)


def build_name(subject: Subject) -> x509.Name:
    """
    Turn a common name, an attribute mapping or an ``x509.Name`` into a Name.

    Raises EncodingError for values the X.509 Name format cannot carry.
    """
    if isinstance(subject, x509.Name):
        if len(subject) == 0:
            raise EncodingError("subject name must not be empty")
        return subject

    if isinstance(subject, str):
        pairs: list[tuple[str, str]] = [("cn", subject)]
    elif isinstance(subject, Mapping):
        pairs = list(subject.items())
    else:
        raise EncodingError(f"unsupported subject type {type(subject).__name__}")

    if not pairs:
        raise EncodingError("subject name must not be empty")

    attributes: list[x509.NameAttribute] = []
    for key, value in pairs:
        oid = _NAME_KEYS.get(str(key).lower())
        if oid is None:
            raise EncodingError(f"unknown subject attribute '{key}'")
        attributes.append(_name_attribute(oid, value))
    return x509.Name(attributes)


def _name_attribute(oid: x509.ObjectIdentifier, value: object) -> x509.NameAttribute:
    if not isinstance(value, str):
        raise EncodingError(f"subject attribute {oid._name} must be a string")
    if not value:
        raise EncodingError(f"subject attribute {oid._name} must not be empty")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"subject attribute {oid._name} is not valid UTF-8") from exc

    if oid == NameOID.COUNTRY_NAME and len(value) != 2:
        raise EncodingError("country name must be a two-letter code")
    limit = _NAME_LENGTH_LIMITS.get(oid)
    if limit is not None and len(value) > limit:
        raise EncodingError(
            f"subject attribute {oid._name} longer than {limit} characters ({len(value)})"
        )

    try:
        return x509.NameAttribute(oid, value)
    except ValueError as exc:
        raise EncodingError(f"cannot encode subject attribute {oid._name}: {exc}") from exc


class SelfSignedCertificateBuilder:
    """Builds self-signed certificates for key pairs from KeyPairGenerator."""

    def __init__(self, randomness: RandomnessProvider | None = None) -> None:
        self._randomness: RandomnessProvider = randomness or system_randomness
        self._logger = logger.bind(component="certificate_builder")

    def build(
        self,
        key_pair: KeyPair,
        subject: Subject = DEFAULT_COMMON_NAME,
        validity: CertificateValidity | None = None,
    ) -> Certificate:
        if validity is None:
            validity = default_validity()

        name = build_name(subject)

        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)  # Self-signed
            .public_key(key_pair.public_key)
            .serial_number(self._serial_number())
            .not_valid_before(validity.not_before)
            .not_valid_after(validity.not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key_pair.public_key),
                critical=False,
            )
        )

        # Ed25519 signs the message directly; the others hash with SHA-256.
        algorithm = None if key_pair.algorithm is KeyAlgorithm.ED25519 else hashes.SHA256()
        try:
            cert = builder.sign(key_pair.private_key, algorithm)
        except ValueError as exc:
            raise EncodingError(f"failed to encode certificate: {exc}") from exc

        certificate = Certificate(cert)
        self._logger.info(
            "certificate_built",
            algorithm=key_pair.algorithm.value,
            subject=certificate.subject,
            serial=hex(certificate.serial_number),
        )
        return certificate

    def _serial_number(self) -> int:
        # Positive and at most 159 bits, so it fits RFC 5280's 20-octet limit.
        serial = int.from_bytes(self._randomness(20), "big") >> 1
        return serial or 1
