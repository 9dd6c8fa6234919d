"""
NodeIdent: Credential Service

Runs the generation pipeline end to end:

  KeyPairGenerator -> SelfSignedCertificateBuilder -> CredentialWriter

and the load-or-generate flow a node uses at boot: reuse the credentials on
disk if the key exists, otherwise create them, then derive the node ID from
the certificate that is actually on disk.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from nodeident.config import CertificateConfig
from nodeident.primitives.credentials import (
    CertificateValidity,
    KeyAlgorithm,
    KeyPair,
    NodeIdentifier,
)
from nodeident.systems.credentials.certificate import (
    Certificate,
    SelfSignedCertificateBuilder,
    Subject,
)
from nodeident.systems.credentials.keys import KeyPairGenerator, RandomnessProvider
from nodeident.systems.credentials.writer import CredentialWriter
from nodeident.systems.identity.node_id import NodeIdentityDeriver

logger = structlog.get_logger("nodeident.credentials.service")


class CredentialService:
    """Generates, persists and reloads a node's staking credentials."""

    def __init__(
        self,
        config: CertificateConfig | None = None,
        randomness: RandomnessProvider | None = None,
    ) -> None:
        self._config = config or CertificateConfig()
        self._generator = KeyPairGenerator(randomness)
        self._builder = SelfSignedCertificateBuilder(self._generator.randomness)
        self._writer = CredentialWriter()
        self._deriver = NodeIdentityDeriver()
        self._logger = logger.bind(component="credential_service")

    @property
    def subject(self) -> Subject:
        if self._config.organization:
            return {"cn": self._config.common_name, "o": self._config.organization}
        return self._config.common_name

    @property
    def validity(self) -> CertificateValidity:
        return CertificateValidity(
            not_before=self._config.not_before,
            not_after=self._config.not_after,
        )

    def create(self, algorithm: KeyAlgorithm | str | None = None) -> tuple[KeyPair, Certificate]:
        """Generate a key pair and its self-signed certificate in memory."""
        key_pair = self._generator.generate(algorithm or self._config.algorithm)
        certificate = self._builder.build(key_pair, self.subject, self.validity)
        return key_pair, certificate

    def generate(
        self,
        key_path: str | Path,
        cert_path: str | Path,
        algorithm: KeyAlgorithm | str | None = None,
    ) -> NodeIdentifier:
        """Create fresh credentials, write them, and return their node ID."""
        key_pair, certificate = self.create(algorithm)
        self._writer.write(key_pair, certificate, key_path, cert_path)
        node_id = self._deriver.derive(certificate)
        self._logger.info(
            "credentials_generated",
            key_path=str(key_path),
            cert_path=str(cert_path),
            algorithm=key_pair.algorithm.value,
            node_id=node_id.textual,
        )
        return node_id

    def ensure(
        self,
        key_path: str | Path,
        cert_path: str | Path,
        algorithm: KeyAlgorithm | str | None = None,
    ) -> NodeIdentifier:
        """
        Reuse credentials when the key file exists, otherwise generate them.

        Either way the node ID comes from the certificate file on disk.
        """
        if Path(key_path).exists():
            self._logger.info("credentials_reused", key_path=str(key_path))
        else:
            self._logger.info(
                "credentials_missing_generating", key_path=str(key_path),
            )
            self.generate(key_path, cert_path, algorithm)
        return self._deriver.derive_from_file(cert_path)
