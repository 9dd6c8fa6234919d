"""
NodeIdent: Error Taxonomy

Every failure the credential pipeline can surface. None of these are
retried: each one means a configuration defect or corrupted input, so the
current invocation stops and the caller reports it.
"""

from __future__ import annotations


class NodeIdentError(Exception):
    """Root of all NodeIdent errors."""


class ConfigurationError(NodeIdentError, ValueError):
    """The YAML/env configuration failed validation."""


class UnsupportedAlgorithm(NodeIdentError, ValueError):
    """The requested key algorithm is not one we can generate."""


class EncodingError(NodeIdentError, ValueError):
    """A value could not be represented in the target encoding."""


class CredentialIOError(NodeIdentError, OSError):
    """Filesystem failure while reading or writing credential files."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        message = self.args[0] if self.args else ""
        return f"{message} ({self.path})" if self.path else str(message)


class MalformedCertificate(NodeIdentError, ValueError):
    """The certificate, or its public-key encoding, cannot be parsed."""


class MalformedNodeIdentifier(NodeIdentError, ValueError):
    """A textual node identifier has the wrong shape."""


class ChecksumMismatch(NodeIdentError, ValueError):
    """Embedded checksum does not match the one recomputed from the payload."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        super().__init__(
            f"invalid checksum {actual.hex()} != {expected.hex()}"
        )
        self.expected = expected
        self.actual = actual


class CompatibilityMismatch(NodeIdentError):
    """Two node identity implementations disagree, or one of them failed."""

    def __init__(self, message: str, local: str = "", remote: str = "") -> None:
        super().__init__(message)
        self.local = local
        self.remote = remote
