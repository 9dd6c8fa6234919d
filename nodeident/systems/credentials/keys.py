"""
NodeIdent: Key Pair Generation

Randomness is an injected capability rather than ambient state: the
generator draws private scalars and seeds from a ``RandomnessProvider``.
Production uses ``secrets.token_bytes``; tests pass a fixed-seed double to
get reproducible keys.
"""

from __future__ import annotations

import secrets
from typing import Callable

import structlog
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from nodeident.errors import UnsupportedAlgorithm
from nodeident.primitives.credentials import KeyAlgorithm, KeyPair

logger = structlog.get_logger("nodeident.credentials.keys")

RandomnessProvider = Callable[[int], bytes]
"""``provider(n)`` returns ``n`` uniformly random bytes."""

# Order of the NIST P-256 base point.
_P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

_RSA_KEY_SIZE = 2048
_RSA_PUBLIC_EXPONENT = 65537


def system_randomness(n: int) -> bytes:
    return secrets.token_bytes(n)


class KeyPairGenerator:
    """
    Generates signing key pairs for the supported algorithms.

    ECDSA-P256 and Ed25519 keys are derived entirely from provider bytes.
    RSA prime search happens inside OpenSSL, which uses its own CSPRNG, so
    the provider is not consulted for RSA-2048.
    """

    def __init__(self, randomness: RandomnessProvider | None = None) -> None:
        self._randomness: RandomnessProvider = randomness or system_randomness
        self._logger = logger.bind(component="key_pair_generator")

    @property
    def randomness(self) -> RandomnessProvider:
        return self._randomness

    def generate(self, algorithm: KeyAlgorithm | str = KeyAlgorithm.ECDSA_P256) -> KeyPair:
        algo = KeyAlgorithm.parse(algorithm)

        if algo is KeyAlgorithm.ECDSA_P256:
            private_key = ec.derive_private_key(self._p256_scalar(), ec.SECP256R1())
        elif algo is KeyAlgorithm.ED25519:
            private_key = ed25519.Ed25519PrivateKey.from_private_bytes(self._draw(32))
        elif algo is KeyAlgorithm.RSA_2048:
            private_key = rsa.generate_private_key(
                public_exponent=_RSA_PUBLIC_EXPONENT,
                key_size=_RSA_KEY_SIZE,
            )
        else:  # pragma: no cover - parse() rejects everything else
            raise UnsupportedAlgorithm(f"unsupported key algorithm '{algo}'")

        self._logger.debug("key_pair_generated", algorithm=algo.value)
        return KeyPair(private_key=private_key, algorithm=algo)

    # ─── Internals ──────────────────────────────────────────────────

    def _draw(self, n: int) -> bytes:
        data = self._randomness(n)
        if len(data) != n:
            raise ValueError(f"randomness provider returned {len(data)} bytes, wanted {n}")
        return data

    def _p256_scalar(self) -> int:
        # Rejection sampling keeps the scalar uniform over [1, n).
        while True:
            candidate = int.from_bytes(self._draw(32), "big")
            if 1 <= candidate < _P256_ORDER:
                return candidate
