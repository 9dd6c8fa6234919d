"""
Shared fixtures: a fixed-seed randomness double, generated credentials,
and logging cleanup for tests that configure structlog.
"""

from __future__ import annotations

import logging
import random

import pytest
import structlog

from nodeident.primitives.credentials import KeyAlgorithm
from nodeident.systems.credentials.certificate import SelfSignedCertificateBuilder
from nodeident.systems.credentials.keys import KeyPairGenerator


class SeededRandomness:
    """Deterministic stand-in for ``secrets.token_bytes``. Tests only."""

    def __init__(self, seed: int = 0) -> None:
        self._rng = random.Random(seed)
        self.calls: list[int] = []

    def __call__(self, n: int) -> bytes:
        self.calls.append(n)
        return self._rng.randbytes(n)


@pytest.fixture
def seeded():
    return SeededRandomness


@pytest.fixture
def generator():
    return KeyPairGenerator()


@pytest.fixture
def builder():
    return SelfSignedCertificateBuilder()


@pytest.fixture
def p256_pair(generator):
    return generator.generate(KeyAlgorithm.ECDSA_P256)


@pytest.fixture
def p256_cert(builder, p256_pair):
    return builder.build(p256_pair)


@pytest.fixture
def reset_logging():
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
