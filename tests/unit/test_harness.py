"""
Unit tests for the compatibility harness.

External derivers are stood in for by short ``python -c`` programs so that
each failure mode can be produced on demand.
"""

from __future__ import annotations

import sys

import pytest

from nodeident.config import HarnessConfig
from nodeident.errors import CompatibilityMismatch, CredentialIOError
from nodeident.harness import CompatibilityHarness, default_deriver_command

# Reads the certificate with `cryptography` directly and re-derives the ID
# using only hashlib and integer arithmetic.
_INLINE_DERIVER = """
import hashlib, sys
from cryptography import x509
from cryptography.hazmat.primitives import serialization
cert = x509.load_pem_x509_certificate(open(sys.argv[1], 'rb').read())
spki = cert.public_key().public_bytes(
    serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
raw = hashlib.sha256(spki).digest()
data = raw + hashlib.sha256(raw).digest()[-4:]
alphabet = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'
n, out = int.from_bytes(data, 'big'), ''
while n:
    n, r = divmod(n, 58)
    out = alphabet[r] + out
print('some banner line')
print('NodeID-' + '1' * (len(data) - len(data.lstrip(bytes(1)))) + out)
"""


def harness_with(command: list[str], **kwargs) -> CompatibilityHarness:
    return CompatibilityHarness(HarnessConfig(deriver_command=command, **kwargs))


class TestRun:
    def test_agreeing_deriver(self, tmp_path):
        key_path, cert_path = tmp_path / "test.key", tmp_path / "test.cert"
        report = harness_with([sys.executable, "-c", _INLINE_DERIVER, "{cert}"]).run(
            key_path, cert_path,
        )
        assert report.matched
        assert report.local == report.remote
        assert report.cert_path == str(cert_path)

    def test_default_deriver_is_our_cli(self, tmp_path):
        harness = CompatibilityHarness()
        assert harness.command_template == default_deriver_command()
        report = harness.run(tmp_path / "k", tmp_path / "c")
        assert report.matched

    def test_key_placeholder_substituted(self, tmp_path):
        script = "import sys; print(sys.argv[1])"
        harness = harness_with([sys.executable, "-c", script, "{key}"])
        key_path = tmp_path / "k"
        assert harness.run_deriver(key_path, tmp_path / "c") == str(key_path)

    def test_mismatch(self, tmp_path):
        harness = harness_with([sys.executable, "-c", "print('NodeID-11111111')"])
        with pytest.raises(CompatibilityMismatch) as exc_info:
            harness.run(tmp_path / "k", tmp_path / "c")
        assert exc_info.value.remote == "NodeID-11111111"
        assert exc_info.value.local.startswith("NodeID-")

    def test_deriver_failure(self, tmp_path):
        script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
        harness = harness_with([sys.executable, "-c", script])
        with pytest.raises(CompatibilityMismatch, match="exited with 3: boom"):
            harness.run(tmp_path / "k", tmp_path / "c")

    def test_deriver_prints_nothing(self, tmp_path):
        harness = harness_with([sys.executable, "-c", "pass"])
        with pytest.raises(CompatibilityMismatch, match="printed no node ID"):
            harness.run(tmp_path / "k", tmp_path / "c")

    def test_deriver_not_found(self, tmp_path):
        harness = harness_with([str(tmp_path / "no-such-binary")])
        with pytest.raises(CompatibilityMismatch, match="failed to launch"):
            harness.run(tmp_path / "k", tmp_path / "c")

    def test_deriver_timeout(self, tmp_path):
        harness = harness_with(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout_s=0.5,
        )
        with pytest.raises(CompatibilityMismatch, match="timed out"):
            harness.run(tmp_path / "k", tmp_path / "c")


class TestCleanup:
    def test_stale_files_are_replaced(self, tmp_path):
        key_path, cert_path = tmp_path / "k", tmp_path / "c"
        key_path.write_bytes(b"stale key")
        cert_path.write_bytes(b"stale cert")

        harness_with([sys.executable, "-c", _INLINE_DERIVER, "{cert}"]).run(key_path, cert_path)

        assert key_path.read_bytes() != b"stale key"
        assert cert_path.read_bytes() != b"stale cert"

    def test_cleanup_tolerates_missing(self, tmp_path):
        CompatibilityHarness.cleanup(tmp_path / "a", tmp_path / "b")

    def test_cleanup_of_directory_is_credential_error(self, tmp_path):
        occupied = tmp_path / "cert-dir"
        occupied.mkdir()
        with pytest.raises(CredentialIOError, match="failed to remove stale file") as exc_info:
            CompatibilityHarness.cleanup(tmp_path / "k", occupied)
        assert exc_info.value.path == str(occupied)
        assert occupied.is_dir()
