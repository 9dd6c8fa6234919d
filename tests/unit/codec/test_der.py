"""
Unit tests for the DER walker used to lift SubjectPublicKeyInfo out of
certificates.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization

from nodeident.codec.der import extract_spki_from_tbs, read_tlv
from nodeident.errors import EncodingError
from nodeident.primitives.credentials import KeyAlgorithm


class TestReadTLV:
    def test_short_form_length(self):
        tlv = read_tlv(b"\x04\x03abc")
        assert (tlv.tag, tlv.value_start, tlv.end) == (0x04, 2, 5)

    def test_long_form_length(self):
        data = b"\x04\x81\x80" + bytes(128)
        tlv = read_tlv(data)
        assert tlv.value_start == 3
        assert tlv.end == 131

    def test_indefinite_length_rejected(self):
        with pytest.raises(EncodingError, match="indefinite"):
            read_tlv(b"\x30\x80\x00\x00")

    def test_overrun_rejected(self):
        with pytest.raises(EncodingError, match="past end"):
            read_tlv(b"\x04\x05ab")

    def test_truncated_header(self):
        with pytest.raises(EncodingError, match="truncated"):
            read_tlv(b"\x30")


class TestExtractSPKI:
    @pytest.mark.parametrize("algorithm", list(KeyAlgorithm))
    def test_matches_key_encoding(self, generator, builder, algorithm):
        pair = generator.generate(algorithm)
        cert = builder.build(pair)
        spki = extract_spki_from_tbs(cert.x509.tbs_certificate_bytes)
        expected = pair.public_key.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        assert spki == expected

    def test_not_a_sequence(self):
        with pytest.raises(EncodingError, match="not a SEQUENCE"):
            extract_spki_from_tbs(b"\x04\x00")

    def test_too_few_fields(self):
        with pytest.raises(EncodingError, match="too few fields"):
            extract_spki_from_tbs(b"\x30\x06\x02\x01\x01\x02\x01\x02")
