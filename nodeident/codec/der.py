"""
NodeIdent: Minimal DER Walker

Just enough ASN.1 DER reading to lift the SubjectPublicKeyInfo out of a
TBSCertificate byte-for-byte, without re-encoding it. Re-encoding through a
key object would normalize the point format and hide what the certificate
actually carries.
"""

from __future__ import annotations

from typing import NamedTuple

from nodeident.errors import EncodingError

TAG_SEQUENCE = 0x30
TAG_CONTEXT_0 = 0xA0


class TLV(NamedTuple):
    tag: int
    start: int          # offset of the tag byte
    value_start: int    # offset of the first content byte
    end: int            # offset one past the last content byte


def read_tlv(data: bytes, offset: int = 0) -> TLV:
    """Read one DER TLV header at ``offset`` and bound its contents."""
    if offset + 2 > len(data):
        raise EncodingError(f"truncated DER header at offset {offset}")

    tag = data[offset]
    if tag & 0x1F == 0x1F:
        raise EncodingError(f"high-tag-number form not supported (offset {offset})")

    first = data[offset + 1]
    pos = offset + 2
    if first < 0x80:
        length = first
    elif first == 0x80:
        raise EncodingError("indefinite length is not valid DER")
    else:
        n = first & 0x7F
        if n > 4 or pos + n > len(data):
            raise EncodingError(f"bad DER length of {n} octets at offset {offset}")
        length = int.from_bytes(data[pos:pos + n], "big")
        pos += n

    end = pos + length
    if end > len(data):
        raise EncodingError(
            f"DER element at offset {offset} runs past end of input ({end} > {len(data)})"
        )
    return TLV(tag=tag, start=offset, value_start=pos, end=end)


def children(data: bytes, parent: TLV) -> list[TLV]:
    """Direct children of a constructed element."""
    items: list[TLV] = []
    pos = parent.value_start
    while pos < parent.end:
        item = read_tlv(data, pos)
        if item.end > parent.end:
            raise EncodingError("child element overruns its parent")
        items.append(item)
        pos = item.end
    return items


def extract_spki_from_tbs(tbs: bytes) -> bytes:
    """
    Return the raw SubjectPublicKeyInfo TLV from DER TBSCertificate bytes.

    TBSCertificate ::= SEQUENCE {
        version [0] EXPLICIT OPTIONAL, serialNumber, signature,
        issuer, validity, subject, subjectPublicKeyInfo, ... }
    """
    outer = read_tlv(tbs)
    if outer.tag != TAG_SEQUENCE:
        raise EncodingError(f"TBSCertificate is not a SEQUENCE (tag 0x{outer.tag:02x})")

    fields = children(tbs, outer)
    if fields and fields[0].tag == TAG_CONTEXT_0:
        fields = fields[1:]

    # serialNumber, signature, issuer, validity, subject precede the SPKI.
    if len(fields) < 6:
        raise EncodingError("TBSCertificate has too few fields")

    spki = fields[5]
    if spki.tag != TAG_SEQUENCE:
        raise EncodingError(f"SubjectPublicKeyInfo is not a SEQUENCE (tag 0x{spki.tag:02x})")
    return tbs[spki.start:spki.end]
