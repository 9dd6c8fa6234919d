#!/usr/bin/env python3
"""
Stand-alone node ID deriver used as the "second implementation" in the
compatibility scenario. Standard library only, no code shared with
nodeident: it parses the PEM, walks the DER itself, and hashes.

Usage: independent_deriver.py <cert-input-path>
"""

import base64
import hashlib
import sys

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def pem_body(text):
    lines = text.strip().splitlines()
    if not lines or lines[0] != "-----BEGIN CERTIFICATE-----":
        raise ValueError("not a PEM certificate")
    body = []
    for line in lines[1:]:
        if line == "-----END CERTIFICATE-----":
            return base64.b64decode("".join(body), validate=True)
        body.append(line.strip())
    raise ValueError("unterminated PEM certificate")


def element(buf, off):
    tag, first, pos = buf[off], buf[off + 1], off + 2
    if first & 0x80:
        n = first & 0x7F
        length = int.from_bytes(buf[pos:pos + n], "big")
        pos += n
    else:
        length = first
    if pos + length > len(buf):
        raise ValueError("truncated DER")
    return tag, off, pos, pos + length


def elements(buf, start, end):
    out = []
    while start < end:
        item = element(buf, start)
        out.append(item)
        start = item[3]
    return out


def spki_of(der):
    _, _, cert_start, cert_end = element(der, 0)
    tbs = elements(der, cert_start, cert_end)[0]
    fields = elements(der, tbs[2], tbs[3])
    if fields[0][0] == 0xA0:
        fields = fields[1:]
    _, start, _, end = fields[5]
    return der[start:end]


def base58(data):
    n = int.from_bytes(data, "big")
    out = ""
    while n:
        n, r = divmod(n, 58)
        out = ALPHABET[r] + out
    return "1" * (len(data) - len(data.lstrip(b"\x00"))) + out


def main(argv):
    if len(argv) != 2:
        sys.stderr.write("usage: independent_deriver.py <cert-input-path>\n")
        return 2
    try:
        with open(argv[1]) as f:
            der = pem_body(f.read())
        spki = spki_of(der)
    except (OSError, ValueError, IndexError) as exc:
        sys.stderr.write("malformed certificate: %s\n" % exc)
        return 1
    raw = hashlib.sha256(spki).digest()
    print("NodeID-" + base58(raw + hashlib.sha256(raw).digest()[-4:]))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
