"""
HybridSeal — ASN.1 / DER Key Codec
===================================

A minimal DER walker and writer for the two RSA key containers exchanged
by HybridSeal peers.  No general ASN.1 support is attempted: only the tags
listed below, definite lengths, and long-form lengths of up to 4 octets.

Structures
----------
::

    SubjectPublicKeyInfo ::= SEQUENCE {
        algorithm        AlgorithmIdentifier,     -- skipped
        subjectPublicKey BIT STRING {             -- 0 unused bits
            RSAPublicKey ::= SEQUENCE { modulus INTEGER, publicExponent INTEGER }
        }
    }

    PrivateKeyInfo ::= SEQUENCE {
        version             INTEGER,              -- skipped
        privateKeyAlgorithm AlgorithmIdentifier,  -- skipped
        privateKey          OCTET STRING {
            RSAPrivateKey ::= SEQUENCE {
                version, modulus, publicExponent, privateExponent,
                prime1, prime2, exponent1, exponent2, coefficient
            }
        }
    }

Every read re-checks the bytes remaining in the enclosing element, so a
truncated or lying length raises :class:`DecodeError` instead of reading
past the buffer.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional

from .errors import DecodeError
from .models import PrivateKey, PublicKey

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TAG_INTEGER: int = 0x02
TAG_BIT_STRING: int = 0x03
TAG_OCTET_STRING: int = 0x04
TAG_SEQUENCE: int = 0x30

MAX_LENGTH_OCTETS: int = 4  # long-form lengths up to 2**32 - 1
PEM_LINE_WIDTH: int = 64

# SEQUENCE { OID 1.2.840.113549.1.1.1 (rsaEncryption), NULL }
RSA_ALGORITHM_IDENTIFIER: bytes = bytes.fromhex("300d06092a864886f70d0101010500")

_TAG_NAMES = {
    TAG_INTEGER: "INTEGER",
    TAG_BIT_STRING: "BIT STRING",
    TAG_OCTET_STRING: "OCTET STRING",
    TAG_SEQUENCE: "SEQUENCE",
}


def _tag_name(tag: int) -> str:
    return _TAG_NAMES.get(tag, f"0x{tag:02x}")


# ---------------------------------------------------------------------------
# Integer helpers
# ---------------------------------------------------------------------------


def unsigned_from_bytes(content: bytes) -> int:
    """
    Interpret DER INTEGER content as an unsigned big-endian number.

    DER pads a positive value with a leading zero when its top bit is set;
    content whose top bit is set without that pad is still read as unsigned,
    as though a zero byte had been prepended.
    """
    if content[0] & 0x80:
        content = b"\x00" + content
    return int.from_bytes(content, "big")


def unsigned_to_bytes(value: int) -> bytes:
    """Minimal DER INTEGER content for a non-negative *value*."""
    if value < 0:
        raise ValueError("Only unsigned integers are supported.")
    body = value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")
    if body[0] & 0x80:
        body = b"\x00" + body
    return body


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------


class DerReader:
    """
    Cursor over a DER buffer bounded to ``[offset, end)``.

    Nested readers returned by :meth:`enter` share the underlying buffer, so
    offsets in error messages are always absolute.
    """

    def __init__(self, data: bytes, offset: int = 0, end: Optional[int] = None) -> None:
        self.data = bytes(data)
        self.offset = offset
        self.end = len(self.data) if end is None else end

    @property
    def remaining(self) -> int:
        return self.end - self.offset

    def at_end(self) -> bool:
        return self.offset >= self.end

    def expect_end(self) -> None:
        if self.offset != self.end:
            raise DecodeError(
                f"{self.remaining} unexpected trailing byte(s)", offset=self.offset
            )

    # -- low level --------------------------------------------------------

    def _read_length(self, element_start: int, tag: int) -> int:
        pos = self.offset
        if pos >= self.end:
            raise DecodeError(
                f"Truncated length for {_tag_name(tag)}",
                offset=element_start,
                expected_tag=tag,
            )
        first = self.data[pos]
        if first < 0x80:
            self.offset = pos + 1
            return first

        count = first & 0x7F
        if count == 0:
            raise DecodeError("Indefinite length is not valid DER", offset=pos)
        if count > MAX_LENGTH_OCTETS:
            raise DecodeError(
                f"Length uses {count} octets, at most {MAX_LENGTH_OCTETS} supported",
                offset=pos,
            )
        if pos + 1 + count > self.end:
            raise DecodeError(
                f"Truncated long-form length for {_tag_name(tag)}",
                offset=element_start,
                expected_tag=tag,
            )
        self.offset = pos + 1 + count
        return int.from_bytes(self.data[pos + 1 : pos + 1 + count], "big")

    def _read_header(self, tag: int) -> int:
        start = self.offset
        if start >= self.end:
            raise DecodeError(
                f"Unexpected end of data, wanted {_tag_name(tag)}",
                offset=start,
                expected_tag=tag,
            )
        found = self.data[start]
        if found != tag:
            raise DecodeError(
                f"Tag mismatch: found {_tag_name(found)}, wanted {_tag_name(tag)}",
                offset=start,
                expected_tag=tag,
            )
        self.offset = start + 1
        length = self._read_length(start, tag)
        if length > self.end - self.offset:
            raise DecodeError(
                f"{_tag_name(tag)} claims {length} bytes but only "
                f"{self.end - self.offset} remain",
                offset=start,
                expected_tag=tag,
            )
        return length

    # -- element access ---------------------------------------------------

    def read(self, tag: int) -> bytes:
        """Read one element with *tag* and return its content octets."""
        length = self._read_header(tag)
        content = self.data[self.offset : self.offset + length]
        self.offset += length
        return content

    def skip(self, tag: int) -> None:
        length = self._read_header(tag)
        self.offset += length

    def enter(self, tag: int) -> "DerReader":
        """Return a reader over the content of the next element, and step past it."""
        length = self._read_header(tag)
        inner = DerReader(self.data, self.offset, self.offset + length)
        self.offset += length
        return inner

    def read_integer(self) -> int:
        start = self.offset
        content = self.read(TAG_INTEGER)
        if not content:
            raise DecodeError("Empty INTEGER", offset=start, expected_tag=TAG_INTEGER)
        return unsigned_from_bytes(content)

    def enter_bit_string(self) -> "DerReader":
        """Enter a BIT STRING that wraps DER content (0 unused bits)."""
        start = self.offset
        inner = self.enter(TAG_BIT_STRING)
        if inner.at_end():
            raise DecodeError("Empty BIT STRING", offset=start, expected_tag=TAG_BIT_STRING)
        unused = inner.data[inner.offset]
        if unused != 0:
            raise DecodeError(
                f"BIT STRING has {unused} unused bits, expected 0",
                offset=inner.offset,
            )
        inner.offset += 1
        return inner


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def encode_length(length: int) -> bytes:
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    if len(body) > MAX_LENGTH_OCTETS:
        raise ValueError(f"Length {length} does not fit in {MAX_LENGTH_OCTETS} octets.")
    return bytes([0x80 | len(body)]) + body


def encode_element(tag: int, content: bytes) -> bytes:
    return bytes([tag]) + encode_length(len(content)) + content


def encode_integer(value: int) -> bytes:
    return encode_element(TAG_INTEGER, unsigned_to_bytes(value))


def encode_sequence(*elements: bytes) -> bytes:
    return encode_element(TAG_SEQUENCE, b"".join(elements))


# ---------------------------------------------------------------------------
# Asn1KeyCodec
# ---------------------------------------------------------------------------


class Asn1KeyCodec:
    """
    Decode / encode RSA keys to and from DER.

    All methods are static; the class is a namespace, mirroring the
    module-level aliases below.
    """

    @staticmethod
    def decode_public_key(der: bytes) -> PublicKey:
        """
        Decode a DER SubjectPublicKeyInfo.

        Raises
        ------
        DecodeError
            On any structural violation.
        """
        top = DerReader(der)
        spki = top.enter(TAG_SEQUENCE)
        top.expect_end()
        spki.skip(TAG_SEQUENCE)  # AlgorithmIdentifier
        rsa_key = spki.enter_bit_string().enter(TAG_SEQUENCE)
        modulus = rsa_key.read_integer()
        exponent = rsa_key.read_integer()
        if modulus == 0 or exponent == 0:
            raise DecodeError("RSA public key has a zero component")
        return PublicKey(modulus, exponent)

    @staticmethod
    def decode_private_key(der: bytes) -> PrivateKey:
        """
        Decode a DER PKCS#8 PrivateKeyInfo wrapping an RSAPrivateKey.

        Raises
        ------
        DecodeError
            On any structural violation.
        """
        top = DerReader(der)
        info = top.enter(TAG_SEQUENCE)
        top.expect_end()
        info.skip(TAG_INTEGER)   # version
        info.skip(TAG_SEQUENCE)  # AlgorithmIdentifier
        rsa_key = info.enter(TAG_OCTET_STRING).enter(TAG_SEQUENCE)
        rsa_key.skip(TAG_INTEGER)  # version
        modulus = rsa_key.read_integer()
        rsa_key.skip(TAG_INTEGER)  # publicExponent
        private_exponent = rsa_key.read_integer()
        prime1 = rsa_key.read_integer()
        prime2 = rsa_key.read_integer()
        for _ in range(3):  # exponent1, exponent2, coefficient
            rsa_key.skip(TAG_INTEGER)
        if 0 in (modulus, private_exponent, prime1, prime2):
            raise DecodeError("RSA private key has a zero component")
        return PrivateKey(modulus, private_exponent, prime1, prime2)

    @staticmethod
    def encode_public_key(key: PublicKey) -> bytes:
        """Encode *key* as a DER SubjectPublicKeyInfo."""
        rsa_key = encode_sequence(
            encode_integer(key.modulus),
            encode_integer(key.public_exponent),
        )
        return encode_sequence(
            RSA_ALGORITHM_IDENTIFIER,
            encode_element(TAG_BIT_STRING, b"\x00" + rsa_key),
        )

    @staticmethod
    def encode_private_key(key: PrivateKey) -> bytes:
        """Encode *key* as a DER PKCS#8 PrivateKeyInfo, deriving the CRT fields."""
        rsa_key = encode_sequence(
            encode_integer(0),
            encode_integer(key.modulus),
            encode_integer(key.public_exponent),
            encode_integer(key.private_exponent),
            encode_integer(key.prime1),
            encode_integer(key.prime2),
            encode_integer(key.exponent1),
            encode_integer(key.exponent2),
            encode_integer(key.coefficient),
        )
        return encode_sequence(
            encode_integer(0),
            RSA_ALGORITHM_IDENTIFIER,
            encode_element(TAG_OCTET_STRING, rsa_key),
        )


# ---------------------------------------------------------------------------
# PEM armor
# ---------------------------------------------------------------------------

_PEM_RE = re.compile(
    r"-----BEGIN (?P<label>[^-]+)-----(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)


def armor(der: bytes, label: str) -> str:
    """Wrap *der* in PEM markers with 64-character base64 lines."""
    b64 = base64.b64encode(der).decode("ascii")
    lines = [b64[i : i + PEM_LINE_WIDTH] for i in range(0, len(b64), PEM_LINE_WIDTH)]
    return f"-----BEGIN {label}-----\n" + "\n".join(lines) + f"\n-----END {label}-----"


def b64decode_strict(text: str, what: str = "data") -> bytes:
    """Decode standard base64 after dropping whitespace; reject anything else."""
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Malformed base64 in {what}.") from exc


def dearmor(text: str, label: str) -> bytes:
    """
    Extract the DER payload of the first PEM block labelled *label*.

    Raises
    ------
    DecodeError
        If no such block exists or its body is not valid base64.
    """
    for match in _PEM_RE.finditer(text):
        if match.group("label").strip() == label:
            der = b64decode_strict(match.group("body"), f"PEM {label}")
            if not der:
                raise DecodeError(f"PEM {label} block is empty.")
            return der
    raise DecodeError(f"No PEM {label} block found.")


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

decode_public_key = Asn1KeyCodec.decode_public_key
decode_private_key = Asn1KeyCodec.decode_private_key
encode_public_key = Asn1KeyCodec.encode_public_key
encode_private_key = Asn1KeyCodec.encode_private_key
