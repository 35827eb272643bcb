"""
HybridSeal — Data Models
=========================

Key components and the two-field envelope exchanged on the wire.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .errors import DecodeError, InputError


class KeyKind(Enum):
    """Kind of key material handed to the resolver."""

    SYMMETRIC = "symmetric"
    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def pem_label(self) -> str:
        if self is KeyKind.PUBLIC:
            return "PUBLIC KEY"
        if self is KeyKind.PRIVATE:
            return "PRIVATE KEY"
        raise ValueError("Symmetric keys have no PEM label.")


# ---------------------------------------------------------------------------
# RSA key components
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PublicKey:
    """RSA public key as unsigned big-endian integers."""

    modulus: int
    public_exponent: int

    @property
    def size_bytes(self) -> int:
        """Modulus length in bytes (256 for a 2048-bit key)."""
        return (self.modulus.bit_length() + 7) // 8

    def __repr__(self) -> str:
        return f"PublicKey(bits={self.modulus.bit_length()}, e={self.public_exponent})"


@dataclass(frozen=True)
class PrivateKey:
    """
    RSA private key as unsigned big-endian integers.

    Only the modulus, private exponent and the two primes are carried; every
    other PKCS#1 field can be derived from them.
    """

    modulus: int
    private_exponent: int
    prime1: int
    prime2: int

    @property
    def size_bytes(self) -> int:
        return (self.modulus.bit_length() + 7) // 8

    @property
    def public_exponent(self) -> int:
        """
        Recover ``e`` as ``d^-1 mod lcm(p-1, q-1)``.

        Holds whether ``d`` was generated modulo lambda(n) or phi(n), since
        ``e * d == 1`` modulo lambda(n) in both cases.
        """
        lam = math.lcm(self.prime1 - 1, self.prime2 - 1)
        try:
            return pow(self.private_exponent, -1, lam)
        except ValueError as exc:
            raise DecodeError(
                "Private exponent is not invertible; key components are inconsistent."
            ) from exc

    @property
    def exponent1(self) -> int:
        return self.private_exponent % (self.prime1 - 1)

    @property
    def exponent2(self) -> int:
        return self.private_exponent % (self.prime2 - 1)

    @property
    def coefficient(self) -> int:
        return pow(self.prime2, -1, self.prime1)

    def public_key(self) -> PublicKey:
        return PublicKey(self.modulus, self.public_exponent)

    def __repr__(self) -> str:
        # never render the secret components
        return f"PrivateKey(bits={self.modulus.bit_length()})"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

WIRE_DATA_FIELD = "encryptedDataBase64"
WIRE_IV_FIELD = "encryptedIvBase64"


@dataclass(frozen=True)
class EncryptionEnvelope:
    """Symmetrically-encrypted payload plus the asymmetrically-encrypted IV."""

    encrypted_data_base64: str
    encrypted_iv_base64: str

    def to_dict(self) -> dict[str, str]:
        """Convert to the camelCase wire mapping."""
        return {
            WIRE_DATA_FIELD: self.encrypted_data_base64,
            WIRE_IV_FIELD: self.encrypted_iv_base64,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EncryptionEnvelope":
        """
        Reconstruct from the wire mapping.

        Raises
        ------
        InputError
            If either field is missing, empty or not a string.
        """
        if not isinstance(data, Mapping):
            raise InputError("Envelope must be a mapping with "
                             f"{WIRE_DATA_FIELD} and {WIRE_IV_FIELD}.")
        values = []
        for name in (WIRE_DATA_FIELD, WIRE_IV_FIELD):
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                raise InputError(f"Envelope field '{name}' is required.")
            values.append(value.strip())
        return cls(*values)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "EncryptionEnvelope":
        if not text or not text.strip():
            raise InputError("Envelope JSON is empty.")
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise DecodeError("Envelope is not valid JSON.") from exc
        return cls.from_dict(data)
