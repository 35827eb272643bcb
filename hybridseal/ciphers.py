"""
HybridSeal — Cipher Primitives
===============================

* :class:`SymmetricCipher`: AES-256-CBC with PKCS#7 padding.
* :class:`AsymmetricCipher`: RSA-OAEP, used only to wrap the 16-byte IV.

Uses the ``cryptography`` library exclusively.  Neither class caches keys
or plaintext between calls.

OAEP hash agreement
-------------------
The OAEP hash (also used for MGF1) is not recorded in the ciphertext.
Peers must agree on it out of band; a mismatch surfaces only as a generic
OAEP failure.  :class:`AsymmetricCipher` therefore takes it as a required
argument instead of defaulting silently.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import CipherError, DecodeError, InputError
from .models import PrivateKey, PublicKey

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KEY_SIZE: int = 32    # AES-256
IV_SIZE: int = 16     # AES block size, also the wrapped secret
BLOCK_SIZE: int = 16


class OaepHash(str, Enum):
    """Hash used for both the OAEP label digest and MGF1."""

    SHA1 = "sha1"
    SHA256 = "sha256"

    def algorithm(self) -> hashes.HashAlgorithm:
        if self is OaepHash.SHA1:
            return hashes.SHA1()
        return hashes.SHA256()

    @property
    def digest_size(self) -> int:
        return self.algorithm().digest_size


def generate_iv(size: int = IV_SIZE) -> bytes:
    """Fresh cryptographically secure IV."""
    return os.urandom(size)


# ---------------------------------------------------------------------------
# SymmetricCipher
# ---------------------------------------------------------------------------


class SymmetricCipher:
    """
    AES-256-CBC + PKCS#7.

    All public methods are **static**.
    """

    @staticmethod
    def encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt *plaintext*.

        The result is always a positive multiple of 16 bytes; empty input
        yields one full block of padding.
        """
        _validate_key(key)
        _validate_iv(iv)
        padder = sym_padding.PKCS7(BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    @staticmethod
    def decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt a ciphertext produced by :meth:`encrypt`.

        Raises
        ------
        CipherError
            If the length is not a positive multiple of 16 or the padding
            is invalid (wrong key or corrupted data).
        """
        _validate_key(key)
        _validate_iv(iv)
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise CipherError(
                f"Ciphertext length must be a positive multiple of {BLOCK_SIZE} "
                f"bytes (got {len(ciphertext)})."
            )
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = sym_padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise CipherError("Invalid padding: wrong key or corrupted data.") from exc


# ---------------------------------------------------------------------------
# AsymmetricCipher
# ---------------------------------------------------------------------------


class AsymmetricCipher:
    """
    RSA-OAEP bound to a single hash for encryption and decryption.

    Parameters
    ----------
    oaep_hash : OaepHash
        Must match the peer's choice.
    """

    def __init__(self, oaep_hash: OaepHash) -> None:
        self.oaep_hash = OaepHash(oaep_hash)

    def __repr__(self) -> str:
        return f"AsymmetricCipher(oaep_hash={self.oaep_hash.value!r})"

    def _padding(self) -> asym_padding.OAEP:
        algorithm = self.oaep_hash.algorithm()
        return asym_padding.OAEP(
            mgf=asym_padding.MGF1(algorithm=algorithm),
            algorithm=algorithm,
            label=None,
        )

    def max_message_size(self, key: PublicKey) -> int:
        """OAEP ceiling: ``k - 2*hLen - 2`` bytes for a *k*-byte modulus."""
        return key.size_bytes - 2 * self.oaep_hash.digest_size - 2

    def encrypt(self, key: PublicKey, message: bytes) -> bytes:
        """
        Encrypt *message*; the ciphertext is exactly the modulus length.

        Raises
        ------
        CipherError
            If *message* exceeds the OAEP ceiling for this key and hash.
        """
        ceiling = self.max_message_size(key)
        if len(message) > ceiling:
            raise CipherError(
                f"Message of {len(message)} bytes exceeds the OAEP limit of "
                f"{ceiling} bytes for a {key.size_bytes * 8}-bit key."
            )
        try:
            return to_backend_public_key(key).encrypt(message, self._padding())
        except ValueError as exc:
            raise CipherError("RSA encryption failed.") from exc

    def decrypt(self, key: PrivateKey, ciphertext: bytes) -> bytes:
        """
        Decrypt an OAEP ciphertext with the matching private key.

        Raises
        ------
        CipherError
            On a length mismatch or OAEP unpad failure (wrong key, wrong
            OAEP hash, or corrupted data).
        """
        if len(ciphertext) != key.size_bytes:
            raise CipherError(
                f"RSA ciphertext must be {key.size_bytes} bytes (got {len(ciphertext)})."
            )
        backend_key = to_backend_private_key(key)
        try:
            return backend_key.decrypt(ciphertext, self._padding())
        except ValueError as exc:
            logger.debug("OAEP decryption failed with %s", self.oaep_hash.value)
            raise CipherError(
                "RSA decryption failed: wrong private key, OAEP hash mismatch "
                "or corrupted data."
            ) from exc


# ---------------------------------------------------------------------------
# Backend key construction
# ---------------------------------------------------------------------------


def to_backend_public_key(key: PublicKey) -> rsa.RSAPublicKey:
    try:
        return rsa.RSAPublicNumbers(key.public_exponent, key.modulus).public_key()
    except ValueError as exc:
        raise DecodeError("RSA public key components are invalid.") from exc


def to_backend_private_key(key: PrivateKey) -> rsa.RSAPrivateKey:
    """Rebuild a full CRT private key from ``(n, d, p, q)``."""
    e = key.public_exponent
    numbers = rsa.RSAPrivateNumbers(
        p=key.prime1,
        q=key.prime2,
        d=key.private_exponent,
        dmp1=rsa.rsa_crt_dmp1(key.private_exponent, key.prime1),
        dmq1=rsa.rsa_crt_dmq1(key.private_exponent, key.prime2),
        iqmp=rsa.rsa_crt_iqmp(key.prime1, key.prime2),
        public_numbers=rsa.RSAPublicNumbers(e, key.modulus),
    )
    try:
        return numbers.private_key()
    except ValueError as exc:
        raise DecodeError("RSA private key components are inconsistent.") from exc


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _validate_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)):
        raise InputError("Symmetric key must be bytes.")
    if len(key) != KEY_SIZE:
        raise InputError(f"Symmetric key must be exactly {KEY_SIZE} bytes (got {len(key)}).")


def _validate_iv(iv: bytes) -> None:
    if not isinstance(iv, (bytes, bytearray)) or len(iv) != IV_SIZE:
        raise InputError(f"IV must be exactly {IV_SIZE} bytes.")
