"""
HybridSeal — Demo Key Generation
=================================

Produces a fresh key set for demos and tests: an RSA key pair as PKCS#8 /
SubjectPublicKeyInfo PEM and a base64 32-byte symmetric key.  Keys are made
only when a caller asks; nothing is generated at import time or stored.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .ciphers import KEY_SIZE
from .errors import InputError

logger = logging.getLogger(__name__)

MIN_RSA_KEY_SIZE: int = 2048
PUBLIC_EXPONENT: int = 65537


@dataclass(frozen=True)
class DemoKeys:
    """A matching key set in the text forms the resolver accepts."""

    public_pem: str
    private_pem: str
    symmetric_key_b64: str

    def __repr__(self) -> str:
        return "DemoKeys(<redacted>)"


class KeyGenerator:
    """
    RSA and symmetric key generation.

    All public methods are **static**.
    """

    @staticmethod
    def generate_symmetric_key() -> bytes:
        """Generate a cryptographically secure random 256-bit key."""
        return os.urandom(KEY_SIZE)

    @staticmethod
    def generate_rsa_keypair(
        key_size: int = MIN_RSA_KEY_SIZE,
    ) -> Tuple[RSAPrivateKey, RSAPublicKey]:
        """Generate an RSA keypair (default 2048-bit, e = 65537)."""
        if key_size < MIN_RSA_KEY_SIZE:
            raise InputError(f"RSA key size must be at least {MIN_RSA_KEY_SIZE} bits.")
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=key_size,
        )
        return private_key, private_key.public_key()

    @staticmethod
    def export_public_key(pub_key: RSAPublicKey) -> str:
        """Serialize an RSA public key to SubjectPublicKeyInfo PEM."""
        return pub_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    @staticmethod
    def export_private_key(priv_key: RSAPrivateKey) -> str:
        """Serialize an RSA private key to unencrypted PKCS#8 PEM."""
        return priv_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    @staticmethod
    def generate_demo_keys(key_size: int = MIN_RSA_KEY_SIZE) -> DemoKeys:
        """Generate a complete key set for one sender/recipient pair."""
        priv, pub = KeyGenerator.generate_rsa_keypair(key_size)
        symmetric = KeyGenerator.generate_symmetric_key()
        logger.info("Generated demo key set (%d-bit RSA)", key_size)
        return DemoKeys(
            public_pem=KeyGenerator.export_public_key(pub),
            private_pem=KeyGenerator.export_private_key(priv),
            symmetric_key_b64=base64.b64encode(symmetric).decode("ascii"),
        )


# ---------------------------------------------------------------------------
# Module-level convenience aliases
# ---------------------------------------------------------------------------

_generator = KeyGenerator

generate_symmetric_key = _generator.generate_symmetric_key
generate_rsa_keypair = _generator.generate_rsa_keypair
export_public_key = _generator.export_public_key
export_private_key = _generator.export_private_key
generate_demo_keys = _generator.generate_demo_keys
