"""
HybridSeal: hybrid AES-256-CBC / RSA-OAEP message envelopes with
normalisation of legacy obfuscated key material.
"""

from .asn1 import Asn1KeyCodec, armor, dearmor
from .ciphers import AsymmetricCipher, OaepHash, SymmetricCipher
from .config import EnvelopeSettings, configure_logging, load_settings
from .envelope import EnvelopeCodec, canonicalize, decanonicalize, open_envelope, seal
from .errors import (
    CipherError,
    DecodeError,
    HybridSealError,
    InputError,
    IntegrityError,
    KeyResolutionError,
)
from .keygen import DemoKeys, generate_demo_keys
from .keys import KeyMaterialResolver, resolve
from .legacy import LegacyKeyRecovery, caesar_encode, obfuscate_key
from .models import EncryptionEnvelope, KeyKind, PrivateKey, PublicKey
from .recovery import KeyRecoveryStrategy, StrictKeyRecovery

__version__ = "1.0.0"

__all__ = [
    "Asn1KeyCodec",
    "AsymmetricCipher",
    "CipherError",
    "DecodeError",
    "DemoKeys",
    "EncryptionEnvelope",
    "EnvelopeCodec",
    "EnvelopeSettings",
    "HybridSealError",
    "InputError",
    "IntegrityError",
    "KeyKind",
    "KeyMaterialResolver",
    "KeyRecoveryStrategy",
    "KeyResolutionError",
    "LegacyKeyRecovery",
    "OaepHash",
    "PrivateKey",
    "PublicKey",
    "StrictKeyRecovery",
    "SymmetricCipher",
    "armor",
    "caesar_encode",
    "canonicalize",
    "configure_logging",
    "dearmor",
    "decanonicalize",
    "generate_demo_keys",
    "load_settings",
    "obfuscate_key",
    "open_envelope",
    "resolve",
    "seal",
]
