"""
HybridSeal — Key Material Resolver
===================================

Normalises caller-supplied key strings of uncertain format into canonical
keys.  Pure: nothing is cached or persisted, every call starts afresh.

Resolution rules
----------------
Symmetric
    1. Text of base64 symbols only, at least 32 characters → base64.
    2. Text carrying ``-----BEGIN`` markers → passed through.
    3. Anything else → handed to the recovery strategy.

    The chosen text is then imported: a strict base64 decode yielding
    16–64 bytes is used as is, otherwise the UTF-8 bytes of the text.  The
    result is zero-padded or truncated to exactly 32 bytes.

Public / private
    Standard PEM of the requested kind passes through unchanged.  Anything
    else goes to the recovery strategy, whose DER output is re-encoded
    through the ASN.1 codec and armored with 64-character lines.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Optional, Union

from .asn1 import (
    armor,
    decode_private_key,
    decode_public_key,
    dearmor,
    encode_private_key,
    encode_public_key,
)
from .ciphers import KEY_SIZE
from .errors import InputError
from .legacy import LegacyKeyRecovery, caesar_encode
from .models import KeyKind, PrivateKey, PublicKey
from .recovery import KeyRecoveryStrategy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_BASE64_KEY_CHARS: int = 32
PLAUSIBLE_KEY_BYTES = range(16, 65)  # 16..64 decoded bytes

_BASE64_TEXT_RE = re.compile(r"[A-Za-z0-9+/=]+")


# ---------------------------------------------------------------------------
# Symmetric helpers
# ---------------------------------------------------------------------------


def fit_symmetric_key(data: bytes) -> bytes:
    """Zero-pad or truncate *data* to exactly 32 bytes."""
    if len(data) < KEY_SIZE:
        return bytes(data) + b"\x00" * (KEY_SIZE - len(data))
    return bytes(data[:KEY_SIZE])


def import_symmetric_key(text: str) -> bytes:
    """
    Derive the 32-byte key from its text form.

    A base64 decode is trusted only when it yields a plausible key length
    (16–64 bytes); otherwise the text's own UTF-8 bytes are the key.
    """
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        decoded = None
    if decoded is not None and len(decoded) in PLAUSIBLE_KEY_BYTES:
        data = decoded
    else:
        data = text.encode("utf-8")
    return fit_symmetric_key(data)


def _has_pem_markers(raw: str, label: str) -> bool:
    return f"-----BEGIN {label}-----" in raw and f"-----END {label}-----" in raw


# ---------------------------------------------------------------------------
# KeyMaterialResolver
# ---------------------------------------------------------------------------


class KeyMaterialResolver:
    """
    Resolve raw key strings into canonical keys.

    Parameters
    ----------
    recovery : KeyRecoveryStrategy, optional
        Strategy for non-standard material.  Defaults to
        :class:`~hybridseal.legacy.LegacyKeyRecovery`; pass a plain
        :class:`~hybridseal.recovery.KeyRecoveryStrategy` for strict mode.
    """

    def __init__(self, recovery: Optional[KeyRecoveryStrategy] = None) -> None:
        if recovery is None:
            recovery = LegacyKeyRecovery()
        self.recovery = recovery

    def __repr__(self) -> str:
        return f"KeyMaterialResolver(recovery={self.recovery!r})"

    def resolve(self, raw: str, kind: KeyKind) -> Union[bytes, str]:
        """
        Resolve *raw* into its canonical form.

        Returns
        -------
        bytes
            The 32-byte key, for ``KeyKind.SYMMETRIC``.
        str
            Canonical PEM, for ``KeyKind.PUBLIC`` / ``KeyKind.PRIVATE``.

        Raises
        ------
        InputError
            If *raw* is missing or blank.
        DecodeError, KeyResolutionError
            If the material cannot be turned into a well-formed key.
        """
        if not isinstance(raw, str) or not raw.strip():
            raise InputError(f"{kind.value.capitalize()} key material is required.")
        if kind is KeyKind.SYMMETRIC:
            return self._resolve_symmetric(raw)
        return self._resolve_asymmetric(raw, kind)

    def _resolve_symmetric(self, raw: str) -> bytes:
        return import_symmetric_key(self._symmetric_text(raw))

    def _symmetric_text(self, raw: str) -> str:
        if _BASE64_TEXT_RE.fullmatch(raw) and len(raw) >= MIN_BASE64_KEY_CHARS:
            return raw
        if "-----BEGIN" in raw:
            return raw
        return self.recovery.recover_symmetric(raw)

    def legacy_symmetric_form(self, raw: str) -> Optional[str]:
        """
        Caesar-obfuscated export of the symmetric key behind *raw*.

        Returns ``None`` when no such form exists, i.e. when the obfuscated
        text would not resolve back to the same key.  Caesar shifts keep
        base64 text base64, so a plain base64 key never has a legacy form.
        """
        if not isinstance(self.recovery, LegacyKeyRecovery):
            return None
        key = self.resolve(raw, KeyKind.SYMMETRIC)
        exported = caesar_encode(self._symmetric_text(raw), self.recovery.symmetric_shift)
        if self._resolve_symmetric(exported) != key:
            logger.debug("Symmetric key has no legacy form that resolves to the same key")
            return None
        return exported

    def _resolve_asymmetric(self, raw: str, kind: KeyKind) -> str:
        label = kind.pem_label
        if _has_pem_markers(raw, label):
            return raw
        der = self.recovery.recover_asymmetric(raw, kind)
        if kind is KeyKind.PUBLIC:
            der = encode_public_key(decode_public_key(der))
        else:
            der = encode_private_key(decode_private_key(der))
        logger.debug("Rebuilt canonical %s PEM (%d DER bytes)", kind.value, len(der))
        return armor(der, label)

    # -- typed shortcuts ----------------------------------------------------

    def symmetric_key(self, raw: Union[str, bytes]) -> bytes:
        """32-byte key from raw text, or validated raw bytes."""
        if isinstance(raw, (bytes, bytearray)):
            if len(raw) != KEY_SIZE:
                raise InputError(f"Raw symmetric key must be {KEY_SIZE} bytes (got {len(raw)}).")
            return bytes(raw)
        return self.resolve(raw, KeyKind.SYMMETRIC)  # type: ignore[return-value]

    def public_key(self, raw: Union[str, PublicKey]) -> PublicKey:
        if isinstance(raw, PublicKey):
            return raw
        pem = self.resolve(raw, KeyKind.PUBLIC)
        return decode_public_key(dearmor(pem, KeyKind.PUBLIC.pem_label))  # type: ignore[arg-type]

    def private_key(self, raw: Union[str, PrivateKey]) -> PrivateKey:
        if isinstance(raw, PrivateKey):
            return raw
        pem = self.resolve(raw, KeyKind.PRIVATE)
        return decode_private_key(dearmor(pem, KeyKind.PRIVATE.pem_label))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------


def resolve(raw: str, kind: KeyKind) -> Union[bytes, str]:
    """Resolve with the default (legacy-aware) resolver."""
    return KeyMaterialResolver().resolve(raw, kind)
