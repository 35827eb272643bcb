"""
HybridSeal — Exception Taxonomy
================================

Every failure raised by the library derives from :class:`HybridSealError`.
Messages never carry key material, IVs or plaintext.
"""

from __future__ import annotations

from typing import Optional


class HybridSealError(Exception):
    """Base exception for all HybridSeal errors."""


class InputError(HybridSealError):
    """Missing or empty key material / envelope field, or wrong raw length."""


class DecodeError(HybridSealError):
    """
    Malformed base64, PEM, JSON wire data or ASN.1 structure.

    ASN.1 failures carry the byte *offset* of the offending element and the
    *expected_tag* when a specific tag was required there.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        expected_tag: Optional[int] = None,
    ) -> None:
        if offset is not None:
            message = f"{message} (offset {offset}"
            if expected_tag is not None:
                message += f", expected tag 0x{expected_tag:02x}"
            message += ")"
        super().__init__(message)
        self.offset = offset
        self.expected_tag = expected_tag


class KeyResolutionError(HybridSealError):
    """Key material could not be recovered into a well-formed key."""


class CipherError(HybridSealError):
    """Padding, alignment, OAEP or size-ceiling failure: wrong key or corrupted data."""


class IntegrityError(CipherError):
    """The recovered IV does not have the expected length."""
