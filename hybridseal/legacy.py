"""
HybridSeal — Legacy Key Recovery
=================================

Recovers key material that peers distribute in an *obfuscated* form.  This
scheme is a placeholder carried for interoperability; it is **not** a
security mechanism and must not be treated as one.

Obfuscated forms
----------------
Asymmetric keys::

    -----ILNPU WbISPJ RLf-----        decoy of  -----BEGIN PUBLIC KEY-----
    <base64 body, every symbol rotated +s on the 65-symbol ring>
    -----LUK WbISPJ RLf-----          decoy of  -----END PUBLIC KEY-----

The ring is ``A-Z a-z 0-9 + / =``.  The decoy markers are the real labels
rotated by 7 on that same ring.  Some producers shift the decoded bytes
instead (``(b + s) mod 256``) and re-encode.  The shift *s* is unknown and
lies in ``[1, 20]``.

Symmetric keys: Caesar shift of 3 over letters (mod 26, case kept) and
digits (mod 10); everything else untouched.

Known ambiguity
---------------
The historic acceptance test is "decoded leading byte == 0x30" (ASN.1
SEQUENCE).  That test is heuristic: a wrong shift can pass it by accident.
:class:`LegacyKeyRecovery` only accepts a shift when the recovered bytes
also decode as the requested key structure, evaluates *every* shift in
range, and logs a warning when more than one survives.  The lowest
surviving shift wins.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Tuple

from .asn1 import decode_private_key, decode_public_key
from .errors import DecodeError, InputError, KeyResolutionError
from .models import KeyKind
from .recovery import KeyRecoveryStrategy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE64_RING: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/="
SEQUENCE_TAG: int = 0x30

MIN_SHIFT: int = 1
MAX_SHIFT: int = 20
SYMMETRIC_SHIFT: int = 3
DECOY_SHIFT: int = 7

DECOY_BEGIN_PUBLIC: str = "-----ILNPU WbISPJ RLf-----"
DECOY_END_PUBLIC: str = "-----LUK WbISPJ RLf-----"
DECOY_BEGIN_PRIVATE: str = "-----ILNPU WYPcHaL RLf-----"
DECOY_END_PRIVATE: str = "-----LUK WYPcHaL RLf-----"

_DECOY_MARKERS = {
    KeyKind.PUBLIC: (DECOY_BEGIN_PUBLIC, DECOY_END_PUBLIC),
    KeyKind.PRIVATE: (DECOY_BEGIN_PRIVATE, DECOY_END_PRIVATE),
}

_STANDARD_RE = re.compile(
    r"-----BEGIN (?P<label>[^-]+)-----\s*(?P<body>.*?)\s*-----END [^-]+-----",
    re.DOTALL,
)


# ---------------------------------------------------------------------------
# Ring / byte / Caesar transforms
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _ring_table(shift: int) -> dict:
    n = len(BASE64_RING)
    rotated = "".join(BASE64_RING[(i + shift) % n] for i in range(n))
    return str.maketrans(BASE64_RING, rotated)


def rotate_ring(text: str, shift: int) -> str:
    """Rotate every ring symbol of *text* by *shift*; other characters are kept."""
    return text.translate(_ring_table(shift))


def shift_bytes(data: bytes, shift: int) -> bytes:
    return bytes((b + shift) % 256 for b in data)


def _caesar(text: str, shift: int) -> str:
    out = []
    for ch in text:
        if "a" <= ch <= "z":
            out.append(chr((ord(ch) - 97 + shift) % 26 + 97))
        elif "A" <= ch <= "Z":
            out.append(chr((ord(ch) - 65 + shift) % 26 + 65))
        elif "0" <= ch <= "9":
            out.append(chr((ord(ch) - 48 + shift) % 10 + 48))
        else:
            out.append(ch)
    return "".join(out)


def caesar_decode(text: str, shift: int = SYMMETRIC_SHIFT) -> str:
    return _caesar(text, -shift)


def caesar_encode(text: str, shift: int = SYMMETRIC_SHIFT) -> str:
    return _caesar(text, shift)


# ---------------------------------------------------------------------------
# Body extraction
# ---------------------------------------------------------------------------


def extract_body(raw: str) -> Tuple[Optional[KeyKind], str]:
    """
    Split *raw* into ``(declared kind, compact body)``.

    Decoy markers are matched literally.  Standard markers of any label are
    also accepted (a rotated body inside real markers).  Material with no
    markers is treated as a bare body of unknown kind.
    """
    for kind, (begin, end) in _DECOY_MARKERS.items():
        if begin in raw:
            start = raw.index(begin) + len(begin)
            stop = raw.find(end, start)
            if stop < 0:
                raise DecodeError(f"Decoy begin marker for a {kind.value} key has no end marker.")
            return kind, "".join(raw[start:stop].split())

    match = _STANDARD_RE.search(raw)
    if match:
        label = match.group("label")
        declared: Optional[KeyKind] = None
        if "PUBLIC KEY" in label:
            declared = KeyKind.PUBLIC
        elif "PRIVATE KEY" in label:
            declared = KeyKind.PRIVATE
        return declared, "".join(match.group("body").split())

    return None, "".join(raw.split())


# ---------------------------------------------------------------------------
# Obfuscation (reverse direction)
# ---------------------------------------------------------------------------


def obfuscate_key(der: bytes, kind: KeyKind, shift: int, *, byte_level: bool = False) -> str:
    """
    Produce legacy material for *der*: decoy markers around a rotated body.

    With *byte_level* the shift is applied to the raw bytes before base64
    encoding instead of to the base64 text.
    """
    begin, end = _DECOY_MARKERS[kind]
    if byte_level:
        body = base64.b64encode(shift_bytes(der, shift)).decode("ascii")
    else:
        body = rotate_ring(base64.b64encode(der).decode("ascii"), shift)
    lines = [body[i : i + 64] for i in range(0, len(body), 64)]
    return begin + "\n" + "\n".join(lines) + "\n" + end


# ---------------------------------------------------------------------------
# LegacyKeyRecovery
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecoveryCandidate:
    shift: int
    byte_level: bool
    der: bytes


def _oracle(data: bytes) -> bool:
    return len(data) > 0 and data[0] == SEQUENCE_TAG


def _try_b64(text: str) -> Optional[bytes]:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None


class LegacyKeyRecovery(KeyRecoveryStrategy):
    """
    Brute-force recovery of obfuscated key material.

    Parameters
    ----------
    min_shift, max_shift : int
        Inclusive shift range tried for asymmetric bodies.
    symmetric_shift : int
        Fixed Caesar shift for symmetric material.
    """

    def __init__(
        self,
        min_shift: int = MIN_SHIFT,
        max_shift: int = MAX_SHIFT,
        symmetric_shift: int = SYMMETRIC_SHIFT,
    ) -> None:
        if not 0 < min_shift <= max_shift:
            raise ValueError("Shift range must satisfy 0 < min_shift <= max_shift.")
        self.min_shift = min_shift
        self.max_shift = max_shift
        self.symmetric_shift = symmetric_shift

    def __repr__(self) -> str:
        return (
            f"LegacyKeyRecovery(shifts={self.min_shift}..{self.max_shift}, "
            f"symmetric_shift={self.symmetric_shift})"
        )

    # -- symmetric --------------------------------------------------------

    def recover_symmetric(self, raw: str) -> str:
        return caesar_decode(raw, self.symmetric_shift)

    # -- asymmetric -------------------------------------------------------

    def candidates(self, body: str, kind: KeyKind) -> List[RecoveryCandidate]:
        """
        Every shift in range whose output passes the leading-byte oracle and
        decodes as a *kind* key.  Ring rotation is tried first; byte-level
        shifts only when no ring shift survives.
        """
        validate = _validator(kind)
        found: List[RecoveryCandidate] = []
        shifts = range(self.min_shift, self.max_shift + 1)

        for shift in shifts:
            data = _try_b64(rotate_ring(body, -shift))
            if data is not None and _oracle(data) and _is_valid(validate, data, shift):
                found.append(RecoveryCandidate(shift, False, data))
        if found:
            return found

        encoded = _try_b64(body)
        if encoded is None:
            return found
        for shift in shifts:
            data = shift_bytes(encoded, -shift)
            if _oracle(data) and _is_valid(validate, data, shift):
                found.append(RecoveryCandidate(shift, True, data))
        return found

    def recover_asymmetric(self, raw: str, kind: KeyKind) -> bytes:
        if kind is KeyKind.SYMMETRIC:
            raise InputError("Asymmetric recovery needs a PUBLIC or PRIVATE key kind.")
        declared, body = extract_body(raw)
        if declared is not None and declared is not kind:
            raise KeyResolutionError(
                f"Key material is marked as a {declared.value} key but a "
                f"{kind.value} key was requested."
            )
        if not body:
            raise DecodeError("No key content found.")

        validate = _validator(kind)
        plain = _try_b64(body)
        if plain is not None and _oracle(plain) and _is_valid(validate, plain, 0):
            return plain

        found = self.candidates(body, kind)
        if not found:
            raise KeyResolutionError(
                f"No shift in [{self.min_shift}, {self.max_shift}] recovers a "
                f"well-formed {kind.pem_label}."
            )
        chosen = found[0]
        if len(found) > 1:
            logger.warning(
                "Ambiguous legacy %s key: shifts %s all yield well-formed keys; using %d",
                kind.value,
                [c.shift for c in found],
                chosen.shift,
            )
        logger.warning(
            "Recovered obfuscated %s key (shift %d, %s level); legacy obfuscation "
            "provides no security",
            kind.value,
            chosen.shift,
            "byte" if chosen.byte_level else "text",
        )
        return chosen.der


def _validator(kind: KeyKind) -> Callable[[bytes], object]:
    return decode_public_key if kind is KeyKind.PUBLIC else decode_private_key


def _is_valid(validate: Callable[[bytes], object], data: bytes, shift: int) -> bool:
    try:
        validate(data)
    except DecodeError as exc:
        if shift:
            logger.debug("Shift %d passed the SEQUENCE oracle but failed decoding: %s", shift, exc)
        return False
    return True
