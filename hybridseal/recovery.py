"""
HybridSeal — Key Recovery Strategies
=====================================

The resolver delegates anything that is not a standard format to a
recovery strategy.  The base class is the strict strategy: it recovers
nothing.  :class:`hybridseal.legacy.LegacyKeyRecovery` plugs in the
historic obfuscation scheme, and real key management can replace either
without touching the envelope codec.
"""

from __future__ import annotations

from .errors import KeyResolutionError
from .models import KeyKind


class KeyRecoveryStrategy:
    """Strict strategy: only standard key formats are accepted."""

    def recover_symmetric(self, raw: str) -> str:
        """Return the de-obfuscated text form of a symmetric key (here: unchanged)."""
        return raw

    def recover_asymmetric(self, raw: str, kind: KeyKind) -> bytes:
        """Return the DER bytes of a *kind* key recovered from *raw*."""
        raise KeyResolutionError(
            f"Key material is not a standard {kind.pem_label} PEM and no key "
            "recovery is configured."
        )


StrictKeyRecovery = KeyRecoveryStrategy
