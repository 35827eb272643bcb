"""
HybridSeal — Envelope Codec
============================

AES-256-CBC bulk encryption with an RSA-OAEP-wrapped IV.

Wire format (v1)
----------------
::

    {
      "encryptedDataBase64": base64( AES-256-CBC-PKCS7(key, iv, canonical(plaintext)) ),
      "encryptedIvBase64":   base64( RSA-OAEP(publicKey, iv) )     -- modulus length
    }

Canonical form
--------------
``canonical(p)`` is the UTF-8 encoding of ``percent_encode(text(p))`` where
``text`` serialises mappings / sequences as compact JSON and
``percent_encode`` leaves only ``A-Z a-z 0-9 - _ . ! ~ * ' ( )`` unescaped.
The canonical bytes are therefore pure ASCII, which lets :meth:`open`
reject garbage produced by a wrong key or tampered ciphertext.

Ordering
--------
``seal``: IV generation → {AES encrypt, RSA encrypt} (independent).
``open``: RSA decrypt IV → AES decrypt → decode (strictly sequential).
"""

from __future__ import annotations

import base64
import json
import logging
import re
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from typing import Any, Callable, Mapping, Optional, Tuple, Union
from urllib.parse import quote, unquote

from .asn1 import b64decode_strict
from .ciphers import IV_SIZE, AsymmetricCipher, OaepHash, SymmetricCipher, generate_iv
from .errors import CipherError, InputError, IntegrityError
from .keys import KeyMaterialResolver
from .models import EncryptionEnvelope, PrivateKey, PublicKey, WIRE_DATA_FIELD, WIRE_IV_FIELD

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Canonical text form
# ---------------------------------------------------------------------------

# characters encodeURIComponent leaves alone, beyond what quote() always keeps
_URI_COMPONENT_SAFE = "!~*'()"
_CANONICAL_RE = re.compile(r"(?:[A-Za-z0-9\-_.!~*'()]|%[0-9A-Fa-f]{2})*")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def canonicalize(plaintext: Any) -> bytes:
    """
    Stable byte form of *plaintext*.

    Raises
    ------
    InputError
        For unsupported types or text that cannot be encoded as UTF-8.
    """
    if isinstance(plaintext, str):
        text = plaintext
    elif isinstance(plaintext, (Mapping, list, tuple)):
        try:
            text = json.dumps(plaintext, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError, RecursionError) as exc:
            raise InputError("Structured plaintext is not JSON-serialisable.") from exc
    elif plaintext is None or isinstance(plaintext, (bool, int, float)):
        text = json.dumps(plaintext)
    else:
        raise InputError(f"Unsupported plaintext type {type(plaintext).__name__}.")
    try:
        return quote(text, safe=_URI_COMPONENT_SAFE, errors="strict").encode("ascii")
    except UnicodeEncodeError as exc:
        raise InputError("Plaintext is not valid Unicode text.") from exc


def decanonicalize(data: bytes) -> Any:
    """
    Inverse of :func:`canonicalize`; JSON is parsed when possible, any other
    text is returned unchanged.

    Raises
    ------
    CipherError
        If *data* is not in canonical form (wrong key or corrupted data).
    """
    try:
        encoded = data.decode("ascii")
    except UnicodeDecodeError as exc:
        raise CipherError("Decrypted payload is not canonical: wrong key or corrupted data.") from exc
    if not _CANONICAL_RE.fullmatch(encoded):
        raise CipherError("Decrypted payload is not canonical: wrong key or corrupted data.")
    try:
        text = unquote(encoded, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise CipherError("Decrypted payload is not valid UTF-8 after percent-decoding.") from exc
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return text


# ---------------------------------------------------------------------------
# EnvelopeCodec
# ---------------------------------------------------------------------------


class EnvelopeCodec:
    """
    Seal and open :class:`EncryptionEnvelope` objects.

    Parameters
    ----------
    oaep_hash : OaepHash
        OAEP hash agreed with the peer.
    resolver : KeyMaterialResolver, optional
        Turns raw key strings into keys; defaults to the legacy-aware resolver.
    executor : concurrent.futures.Executor, optional
        When given, the two independent ``seal`` ciphers are submitted to it.
    parallel : bool
        Without an *executor*, run the two ``seal`` ciphers on a short-lived
        two-worker thread pool per call.
    iv_source : callable(int) -> bytes
        Secure random source for IVs (default :func:`~hybridseal.ciphers.generate_iv`).
    """

    def __init__(
        self,
        oaep_hash: OaepHash = OaepHash.SHA256,
        *,
        resolver: Optional[KeyMaterialResolver] = None,
        executor: Optional[Executor] = None,
        parallel: bool = False,
        iv_source: Callable[[int], bytes] = generate_iv,
    ) -> None:
        self.asymmetric = AsymmetricCipher(oaep_hash)
        self.resolver = resolver or KeyMaterialResolver()
        self.executor = executor
        self.parallel = parallel
        self._iv_source = iv_source

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "EnvelopeCodec":
        """Build a codec from :class:`hybridseal.config.EnvelopeSettings`."""
        kwargs.setdefault("resolver", KeyMaterialResolver(settings.recovery_strategy()))
        kwargs.setdefault("parallel", settings.parallel_seal)
        return cls(settings.oaep_hash, **kwargs)

    @property
    def oaep_hash(self) -> OaepHash:
        return self.asymmetric.oaep_hash

    def __repr__(self) -> str:
        return f"EnvelopeCodec(oaep_hash={self.oaep_hash.value!r}, resolver={self.resolver!r})"

    # ------------------------------------------------------------------
    # seal
    # ------------------------------------------------------------------

    def seal(
        self,
        plaintext: Any,
        public_key: Union[str, PublicKey],
        symmetric_key: Union[str, bytes],
    ) -> EncryptionEnvelope:
        """
        Encrypt *plaintext* into a new envelope.

        Keys may be raw material (PEM, base64, obfuscated) or already
        resolved objects.  A fresh IV is drawn on every call.
        """
        pub = self.resolver.public_key(public_key)
        key = self.resolver.symmetric_key(symmetric_key)
        canonical = canonicalize(plaintext)

        iv = self._iv_source(IV_SIZE)
        if len(iv) != IV_SIZE:
            raise IntegrityError(f"IV source returned {len(iv)} bytes, expected {IV_SIZE}.")

        if self.executor is not None:
            encrypted_data, encrypted_iv = self._seal_on(self.executor, key, iv, canonical, pub)
        elif self.parallel:
            with ThreadPoolExecutor(max_workers=2) as pool:
                encrypted_data, encrypted_iv = self._seal_on(pool, key, iv, canonical, pub)
        else:
            encrypted_data = SymmetricCipher.encrypt(key, iv, canonical)
            encrypted_iv = self.asymmetric.encrypt(pub, iv)

        logger.debug(
            "Sealed %d canonical bytes into %d ciphertext bytes (%d-bit RSA, OAEP %s)",
            len(canonical),
            len(encrypted_data),
            pub.size_bytes * 8,
            self.oaep_hash.value,
        )
        return EncryptionEnvelope(
            encrypted_data_base64=base64.b64encode(encrypted_data).decode("ascii"),
            encrypted_iv_base64=base64.b64encode(encrypted_iv).decode("ascii"),
        )

    def _seal_on(
        self, executor: Executor, key: bytes, iv: bytes, canonical: bytes, pub: PublicKey
    ) -> Tuple[bytes, bytes]:
        data_job = executor.submit(SymmetricCipher.encrypt, key, iv, canonical)
        iv_job = executor.submit(self.asymmetric.encrypt, pub, iv)
        wait((data_job, iv_job))
        errors = [job.exception() for job in (data_job, iv_job) if job.exception() is not None]
        if len(errors) > 1:
            logger.warning("Both seal ciphers failed; IV wrap error: %s", errors[1])
        if errors:
            raise errors[0]
        return data_job.result(), iv_job.result()

    # ------------------------------------------------------------------
    # open
    # ------------------------------------------------------------------

    def open(
        self,
        envelope: Union[EncryptionEnvelope, Mapping[str, Any]],
        private_key: Union[str, PrivateKey],
        symmetric_key: Union[str, bytes],
    ) -> Any:
        """
        Decrypt an envelope produced by :meth:`seal` (or a compatible peer).

        Returns
        -------
        object
            Parsed JSON value when the payload is JSON, otherwise the text.

        Raises
        ------
        InputError
            Missing envelope fields or key material.
        DecodeError
            Malformed base64 or key material.
        IntegrityError
            The unwrapped IV is not 16 bytes.
        CipherError
            Wrong key, OAEP hash mismatch, or corrupted data.
        """
        if not isinstance(envelope, EncryptionEnvelope):
            envelope = EncryptionEnvelope.from_dict(envelope)
        priv = self.resolver.private_key(private_key)
        key = self.resolver.symmetric_key(symmetric_key)

        encrypted_iv = b64decode_strict(envelope.encrypted_iv_base64, WIRE_IV_FIELD)
        iv = self.asymmetric.decrypt(priv, encrypted_iv)
        if len(iv) != IV_SIZE:
            raise IntegrityError(f"Recovered IV is {len(iv)} bytes, expected {IV_SIZE}.")

        encrypted_data = b64decode_strict(envelope.encrypted_data_base64, WIRE_DATA_FIELD)
        canonical = SymmetricCipher.decrypt(key, iv, encrypted_data)
        logger.debug("Opened envelope: %d canonical bytes", len(canonical))
        return decanonicalize(canonical)


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------


def seal(
    plaintext: Any,
    public_key: Union[str, PublicKey],
    symmetric_key: Union[str, bytes],
    *,
    oaep_hash: OaepHash = OaepHash.SHA256,
) -> EncryptionEnvelope:
    return EnvelopeCodec(oaep_hash).seal(plaintext, public_key, symmetric_key)


def open_envelope(
    envelope: Union[EncryptionEnvelope, Mapping[str, Any]],
    private_key: Union[str, PrivateKey],
    symmetric_key: Union[str, bytes],
    *,
    oaep_hash: OaepHash = OaepHash.SHA256,
) -> Any:
    return EnvelopeCodec(oaep_hash).open(envelope, private_key, symmetric_key)
