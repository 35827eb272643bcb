"""
Self-test / verification (run with: python -m hybridseal)

Exercises a freshly generated key set end to end: envelope round-trips,
tamper detection, and legacy key recovery.
"""

from __future__ import annotations

import base64
import sys
from typing import Callable, List, Tuple

from .asn1 import dearmor
from .ciphers import OaepHash
from .envelope import EnvelopeCodec
from .errors import CipherError, InputError, KeyResolutionError
from .keygen import generate_demo_keys
from .keys import KeyMaterialResolver
from .legacy import caesar_encode, obfuscate_key
from .models import EncryptionEnvelope, KeyKind
from .recovery import KeyRecoveryStrategy


def _flip_last_data_byte(envelope: EncryptionEnvelope) -> EncryptionEnvelope:
    data = bytearray(base64.b64decode(envelope.encrypted_data_base64))
    data[-1] ^= 0x01
    return EncryptionEnvelope(
        encrypted_data_base64=base64.b64encode(bytes(data)).decode("ascii"),
        encrypted_iv_base64=envelope.encrypted_iv_base64,
    )


def run(key_size: int = 2048, out=None) -> Tuple[int, int]:
    """Run every check, printing one line each; return ``(passed, failed)``."""
    out = out or sys.stdout
    results: List[bool] = []

    def _test(name: str, fn: Callable[[], None]) -> None:
        try:
            fn()
            print(f"  [PASS] {name}", file=out)
            results.append(True)
        except Exception as exc:
            print(f"  [FAIL] {name}: {exc}", file=out)
            results.append(False)

    print("=" * 60, file=out)
    print("HybridSeal Self-Test", file=out)
    print("=" * 60, file=out)

    keys = generate_demo_keys(key_size)
    codec = EnvelopeCodec(OaepHash.SHA256)

    # --- 1. Envelope round-trips ---
    print("\n-- Envelope round-trips --", file=out)

    def test_text():
        env = codec.seal("Hello, World!", keys.public_pem, keys.symmetric_key_b64)
        assert codec.open(env, keys.private_pem, keys.symmetric_key_b64) == "Hello, World!"

    _test("Text seal → open round-trip", test_text)

    def test_structured():
        value = {"a": 1, "b": [2, 3], "note": "naïve ☃"}
        env = codec.seal(value, keys.public_pem, keys.symmetric_key_b64)
        assert codec.open(env, keys.private_pem, keys.symmetric_key_b64) == value

    _test("Structured seal → open round-trip", test_structured)

    def test_wire_json():
        env = codec.seal([1, 2, 3], keys.public_pem, keys.symmetric_key_b64)
        again = EncryptionEnvelope.from_json(env.to_json())
        assert codec.open(again, keys.private_pem, keys.symmetric_key_b64) == [1, 2, 3]

    _test("Envelope survives JSON wire form", test_wire_json)

    def test_fresh_iv():
        a = codec.seal("same", keys.public_pem, keys.symmetric_key_b64)
        b = codec.seal("same", keys.public_pem, keys.symmetric_key_b64)
        assert a.encrypted_data_base64 != b.encrypted_data_base64

    _test("Fresh IV per seal", test_fresh_iv)

    def test_sha1_peer():
        sha1 = EnvelopeCodec(OaepHash.SHA1)
        env = sha1.seal("sha1 peer", keys.public_pem, keys.symmetric_key_b64)
        assert sha1.open(env, keys.private_pem, keys.symmetric_key_b64) == "sha1 peer"

    _test("OAEP SHA-1 peer round-trip", test_sha1_peer)

    # --- 2. Failure detection ---
    print("\n-- Failure detection --", file=out)

    def test_tamper():
        env = codec.seal("tamper me", keys.public_pem, keys.symmetric_key_b64)
        try:
            codec.open(_flip_last_data_byte(env), keys.private_pem, keys.symmetric_key_b64)
            assert False
        except CipherError:
            pass

    _test("Flipped ciphertext byte raises CipherError", test_tamper)

    def test_hash_mismatch():
        env = codec.seal("mismatch", keys.public_pem, keys.symmetric_key_b64)
        try:
            EnvelopeCodec(OaepHash.SHA1).open(env, keys.private_pem, keys.symmetric_key_b64)
            assert False
        except CipherError:
            pass

    _test("OAEP hash mismatch raises CipherError", test_hash_mismatch)

    def test_missing_key():
        try:
            codec.seal("x", keys.public_pem, "   ")
            assert False
        except InputError:
            pass

    _test("Blank symmetric key raises InputError", test_missing_key)

    # --- 3. Legacy key material ---
    print("\n-- Legacy key material --", file=out)

    def test_legacy_keys():
        pub_der = dearmor(keys.public_pem, KeyKind.PUBLIC.pem_label)
        priv_der = dearmor(keys.private_pem, KeyKind.PRIVATE.pem_label)
        legacy_pub = obfuscate_key(pub_der, KeyKind.PUBLIC, 11)
        legacy_priv = obfuscate_key(priv_der, KeyKind.PRIVATE, 4, byte_level=True)
        legacy_sym = caesar_encode(keys.symmetric_key_b64)
        env = codec.seal("legacy", legacy_pub, legacy_sym)
        assert codec.open(env, legacy_priv, keys.symmetric_key_b64) == "legacy"

    _test("Obfuscated keys resolve and interoperate", test_legacy_keys)

    def test_strict_mode():
        strict = KeyMaterialResolver(KeyRecoveryStrategy())
        pub_der = dearmor(keys.public_pem, KeyKind.PUBLIC.pem_label)
        try:
            strict.resolve(obfuscate_key(pub_der, KeyKind.PUBLIC, 5), KeyKind.PUBLIC)
            assert False
        except KeyResolutionError:
            pass

    _test("Strict resolver rejects obfuscated material", test_strict_mode)

    passed = sum(results)
    failed = len(results) - passed
    print("\n" + "=" * 60, file=out)
    print(f"Results: {passed} passed, {failed} failed", file=out)
    print("=" * 60, file=out)
    return passed, failed


def main() -> int:
    from .config import configure_logging, load_settings

    settings = load_settings()
    configure_logging(settings.log_level)
    _, failed = run(settings.demo_rsa_key_size)
    return 1 if failed else 0
