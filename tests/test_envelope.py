"""
Envelope seal / open: round-trips, golden vectors, wire form and tampering.
"""
import base64
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from hybridseal import (
    AsymmetricCipher,
    CipherError,
    DecodeError,
    EncryptionEnvelope,
    EnvelopeCodec,
    InputError,
    IntegrityError,
    OaepHash,
    SymmetricCipher,
    canonicalize,
    decanonicalize,
    open_envelope,
    seal,
)

from conftest import (
    HELLO_DATA_B64,
    PRIVATE_PEM,
    PUBLIC_PEM,
    ZERO_IV_OAEP_SHA1_B64,
    ZERO_IV_OAEP_SHA256_B64,
    ZERO_KEY,
    ZERO_KEY_B64,
)


@pytest.fixture
def codec():
    return EnvelopeCodec(OaepHash.SHA256)


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------


def test_canonical_form_matches_uri_component_encoding():
    assert canonicalize("Hello, World!") == b"Hello%2C%20World!"
    assert canonicalize("a-b_c.d!e~f*g'h(i)j") == b"a-b_c.d!e~f*g'h(i)j"
    assert canonicalize("é/?&=") == b"%C3%A9%2F%3F%26%3D"


def test_structured_values_use_compact_json():
    assert canonicalize({"a": 1, "b": [2, 3]}) == b"%7B%22a%22%3A1%2C%22b%22%3A%5B2%2C3%5D%7D"
    assert canonicalize(42) == b"42"
    assert canonicalize(None) == b"null"
    assert canonicalize(True) == b"true"


def test_unsupported_plaintext_type():
    with pytest.raises(InputError):
        canonicalize(object())
    with pytest.raises(InputError):
        canonicalize({"bad": {1, 2}})


def test_lone_surrogate_is_rejected():
    with pytest.raises(InputError):
        canonicalize("\ud800")


def test_decanonicalize_parses_json_or_returns_text():
    assert decanonicalize(b"%7B%22a%22%3A1%7D") == {"a": 1}
    assert decanonicalize(b"Hello%2C%20World!") == "Hello, World!"
    assert decanonicalize(b"NaN") == "NaN"
    assert decanonicalize(b"") == ""


@pytest.mark.parametrize("data", [b"a b", b"%zz", b"%4", b"\xff\x00", b'"quoted"'])
def test_decanonicalize_rejects_non_canonical_bytes(data):
    with pytest.raises(CipherError):
        decanonicalize(data)


def test_decanonicalize_rejects_invalid_utf8():
    with pytest.raises(CipherError):
        decanonicalize(b"%FF%FE")


def test_deeply_nested_plaintext_is_input_error():
    nested = []
    for _ in range(100_000):
        nested = [nested]
    with pytest.raises(InputError):
        canonicalize(nested)


def test_deeply_nested_json_opens_as_text():
    text = "[" * 100_000 + "]" * 100_000
    assert decanonicalize(("%5B" * 100_000 + "%5D" * 100_000).encode()) == text


# ---------------------------------------------------------------------------
# Round-trips
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "plaintext",
    ["Hello, World!", "", "naïve ☃ 100%", 42, 3.5, None, True, [1, "two", None], {"a": 1, "b": [2, 3]}],
)
def test_roundtrip(codec, plaintext):
    envelope = codec.seal(plaintext, PUBLIC_PEM, ZERO_KEY_B64)
    assert codec.open(envelope, PRIVATE_PEM, ZERO_KEY_B64) == plaintext


def test_roundtrip_keeps_types(codec):
    opened = codec.open(codec.seal({"a": 1, "b": [2, 3]}, PUBLIC_PEM, ZERO_KEY_B64), PRIVATE_PEM, ZERO_KEY_B64)
    assert isinstance(opened["a"], int)
    assert opened["b"] == [2, 3]


def test_tuple_opens_as_list(codec):
    envelope = codec.seal((1, 2), PUBLIC_PEM, ZERO_KEY_B64)
    assert codec.open(envelope, PRIVATE_PEM, ZERO_KEY_B64) == [1, 2]


def test_json_looking_text_opens_as_value(codec):
    # text is not tagged; JSON-looking strings come back parsed
    envelope = codec.seal("123", PUBLIC_PEM, ZERO_KEY_B64)
    assert codec.open(envelope, PRIVATE_PEM, ZERO_KEY_B64) == 123


def test_envelope_field_sizes(codec, public_key):
    envelope = codec.seal("x" * 40, PUBLIC_PEM, ZERO_KEY_B64)
    assert len(base64.b64decode(envelope.encrypted_iv_base64)) == public_key.size_bytes
    data = base64.b64decode(envelope.encrypted_data_base64)
    assert len(data) == 48


def test_fresh_iv_each_seal(codec):
    first = codec.seal("same", PUBLIC_PEM, ZERO_KEY_B64)
    second = codec.seal("same", PUBLIC_PEM, ZERO_KEY_B64)
    assert first.encrypted_data_base64 != second.encrypted_data_base64
    assert first.encrypted_iv_base64 != second.encrypted_iv_base64


def test_module_level_helpers():
    envelope = seal({"k": "v"}, PUBLIC_PEM, ZERO_KEY_B64, oaep_hash=OaepHash.SHA1)
    assert open_envelope(envelope.to_dict(), PRIVATE_PEM, ZERO_KEY_B64, oaep_hash=OaepHash.SHA1) == {"k": "v"}


def test_seal_with_resolved_keys(codec, public_key, private_key):
    envelope = codec.seal("typed", public_key, ZERO_KEY)
    assert codec.open(envelope, private_key, ZERO_KEY) == "typed"


# ---------------------------------------------------------------------------
# Golden vectors
# ---------------------------------------------------------------------------


def test_golden_data_with_zero_iv(private_key):
    codec = EnvelopeCodec(OaepHash.SHA256, iv_source=lambda n: bytes(n))
    envelope = codec.seal("Hello, World!", PUBLIC_PEM, ZERO_KEY_B64)
    assert envelope.encrypted_data_base64 == HELLO_DATA_B64
    iv = AsymmetricCipher(OaepHash.SHA256).decrypt(private_key, base64.b64decode(envelope.encrypted_iv_base64))
    assert iv == bytes(16)


@pytest.mark.parametrize(
    "oaep_hash, wrapped_iv",
    [(OaepHash.SHA256, ZERO_IV_OAEP_SHA256_B64), (OaepHash.SHA1, ZERO_IV_OAEP_SHA1_B64)],
)
def test_open_envelope_built_by_openssl(oaep_hash, wrapped_iv):
    wire = json.dumps({"encryptedDataBase64": HELLO_DATA_B64, "encryptedIvBase64": wrapped_iv})
    envelope = EncryptionEnvelope.from_json(wire)
    assert EnvelopeCodec(oaep_hash).open(envelope, PRIVATE_PEM, ZERO_KEY_B64) == "Hello, World!"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_flipped_data_byte_raises_cipher_error(codec):
    envelope = {"encryptedDataBase64": HELLO_DATA_B64, "encryptedIvBase64": ZERO_IV_OAEP_SHA256_B64}
    data = bytearray(base64.b64decode(HELLO_DATA_B64))
    data[15] ^= 0x01
    envelope["encryptedDataBase64"] = base64.b64encode(bytes(data)).decode()
    with pytest.raises(CipherError):
        codec.open(envelope, PRIVATE_PEM, ZERO_KEY_B64)


def test_flipped_byte_anywhere_raises_cipher_error():
    codec = EnvelopeCodec(OaepHash.SHA256, iv_source=lambda n: bytes(n))
    envelope = codec.seal("tamper-evident " * 4, PUBLIC_PEM, ZERO_KEY_B64)
    data = base64.b64decode(envelope.encrypted_data_base64)
    for index in range(len(data)):
        tampered = bytearray(data)
        tampered[index] ^= 0x80
        forged = EncryptionEnvelope(base64.b64encode(bytes(tampered)).decode(), envelope.encrypted_iv_base64)
        with pytest.raises(CipherError):
            codec.open(forged, PRIVATE_PEM, ZERO_KEY_B64)


def test_wrong_symmetric_key_raises(codec):
    envelope = codec.seal("secret", PUBLIC_PEM, ZERO_KEY_B64)
    other = base64.b64encode(bytes([7]) * 32).decode()
    with pytest.raises(CipherError):
        codec.open(envelope, PRIVATE_PEM, other)


def test_oaep_hash_mismatch_raises(codec):
    envelope = codec.seal("secret", PUBLIC_PEM, ZERO_KEY_B64)
    with pytest.raises(CipherError):
        EnvelopeCodec(OaepHash.SHA1).open(envelope, PRIVATE_PEM, ZERO_KEY_B64)


def test_short_wrapped_iv_is_integrity_error(codec, public_key):
    wrapped = AsymmetricCipher(OaepHash.SHA256).encrypt(public_key, bytes(15))
    envelope = EncryptionEnvelope(HELLO_DATA_B64, base64.b64encode(wrapped).decode())
    with pytest.raises(IntegrityError):
        codec.open(envelope, PRIVATE_PEM, ZERO_KEY_B64)


def test_bad_iv_source_is_integrity_error():
    codec = EnvelopeCodec(OaepHash.SHA256, iv_source=lambda n: bytes(n - 1))
    with pytest.raises(IntegrityError):
        codec.seal("x", PUBLIC_PEM, ZERO_KEY_B64)


@pytest.mark.parametrize("missing", ["encryptedDataBase64", "encryptedIvBase64"])
def test_missing_envelope_field(codec, missing):
    wire = {"encryptedDataBase64": HELLO_DATA_B64, "encryptedIvBase64": ZERO_IV_OAEP_SHA256_B64}
    wire[missing] = ""
    with pytest.raises(InputError):
        codec.open(wire, PRIVATE_PEM, ZERO_KEY_B64)
    del wire[missing]
    with pytest.raises(InputError):
        codec.open(wire, PRIVATE_PEM, ZERO_KEY_B64)


def test_malformed_base64_is_decode_error(codec):
    wire = {"encryptedDataBase64": HELLO_DATA_B64, "encryptedIvBase64": "not*base64"}
    with pytest.raises(DecodeError):
        codec.open(wire, PRIVATE_PEM, ZERO_KEY_B64)


def test_envelope_json_errors():
    with pytest.raises(InputError):
        EncryptionEnvelope.from_json("  ")
    with pytest.raises(DecodeError):
        EncryptionEnvelope.from_json("{not json")
    with pytest.raises(InputError):
        EncryptionEnvelope.from_json("[1, 2]")


def test_envelope_wire_names():
    envelope = EncryptionEnvelope("ZGF0YQ==", "aXY=")
    assert json.loads(envelope.to_json()) == {"encryptedDataBase64": "ZGF0YQ==", "encryptedIvBase64": "aXY="}
    assert EncryptionEnvelope.from_dict(envelope.to_dict()) == envelope


def test_missing_keys_are_input_errors(codec):
    with pytest.raises(InputError):
        codec.seal("x", "", ZERO_KEY_B64)
    with pytest.raises(InputError):
        codec.seal("x", PUBLIC_PEM, "")


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_seal_on_shared_executor():
    with ThreadPoolExecutor(max_workers=2) as pool:
        codec = EnvelopeCodec(OaepHash.SHA256, executor=pool)
        envelopes = [codec.seal(i, PUBLIC_PEM, ZERO_KEY_B64) for i in range(3)]
    plain = EnvelopeCodec(OaepHash.SHA256)
    assert [plain.open(e, PRIVATE_PEM, ZERO_KEY_B64) for e in envelopes] == [0, 1, 2]


def test_parallel_seal_matches_sequential_golden():
    codec = EnvelopeCodec(OaepHash.SHA256, parallel=True, iv_source=lambda n: bytes(n))
    assert codec.seal("Hello, World!", PUBLIC_PEM, ZERO_KEY_B64).encrypted_data_base64 == HELLO_DATA_B64


class RecordingExecutor(ThreadPoolExecutor):
    def __init__(self):
        super().__init__(max_workers=2)
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        job = super().submit(fn, *args, **kwargs)
        self.jobs.append(job)
        return job


def test_failed_seal_job_waits_for_its_sibling(monkeypatch):
    def broken(key, iv, plaintext):
        raise CipherError("AES unavailable")

    monkeypatch.setattr(SymmetricCipher, "encrypt", staticmethod(broken))
    with RecordingExecutor() as pool:
        codec = EnvelopeCodec(OaepHash.SHA256, executor=pool)
        wrap = codec.asymmetric.encrypt

        def slow_wrap(key, message):
            time.sleep(0.2)
            return wrap(key, message)

        codec.asymmetric.encrypt = slow_wrap
        with pytest.raises(CipherError, match="AES unavailable"):
            codec.seal("x", PUBLIC_PEM, ZERO_KEY_B64)
        assert len(pool.jobs) == 2
        assert all(job.done() for job in pool.jobs)


def test_both_seal_jobs_failing_logs_the_second(monkeypatch, caplog):
    def broken(*args):
        raise CipherError("cipher down")

    monkeypatch.setattr(SymmetricCipher, "encrypt", staticmethod(broken))
    with ThreadPoolExecutor(max_workers=2) as pool:
        codec = EnvelopeCodec(OaepHash.SHA256, executor=pool)
        codec.asymmetric.encrypt = broken
        with caplog.at_level(logging.WARNING, logger="hybridseal.envelope"):
            with pytest.raises(CipherError):
                codec.seal("x", PUBLIC_PEM, ZERO_KEY_B64)
    assert "Both seal ciphers failed" in caplog.text
