import pytest

from safestore_backend.app.crypto import (
    IV_SIZE,
    KEY_SIZE,
    EncryptionEngine,
    engine_from_config,
    generate_key,
    load_key,
)
from safestore_backend.app.exceptions import DecryptionError


@pytest.mark.parametrize("size", [0, 1, 15, 16, 17, 1000])
def test_round_trip(engine, size):
    plaintext = bytes(range(256)) * 4
    plaintext = plaintext[:size]
    assert engine.decrypt(engine.encrypt(plaintext)) == plaintext


def test_payload_layout_is_iv_plus_padded_blocks(engine):
    for size in (0, 2, 16, 31):
        blob = engine.encrypt(b"x" * size)
        assert len(blob) == IV_SIZE + (size // 16 + 1) * 16


def test_same_plaintext_encrypts_differently(engine):
    a = engine.encrypt(b"same content")
    b = engine.encrypt(b"same content")
    assert a != b
    assert a[:IV_SIZE] != b[:IV_SIZE]


def test_decrypt_rejects_truncated_payload(engine):
    with pytest.raises(DecryptionError):
        engine.decrypt(b"\x00" * IV_SIZE)


def test_decrypt_rejects_misaligned_payload(engine):
    blob = engine.encrypt(b"hello")
    with pytest.raises(DecryptionError):
        engine.decrypt(blob[:-1])


def test_wrong_key_does_not_recover_plaintext(engine):
    plaintext = b"top secret contents"
    blob = engine.encrypt(plaintext)
    other = EncryptionEngine(generate_key())
    try:
        recovered = other.decrypt(blob)
    except DecryptionError:
        return
    # a wrong key very rarely yields valid padding; it still must not decrypt
    assert recovered != plaintext


def test_engine_requires_32_byte_key():
    with pytest.raises(ValueError):
        EncryptionEngine(b"short")


def test_repr_hides_key(engine):
    assert "hidden" in repr(engine)


def test_load_key():
    assert load_key("ab" * KEY_SIZE) == b"\xab" * KEY_SIZE
    with pytest.raises(ValueError):
        load_key("not-hex")
    with pytest.raises(ValueError):
        load_key("ab" * 16)


def test_engine_from_config_with_key():
    a = engine_from_config("11" * KEY_SIZE)
    b = engine_from_config("11" * KEY_SIZE)
    assert b.decrypt(a.encrypt(b"shared key")) == b"shared key"


def test_engine_from_config_generates_ephemeral_key():
    engine = engine_from_config(None)
    assert engine.decrypt(engine.encrypt(b"hi")) == b"hi"


def test_engine_from_config_invalid_key_is_fatal():
    with pytest.raises(RuntimeError):
        engine_from_config("zz")
