import os

import pytest

from revaultpass.core.exceptions import AuthError
from revaultpass.security.crypto import decrypt, encrypt, generate_nonce


@pytest.fixture
def key():
    return os.urandom(32)


def test_encrypt_decrypt_roundtrip(key):
    nonce = generate_nonce()
    ct = encrypt(b"hello world", key, nonce)
    # ciphertext is the same length as the plaintext plus a 16-byte tag
    assert len(ct) == len(b"hello world") + 16
    assert decrypt(ct, key, nonce) == b"hello world"


def test_encrypt_empty_plaintext(key):
    nonce = generate_nonce()
    ct = encrypt(b"", key, nonce)
    assert len(ct) == 16
    assert decrypt(ct, key, nonce) == b""


def test_generate_nonce():
    nonce = generate_nonce()
    assert len(nonce) == 12
    assert nonce != generate_nonce()


def test_decrypt_wrong_key(key):
    nonce = generate_nonce()
    ct = encrypt(b"secret", key, nonce)
    with pytest.raises(AuthError, match="wrong key or corrupted data"):
        decrypt(ct, os.urandom(32), nonce)


def test_decrypt_wrong_nonce(key):
    ct = encrypt(b"secret", key, generate_nonce())
    with pytest.raises(AuthError):
        decrypt(ct, key, generate_nonce())


def test_decrypt_fails_on_tamper(key):
    nonce = generate_nonce()
    ct = bytearray(encrypt(b"secret data", key, nonce))
    ct[3] ^= 0x01
    with pytest.raises(AuthError):
        decrypt(bytes(ct), key, nonce)


def test_decrypt_fails_on_truncated(key):
    nonce = generate_nonce()
    ct = encrypt(b"secret data", key, nonce)
    with pytest.raises(AuthError):
        decrypt(ct[:-1], key, nonce)
    with pytest.raises(AuthError):
        decrypt(b"", key, nonce)


def test_bad_key_length():
    with pytest.raises(ValueError, match="key must be 32 bytes"):
        encrypt(b"x", b"short", generate_nonce())


def test_bad_nonce_length(key):
    with pytest.raises(ValueError, match="nonce must be 12 bytes"):
        decrypt(b"x" * 20, key, b"n" * 8)


def test_accepts_bytearray_key(key):
    nonce = generate_nonce()
    ct = encrypt(b"data", bytearray(key), nonce)
    assert decrypt(ct, bytearray(key), nonce) == b"data"
