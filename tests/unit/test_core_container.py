"""Unit tests for the container codec."""

import pytest

from revaultpass.core import container
from revaultpass.core.container import (
    MIN_ENCRYPTED_LEN,
    TAG_ENCRYPTED,
    TAG_PLAIN,
    decode,
    encode,
    inspect,
)
from revaultpass.core.exceptions import AuthError, ErrorKind, FormatError, MissingKeyError


PAYLOAD = b'[{"name": "git", "account": "bob", "secret": "s3cr3t"}]'


@pytest.fixture(scope="module")
def encrypted():
    return encode(PAYLOAD, "correct")


# ==============================================================================
# Tests: plain containers
# ==============================================================================

def test_plain_layout():
    assert encode(PAYLOAD) == TAG_PLAIN + PAYLOAD


def test_empty_passphrase_means_plain():
    assert encode(PAYLOAD, "") == TAG_PLAIN + PAYLOAD
    assert encode(PAYLOAD, b"") == TAG_PLAIN + PAYLOAD


@pytest.mark.parametrize("passphrase", [None, "", "anything", b"bytes too"])
def test_plain_ignores_passphrase(passphrase):
    assert decode(encode(PAYLOAD), passphrase) == PAYLOAD


def test_plain_short_payload():
    assert decode(TAG_PLAIN + b"[]") == b"[]"
    assert decode(TAG_PLAIN) == b""


# ==============================================================================
# Tests: encrypted containers
# ==============================================================================

def test_encrypted_layout(encrypted):
    assert encrypted[:4] == TAG_ENCRYPTED
    # tag + salt + nonce + ciphertext + poly1305 tag
    assert len(encrypted) == 4 + 16 + 12 + len(PAYLOAD) + 16
    assert PAYLOAD not in encrypted


def test_encrypted_roundtrip(encrypted):
    assert decode(encrypted, "correct") == PAYLOAD
    assert decode(encrypted, b"correct") == PAYLOAD


def test_encrypted_empty_payload():
    blob = encode(b"", "pw")
    assert len(blob) == MIN_ENCRYPTED_LEN
    assert decode(blob, "pw") == b""


def test_fresh_salt_and_nonce_per_encode(encrypted):
    again = encode(PAYLOAD, "correct")
    assert again != encrypted
    assert again[4:20] != encrypted[4:20]
    assert again[20:32] != encrypted[20:32]
    assert decode(again, "correct") == decode(encrypted, "correct") == PAYLOAD


def test_wrong_passphrase(encrypted):
    with pytest.raises(AuthError, match="wrong key or corrupted data") as exc:
        decode(encrypted, "wrong")
    assert exc.value.kind is ErrorKind.AUTH


@pytest.mark.parametrize("passphrase", [None, ""])
def test_missing_passphrase(encrypted, passphrase):
    with pytest.raises(MissingKeyError, match="passphrase required"):
        decode(encrypted, passphrase)


@pytest.mark.parametrize("offset", [4, 19, 20, 31, 32, 40, -16, -1])
def test_bit_flip_detected(encrypted, offset):
    """Flipping a bit in salt, nonce, ciphertext or tag never yields plaintext."""
    tampered = bytearray(encrypted)
    tampered[offset] ^= 0x01
    with pytest.raises(AuthError):
        decode(bytes(tampered), "correct")


def test_truncated_tag_detected(encrypted):
    with pytest.raises(AuthError):
        decode(encrypted[:-1], "correct")


# ==============================================================================
# Tests: short and unknown buffers
# ==============================================================================

@pytest.mark.parametrize("passphrase", [None, "hunter2"])
def test_too_short(passphrase):
    with pytest.raises(FormatError, match="too short") as exc:
        decode(TAG_ENCRYPTED + b"\x00" * 6, passphrase)
    assert exc.value.length == 10
    assert exc.value.kind is ErrorKind.FORMAT


def test_too_short_unknown_tag():
    with pytest.raises(FormatError, match="too short"):
        decode(b"0123456789")


def test_too_short_one_below_minimum():
    with pytest.raises(FormatError, match="too short"):
        decode(TAG_ENCRYPTED + b"\x00" * (MIN_ENCRYPTED_LEN - 5), "pw")


@pytest.mark.parametrize("data", [b"", b"R", b"RVP"])
def test_shorter_than_tag_is_empty(data):
    assert decode(data, "pw") == b""


def test_unknown_tag_is_empty(caplog):
    data = b"XXXX" + b"\x00" * 60
    assert decode(data, "pw") == b""
    assert "unrecognized format tag" in caplog.text


def test_unknown_tag_strict():
    with pytest.raises(FormatError, match="unrecognized format tag"):
        decode(b"XXXX" + b"\x00" * 60, strict=True)


# ==============================================================================
# Tests: inspect
# ==============================================================================

def test_inspect_plain():
    info = inspect(encode(PAYLOAD))
    assert info.kind == "plain"
    assert info.payload_size == len(PAYLOAD)


def test_inspect_encrypted(encrypted):
    info = inspect(encrypted)
    assert info.kind == "encrypted"
    assert info.size == len(encrypted)
    assert info.payload_size == len(PAYLOAD)


@pytest.mark.parametrize("data,kind", [(b"", "empty"), (b"XXXX1234", "unknown"), (TAG_ENCRYPTED, "unknown")])
def test_inspect_other(data, kind):
    assert inspect(data).kind == kind


def test_key_buffer_is_wiped(monkeypatch):
    seen = []
    real = container.SecretBuffer

    class Recording(real):
        def __init__(self, data):
            super().__init__(data)
            seen.append(self)

    monkeypatch.setattr(container, "SecretBuffer", Recording)
    blob = encode(PAYLOAD, "pw")
    decode(blob, "pw")
    with pytest.raises(AuthError):
        decode(blob, "nope")
    assert len(seen) == 3
    assert all(buf.wiped for buf in seen)
