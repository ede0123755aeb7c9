"""ChaCha20-Poly1305 encryption of a whole buffer.

Output layout of encrypt(): ciphertext || 16-byte Poly1305 tag.
The nonce is supplied by the caller and must never repeat under one key;
the container codec draws a fresh one for every save.
"""
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from ..core.exceptions import AuthError

KEY_LEN = 32
NONCE_LEN = 12
TAG_LEN = 16


def generate_nonce() -> bytes:
    return os.urandom(NONCE_LEN)


def _check_params(key, nonce) -> None:
    if len(key) != KEY_LEN:
        raise ValueError(f"key must be {KEY_LEN} bytes")
    if len(nonce) != NONCE_LEN:
        raise ValueError(f"nonce must be {NONCE_LEN} bytes")


def encrypt(plaintext: bytes, key: bytes, nonce: bytes) -> bytes:
    _check_params(key, nonce)
    aead = ChaCha20Poly1305(bytes(key))
    return aead.encrypt(bytes(nonce), plaintext, None)


def decrypt(ciphertext: bytes, key: bytes, nonce: bytes) -> bytes:
    """Verify and decrypt; raises AuthError if the tag does not match."""
    _check_params(key, nonce)
    aead = ChaCha20Poly1305(bytes(key))
    try:
        return aead.decrypt(bytes(nonce), ciphertext, None)
    except InvalidTag:
        raise AuthError() from None
