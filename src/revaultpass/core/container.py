"""On-disk container for the serialized record list.

Layout (fixed-size fields, no length prefixes):

- plain:     b'RVP0' || payload
- encrypted: b'RVP1' || salt (16) || nonce (12) || ciphertext || tag (16)

The tag alone decides how the rest of the buffer is parsed. Every encode of
an encrypted container draws a fresh salt and nonce, so saving the same
records twice never produces the same bytes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..security import crypto
from ..security.guard import SecretBuffer
from ..security.kdf import SALT_LEN, derive_key, generate_salt
from .exceptions import FormatError, MissingKeyError

logger = logging.getLogger(__name__)

TAG_PLAIN = b"RVP0"
TAG_ENCRYPTED = b"RVP1"
TAG_LEN = 4
NONCE_LEN = crypto.NONCE_LEN
AEAD_TAG_LEN = crypto.TAG_LEN

SALT_OFFSET = TAG_LEN
NONCE_OFFSET = SALT_OFFSET + SALT_LEN
CIPHERTEXT_OFFSET = NONCE_OFFSET + NONCE_LEN
MIN_ENCRYPTED_LEN = CIPHERTEXT_OFFSET + AEAD_TAG_LEN


@dataclass
class ContainerInfo:
    kind: str
    size: int
    payload_size: int


def _normalize(passphrase: Optional[bytes | str]) -> Optional[bytes]:
    # an empty passphrase means "no encryption"
    if not passphrase:
        return None
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return bytes(passphrase)


def encode(plaintext: bytes, passphrase: Optional[bytes | str] = None) -> bytes:
    """Wrap ``plaintext`` in a container, encrypting it when a passphrase is given."""
    secret = _normalize(passphrase)
    if secret is None:
        return TAG_PLAIN + plaintext

    salt = generate_salt()
    nonce = crypto.generate_nonce()
    with SecretBuffer(derive_key(secret, salt)) as key:
        ciphertext = crypto.encrypt(plaintext, key.value, nonce)
    return TAG_ENCRYPTED + salt + nonce + ciphertext


def decode(
    container: bytes, passphrase: Optional[bytes | str] = None, strict: bool = False
) -> bytes:
    """
    Return the payload held in ``container``.

    - fewer than 4 bytes: empty payload (nothing stored yet)
    - plain: the payload as-is, any passphrase is ignored
    - not plain and shorter than 48 bytes: FormatError("too short")
    - encrypted without passphrase: MissingKeyError
    - encrypted: decrypted payload, or AuthError on a wrong key / tampering
    - unknown tag: empty payload with a warning, FormatError when ``strict``
    """
    if len(container) < TAG_LEN:
        return b""

    tag = bytes(container[:TAG_LEN])
    if tag == TAG_PLAIN:
        return bytes(container[TAG_LEN:])

    if len(container) < MIN_ENCRYPTED_LEN:
        raise FormatError(
            f"too short: {len(container)} bytes, need at least {MIN_ENCRYPTED_LEN}",
            offset=0,
            length=len(container),
        )

    if tag == TAG_ENCRYPTED:
        secret = _normalize(passphrase)
        if secret is None:
            raise MissingKeyError("encrypted store: passphrase required")
        salt = bytes(container[SALT_OFFSET:NONCE_OFFSET])
        nonce = bytes(container[NONCE_OFFSET:CIPHERTEXT_OFFSET])
        ciphertext = bytes(container[CIPHERTEXT_OFFSET:])
        with SecretBuffer(derive_key(secret, salt)) as key:
            return crypto.decrypt(ciphertext, key.value, nonce)

    if strict:
        raise FormatError(f"unrecognized format tag {tag!r}", offset=0, length=TAG_LEN)
    # a damaged header looks exactly like this; callers wanting to know use strict
    logger.warning("unrecognized format tag %r; treating store as empty", tag)
    return b""


def inspect(container: bytes) -> ContainerInfo:
    """Describe a container without decrypting it."""
    tag = bytes(container[:TAG_LEN])
    if len(container) < TAG_LEN:
        return ContainerInfo(kind="empty", size=len(container), payload_size=0)
    if tag == TAG_PLAIN:
        return ContainerInfo(kind="plain", size=len(container), payload_size=len(container) - TAG_LEN)
    if tag == TAG_ENCRYPTED and len(container) >= MIN_ENCRYPTED_LEN:
        return ContainerInfo(
            kind="encrypted",
            size=len(container),
            payload_size=len(container) - MIN_ENCRYPTED_LEN,
        )
    return ContainerInfo(kind="unknown", size=len(container), payload_size=0)
