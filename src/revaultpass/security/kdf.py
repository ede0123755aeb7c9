"""Argon2id key derivation for RevaultPass."""
from __future__ import annotations

import os
from typing import Dict

from argon2.exceptions import HashingError
from argon2.low_level import ARGON2_VERSION, Type, hash_secret_raw

from ..core.exceptions import KdfError

SALT_LEN = 16
KEY_LEN = 32

# memory_cost is in KiB (19 MiB)
TIME_COST = 2
MEMORY_COST = 19456
PARALLELISM = 1


def generate_salt(length: int = SALT_LEN) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(
    passphrase: bytes | str,
    salt: bytes,
    time_cost: int = TIME_COST,
    memory_cost: int = MEMORY_COST,
    parallelism: int = PARALLELISM,
    key_len: int = KEY_LEN,
) -> bytes:
    """
    Derive a symmetric key from a passphrase using Argon2id.

    The same passphrase and salt always give the same key, which is what
    lets a container be reopened with the salt stored in its header.
    Raises KdfError on bad parameters or if argon2 itself fails.
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")
    elif isinstance(passphrase, (bytearray, memoryview)):
        passphrase = bytes(passphrase)
    if not isinstance(passphrase, bytes):
        raise KdfError(f"passphrase must be str or bytes, not {type(passphrase).__name__}")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_LEN:
        raise KdfError(f"salt must be {SALT_LEN} bytes")
    if key_len != KEY_LEN:
        raise KdfError(f"key length must be {KEY_LEN} bytes")

    try:
        return hash_secret_raw(
            secret=passphrase,
            salt=bytes(salt),
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=key_len,
            type=Type.ID,
            version=ARGON2_VERSION,
        )
    except HashingError as e:
        raise KdfError(f"argon2: {e}") from e


def kdf_params(
    time_cost: int = TIME_COST, memory_cost: int = MEMORY_COST, parallelism: int = PARALLELISM
) -> Dict:
    return {
        "algo": "argon2id",
        "version": ARGON2_VERSION,
        "time": time_cost,
        "memory": memory_cost,
        "parallelism": parallelism,
        "key_len": KEY_LEN,
    }
