"""Security helpers for RevaultPass: key derivation, AEAD and secret handling.

- Argon2id passphrase -> key derivation
- ChaCha20-Poly1305 whole-buffer encryption
- wiping buffers for keys and passphrases
- optional OS keystore cache for the master key
"""

from .kdf import generate_salt, derive_key, kdf_params
from .crypto import generate_nonce, encrypt, decrypt
from .guard import SecretBuffer
from .keystore import save_passphrase, load_passphrase, delete_passphrase

__all__ = [
    "generate_salt",
    "derive_key",
    "kdf_params",
    "generate_nonce",
    "encrypt",
    "decrypt",
    "SecretBuffer",
    "save_passphrase",
    "load_passphrase",
    "delete_passphrase",
]
