"""OS keystore cache for the master key, using keyring.

Opt-in convenience only: ``remember`` puts the master key into the platform
keystore so later commands do not prompt for it. The passphrase is stored
rather than a derived key because every save draws a fresh salt.

Backend failures surface as RuntimeError so the CLI reports one message.
"""
from typing import Optional

try:
    import keyring
    from keyring.errors import KeyringError, PasswordDeleteError
except ImportError:
    keyring = None

SERVICE = "revaultpass"

# backend modules that keep secrets unencrypted on disk or drop them
_UNSAFE_MODULES = ("keyring.backends.fail", "keyring.backends.null", "keyrings.alt.file")


def _require_keyring():
    if keyring is None:
        raise RuntimeError("keyring package is not available; install keyring to use keystore features")


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (usable, reason) for caching a master key in the active backend.

    A backend is refused when it does not encrypt at rest (keyrings.alt
    plaintext/file stores), cannot store anything (fail/null backends) or
    reports a non-positive priority.
    """
    if keyring is None:
        return False, "keyring package is not installed"

    try:
        backend = keyring.get_keyring()
    except Exception as e:
        return False, f"no OS keystore reachable: {e}"

    cls = type(backend)
    label = f"{cls.__module__}.{cls.__name__}"
    if cls.__module__.startswith(_UNSAFE_MODULES) or "Plaintext" in cls.__name__:
        return False, f"{label} does not protect the master key at rest"

    priority = getattr(backend, "priority", None)
    if priority is not None and priority <= 0:
        return False, f"{label} is not a usable keystore (priority {priority})"

    return True, f"master key will be cached in {label}"


def save_passphrase(account: str, passphrase: str, force: bool = False) -> None:
    """Store ``passphrase`` under (SERVICE, account).

    Refuses backends that look insecure unless ``force`` is set.
    """
    _require_keyring()
    if not force:
        usable, msg = assess_keyring_backend()
        if not usable:
            raise RuntimeError(f"refusing to store master key in OS keystore: {msg}")
    try:
        keyring.set_password(SERVICE, account, passphrase)
    except KeyringError as e:
        raise RuntimeError(f"OS keystore rejected the master key: {e}") from e


def load_passphrase(account: str) -> Optional[str]:
    """Return the cached passphrase for ``account`` or None.

    A missing keyring package or a backend error counts as "not cached".
    """
    if keyring is None:
        return None
    try:
        return keyring.get_password(SERVICE, account)
    except KeyringError:
        return None


def delete_passphrase(account: str) -> bool:
    """Remove the cached passphrase; returns False if nothing was stored."""
    _require_keyring()
    try:
        keyring.delete_password(SERVICE, account)
    except PasswordDeleteError:
        return False
    except KeyringError as e:
        raise RuntimeError(f"OS keystore could not remove the master key: {e}") from e
    return True
