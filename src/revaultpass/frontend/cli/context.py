"""Build the per-invocation context the CLI commands run against."""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from revaultpass.core.storage import Storage
from revaultpass.security import keystore

ENV_STORE = "REVAULTPASS_STORE"
ENV_MASTER_KEY = "REVAULTPASS_MASTER_KEY"
ENV_STRICT = "REVAULTPASS_STRICT"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class AppContext:
    """Everything a command needs; there is no process-wide state."""

    storage: Storage
    env_master_key: Optional[str] = None
    use_keystore: bool = True
    prompt_secret: Callable[[str], str] = field(default=getpass.getpass)

    @property
    def keystore_account(self) -> str:
        return str(self.storage.path.resolve())

    def master_key(self, prompt: str) -> Optional[str]:
        """
        Return the master key for an existing store, or None for "no encryption".

        Sources, first hit wins: REVAULTPASS_MASTER_KEY, the OS keystore
        cache, then an interactive prompt.
        """
        if self.env_master_key:
            return self.env_master_key
        if self.use_keystore:
            cached = keystore.load_passphrase(self.keystore_account)
            if cached:
                return cached
        return self.prompt_secret(prompt) or None

    def new_master_key(self) -> Optional[str]:
        """Ask for a new master key twice; None means no encryption."""
        if self.env_master_key:
            return self.env_master_key
        first = self.prompt_secret("Set master key (or leave empty for no encryption): ")
        if not first:
            return None
        second = self.prompt_secret("Repeat master key: ")
        if first != second:
            raise ValueError("master keys do not match")
        return first


def build_context(
    store_path: Optional[str | Path] = None,
    strict: Optional[bool] = None,
    use_keystore: bool = True,
    prompt_secret: Optional[Callable[[str], str]] = None,
) -> AppContext:
    """
    Resolve configuration into an AppContext.

    Explicit arguments win over environment variables:

    - ``REVAULTPASS_STORE``: store file path (default ``$REVAULTPASS_HOME/store.dat``
      or ``~/.revaultpass/store.dat``)
    - ``REVAULTPASS_STRICT``: reject unknown container tags instead of
      treating them as an empty store
    - ``REVAULTPASS_MASTER_KEY``: master key for non-interactive use
    """
    if store_path is None:
        store_path = os.getenv(ENV_STORE) or None
    if strict is None:
        strict = os.getenv(ENV_STRICT, "").strip().lower() in _TRUTHY

    return AppContext(
        storage=Storage(store_path, strict=strict),
        env_master_key=os.getenv(ENV_MASTER_KEY) or None,
        use_keystore=use_keystore,
        prompt_secret=prompt_secret or getpass.getpass,
    )
