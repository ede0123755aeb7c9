"""Mutable holder for passphrases and derived keys that is wiped on release.

Python cannot promise that no other copy of a secret survives (immutable
``bytes`` and ``str`` objects are never overwritten), so this is best-effort:
the buffer the caller works with is zeroed on every exit path.
"""
from __future__ import annotations

from typing import Optional


class SecretBuffer:
    def __init__(self, data: bytes | bytearray | str):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buf: Optional[bytearray] = bytearray(data)

    @property
    def value(self) -> bytearray:
        if self._buf is None:
            raise RuntimeError("secret buffer already wiped")
        return self._buf

    def __len__(self) -> int:
        return 0 if self._buf is None else len(self._buf)

    def __bytes__(self) -> bytes:
        return bytes(self.value)

    def __repr__(self) -> str:
        state = "wiped" if self._buf is None else f"{len(self._buf)} bytes"
        return f"<SecretBuffer {state}>"

    @property
    def wiped(self) -> bool:
        return self._buf is None

    def wipe(self) -> None:
        """Overwrite the buffer with zeros and drop it."""
        if self._buf is not None:
            for i in range(len(self._buf)):
                self._buf[i] = 0
            self._buf = None

    def __enter__(self) -> SecretBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()
