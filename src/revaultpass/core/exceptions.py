"""
Exceptions for RevaultPass
Every error carries an ErrorKind so callers can branch on the kind
instead of parsing messages.
"""

from enum import Enum
from pathlib import Path
from typing import Optional


class ErrorKind(Enum):
    FORMAT = "format"
    MISSING_KEY = "missing_key"
    AUTH = "auth"
    KDF = "kdf"
    IO = "io"
    RECORD = "record"


class RevaultError(Exception):
    # general container for errors
    kind: ErrorKind

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message


class FormatError(RevaultError):
    # raised on a truncated or malformed container
    kind = ErrorKind.FORMAT

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ):
        super().__init__(message, path)
        self.offset = offset
        self.length = length


class MissingKeyError(RevaultError):
    # raised when an encrypted container is opened without a passphrase
    kind = ErrorKind.MISSING_KEY


class AuthError(RevaultError):
    # raised on a wrong passphrase or tampered ciphertext; the two are not told apart
    kind = ErrorKind.AUTH

    def __init__(self, message: str = "wrong key or corrupted data", path: Optional[Path] = None):
        super().__init__(message, path)


class KdfError(RevaultError):
    # raised when key derivation parameters are invalid or argon2 fails
    kind = ErrorKind.KDF


class StorageIOError(RevaultError):
    # raised on a filesystem failure other than "not found"
    kind = ErrorKind.IO


class LockTimeoutError(StorageIOError):
    # raised when the store lock cannot be acquired in time
    pass


class RecordError(RevaultError):
    kind = ErrorKind.RECORD

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


class DuplicateRecordError(RecordError):
    # raised when adding a record whose name already exists
    pass


class RecordNotFoundError(RecordError):
    # raised when a record name is not in the store
    pass
