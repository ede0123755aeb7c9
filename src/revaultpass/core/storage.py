"""
Store file handling: load, atomic save and the store lock

Structure Map for reference:
==============================
 - <REVAULTPASS_HOME or ~/.revaultpass>/
      - store.dat        (container, see core/container.py)
      - store.dat.lock   (present only while a command holds the store)
==============================

> A save never leaves a half-written store.dat: the container is written to
  a temp file in the same directory, fsynced, then renamed over the target.
> The lock file serialises load-modify-save across processes. It is
  advisory: only RevaultPass itself honours it.
"""

from __future__ import annotations

import errno
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from . import container
from .exceptions import LockTimeoutError, StorageIOError
from .models import Record, deserialize, serialize

logger = logging.getLogger(__name__)

STORE_FILENAME = "store.dat"
LOCK_SUFFIX = ".lock"


def default_home() -> Path:
    home = os.getenv("REVAULTPASS_HOME")
    return Path(home).expanduser() if home else Path.home() / ".revaultpass"


def default_store_path() -> Path:
    return default_home() / STORE_FILENAME


def read_container(path: Path | str) -> Optional[bytes]:
    """Return the raw container bytes, or None if the file does not exist."""
    p = Path(path)
    try:
        with open(p, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StorageIOError(f"cannot read store: {e.strerror or e}", path=p) from e


def load(
    path: Path | str, passphrase: Optional[bytes | str] = None, strict: bool = False
) -> List[Record]:
    """Load the record list; a missing file is an empty store."""
    data = read_container(path)
    if data is None:
        logger.debug("no store at %s", path)
        return []
    payload = container.decode(data, passphrase, strict=strict)
    if not payload:
        return []
    return deserialize(payload)


def _write_atomic(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp already creates the file 0600
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise


def save(
    path: Path | str, records: Sequence[Record], passphrase: Optional[bytes | str] = None
) -> None:
    """Serialize, encode and atomically replace the store file."""
    p = Path(path)
    blob = container.encode(serialize(records), passphrase)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        _write_atomic(p, blob)
    except OSError as e:
        raise StorageIOError(f"cannot write store: {e.strerror or e}", path=p) from e
    logger.debug("saved %d record(s) to %s", len(records), p)


class StoreLock:
    """
    Lock file next to the store, held for a whole load-modify-save.

    Acquired by creating ``<store>.lock`` with O_CREAT|O_EXCL; a second
    process polls until ``timeout`` and then gives up with LockTimeoutError.
    Use as a context manager so the lock is released on every exit path.
    """

    def __init__(self, store_path: Path | str, timeout: float = 10.0, poll_interval: float = 0.1):
        self.store_path = Path(store_path)
        self.path = self.store_path.with_name(self.store_path.name + LOCK_SUFFIX)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"cannot create store directory: {e.strerror or e}", path=self.path.parent) from e

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            except FileExistsError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(
                        "store is locked by another process; remove the lock file if it is stale",
                        path=self.path,
                    )
                time.sleep(self.poll_interval)
                continue
            except OSError as e:
                raise StorageIOError(f"cannot create lock file: {e.strerror or e}", path=self.path) from e
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(str(os.getpid()))
            except OSError as e:
                try:
                    self.path.unlink()
                except OSError:
                    pass
                raise StorageIOError(f"cannot write lock file: {e.strerror or e}", path=self.path) from e
            self._held = True
            logger.debug("acquired %s", self.path)
            return

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink()
        except OSError as e:
            if e.errno != errno.ENOENT:
                raise StorageIOError(f"cannot remove lock file: {e.strerror or e}", path=self.path) from e
        logger.debug("released %s", self.path)

    def __enter__(self) -> StoreLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class Storage:
    """A store file plus the options every command needs to open it."""

    def __init__(self, path: Optional[Path | str] = None, strict: bool = False, lock_timeout: float = 10.0):
        self.path = Path(path).expanduser() if path else default_store_path()
        self.strict = strict
        self.lock_timeout = lock_timeout

    def exists(self) -> bool:
        return self.path.exists()

    def load(self, passphrase: Optional[bytes | str] = None) -> List[Record]:
        return load(self.path, passphrase, strict=self.strict)

    def save(self, records: Sequence[Record], passphrase: Optional[bytes | str] = None) -> None:
        save(self.path, records, passphrase)

    def info(self) -> Optional[container.ContainerInfo]:
        data = read_container(self.path)
        if data is None:
            return None
        return container.inspect(data)

    @contextmanager
    def locked(self) -> Iterator[Storage]:
        with StoreLock(self.path, timeout=self.lock_timeout):
            yield self
