"""
Per-script, cross-process locking.

An exclusive advisory lock is taken on ``<root>/<key>.lock``. The lock file
is kept apart from the record file because records are replaced by rename,
which would leave a lock holder pinning a stale inode. The file's existence
means nothing; only its lock state does.
"""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path
from typing import Optional

from scriptr.core.errors import LockFailed

if os.name == "nt":
    import msvcrt
else:
    import fcntl

_log = logging.getLogger(__name__)


def _lock_fd(fd: int) -> None:
    if os.name == "nt":
        # LK_LOCK gives up after ~10s of retries; keep waiting like flock does
        while True:
            try:
                msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
                return
            except OSError as e:
                if e.errno != errno.EDEADLOCK:
                    raise
    else:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            _log.debug("lock held by another process, waiting")
            fcntl.flock(fd, fcntl.LOCK_EX)


def _unlock_fd(fd: int) -> None:
    if os.name == "nt":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


class ScriptLock:
    """Context manager holding an exclusive lock on one lock file.

    Usage:
        with ScriptLock(root / f"{key}.lock"):
            ...  # read, decide, build, write

    The lock is released on every exit path, exceptions included. If the
    process dies outright, the OS drops the lock with the descriptor.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            raise LockFailed(f"lock already held: {self.path}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise LockFailed(f"cannot open lock file {self.path}: {e}") from e
        try:
            _lock_fd(fd)
        except BaseException as e:
            os.close(fd)
            if isinstance(e, OSError):
                raise LockFailed(f"cannot lock {self.path}: {e}") from e
            raise
        self._fd = fd
        _log.debug("acquired %s", self.path)

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            _unlock_fd(fd)
        finally:
            os.close(fd)
        _log.debug("released %s", self.path)

    def __enter__(self) -> "ScriptLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
        return None  # Don't suppress exceptions


def acquire(root: Path, key: str) -> ScriptLock:
    """Return the (unacquired) lock for a record key; use it with ``with``."""
    return ScriptLock(root / f"{key}.lock")
