from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO, Optional

from .utils import warn


class FileLock:
    """Blocking exclusive ``flock`` on a lock file shared between alarm processes.

    Locking is best effort: when the lock file cannot be opened the holder runs
    unlocked and a warning is printed. The kernel drops the lock when the
    holding process dies, so a killed holder never wedges the others.
    """

    def __init__(self, path: Path, *, stderr: Optional[IO[str]] = None) -> None:
        self.path = Path(path)
        self._stderr = stderr
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> bool:
        if self._fd is not None:
            return True

        try:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as exc:
            warn(f"cannot open lock file {self.path} ({exc.strerror}); running unlocked", self._stderr)
            return False

        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as exc:
            os.close(fd)
            warn(f"cannot lock {self.path} ({exc.strerror}); running unlocked", self._stderr)
            return False

        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
