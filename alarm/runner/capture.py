from __future__ import annotations

import os
from pathlib import Path
from typing import IO, Optional

from .locks import FileLock


REPLAY_CHUNK_SIZE = 128000


class OutputCapture:
    """Collects a child's stdout and stderr in a private file for later replay.

    Under ``make -jN`` several tests write to the same terminal at once. Each
    test's output is parked in ``path`` while it runs and emitted as a single
    framed block afterwards, holding ``log_lock`` so blocks never interleave.
    """

    def __init__(self, path: Path, label: str, log_lock: FileLock) -> None:
        self.path = Path(path)
        self.label = label
        self.log_lock = log_lock
        self._fd: Optional[int] = None

    def open(self) -> int:
        """Create (or truncate) the capture file; returns the fd to hand the child."""

        if self._fd is None:
            self._fd = os.open(self.path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o660)
        return self._fd

    @property
    def fileno(self) -> Optional[int]:
        return self._fd

    def size(self) -> int:
        if self._fd is None:
            return 0
        return os.fstat(self._fd).st_size

    def replay(self, sink: IO[bytes]) -> int:
        """Copy the captured output to ``sink`` and remove the capture file.

        Returns the number of captured bytes written (0 if the child was silent).
        """

        if self._fd is None:
            return 0

        written = 0
        try:
            if self.size() > 0:
                with self.log_lock:
                    sink.write(f"alarm: runtest {self.label} log:\n".encode())
                    os.lseek(self._fd, 0, os.SEEK_SET)
                    while True:
                        chunk = os.read(self._fd, REPLAY_CHUNK_SIZE)
                        if not chunk:
                            break
                        sink.write(chunk)
                        written += len(chunk)
                    sink.write(b"alarm: log end\n")
                    sink.flush()
        finally:
            self.discard()
        return written

    def close(self) -> None:
        """Close the capture file, leaving it on disk."""

        if self._fd is not None:
            fd, self._fd = self._fd, None
            os.close(fd)

    def discard(self) -> None:
        """Close and delete the capture file."""

        self.close()
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
